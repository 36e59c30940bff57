"""
Clinical record sheets of an admission (drug chart, vitals, consent
forms, ...). Every clinical role can read and write them.
"""
from __future__ import annotations

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsClinicalRole
from clinic.realtime.events import broadcast_refresh
from clinic.serializers.reports import EntrySerializer, SheetSerializer
from clinic.services import records
from clinic.views.ipd import admission_or_404


def _changed(ipd_id: int, kind: str) -> None:
    transaction.on_commit(lambda: broadcast_refresh([f"records:{ipd_id}:{kind}"]))


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def sheet(request, pk: int, kind: str):
    ipd = admission_or_404(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': records.serialize_sheet(ipd, kind, records.get_sheet(ipd, kind))})
    s = SheetSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    saved = records.save_sheet(ipd, kind, data=s.validated_data['data'], header=s.validated_data.get('header'),
                               user=request.user)
    _changed(ipd.id, kind)
    return Response({'ok': True, 'data': records.serialize_sheet(ipd, kind, saved)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def add_entry(request, pk: int, kind: str):
    ipd = admission_or_404(pk)
    s = EntrySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = records.append_entry(ipd, kind, dict(s.validated_data['entry']), request.user)
    _changed(ipd.id, kind)
    return Response({'ok': True, 'entry': entry}, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def delete_entry(request, pk: int, kind: str, entry_id: str):
    ipd = admission_or_404(pk)
    records.delete_entry(ipd, kind, entry_id)
    _changed(ipd.id, kind)
    return Response({'ok': True})
