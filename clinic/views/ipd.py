"""
Inpatient views: admission, the admission record, discharge and OT.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import get_or_404
from clinic.models import DischargeSummary, IPDRegistration, OTDetail
from clinic.permissions import IsAdminRole, IsClinicalRole, IsDeskOrReadOnly, IsDeskRole
from clinic.serializers.ipd import (
    AdmissionSerializer,
    DischargeSerializer,
    IPDListQuerySerializer,
    NotesSerializer,
    OTSerializer,
)
from clinic.serializers.patient import paginate
from clinic.serializers.reports import PeriodQuerySerializer
from clinic.services import discharge as discharge_service
from clinic.services import ipd as ipd_service
from clinic.services import ot as ot_service
from clinic.services.audit import log_action
from clinic.services.notifications import notify_admission
from clinic.services.patients import patient_header
from clinic.services.periods import resolve_period


def admission_or_404(pk: int) -> IPDRegistration:
    return get_or_404(IPDRegistration.objects.select_related('patient', 'bed'), 'Admission not found.', pk=pk)


def period_from_query(request):
    q = PeriodQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    period = resolve_period(vd['filter'], month=vd.get('month'), start=vd.get('startDate'), end=vd.get('endDate'))
    return period, vd.get('q')


# ---------------------------------------------------------------------
# Admissions
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDeskOrReadOnly])
def admissions(request):
    """``POST`` admits a patient; ``GET`` lists active admissions."""
    if request.method == 'POST':
        s = AdmissionSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        ipd = ipd_service.admit(s.admission_form(), request.user)
        log_action(user=request.user, action='ipd_admit', object_type='ipd', object_id=ipd.id,
                   detail={'uhid': ipd.uhid, 'bed': ipd.bed_id})
        payload = {'ok': True, 'data': ipd_service.serialize_ipd(ipd)}
        if s.validated_data.get('sendWhatsapp'):
            payload['notifications'] = notify_admission(ipd)
        return Response(payload, status=status.HTTP_201_CREATED)

    q = IPDListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, pagination = paginate(ipd_service.active_admissions(q=vd.get('q'), ward=vd.get('ward')), vd)
    return Response({'ok': True, 'data': [ipd_service.serialize_ipd(i) for i in rows], 'pagination': pagination})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def discharged(request):
    q = IPDListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows, pagination = paginate(ipd_service.discharged_admissions(phone=vd.get('phone'), q=vd.get('q')), vd)
    return Response({'ok': True, 'data': [ipd_service.serialize_ipd(i) for i in rows], 'pagination': pagination})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsDeskOrReadOnly])
def admission_detail(request, pk: int):
    ipd = admission_or_404(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': ipd_service.serialize_ipd(ipd, with_ledger=True)})
    if request.method == 'DELETE':
        ipd_service.delete_admission(ipd)
        log_action(user=request.user, action='ipd_delete', object_type='ipd', object_id=pk,
                   detail={'uhid': ipd.uhid})
        return Response({'ok': True})
    s = AdmissionSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    ipd = ipd_service.update_admission(ipd, s.admission_form())
    return Response({'ok': True, 'data': ipd_service.serialize_ipd(ipd, with_ledger=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def admission_notes(request, pk: int):
    ipd = admission_or_404(pk)
    s = NotesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ipd = ipd_service.save_notes(ipd, s.validated_data['note'])
    return Response({'ok': True, 'ipdNotes': ipd.ipd_notes})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def admission_header(request, pk: int):
    return Response({'ok': True, 'data': patient_header(admission_or_404(pk))})


# ---------------------------------------------------------------------
# Discharge
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDeskOrReadOnly])
def discharge_summary(request, pk: int):
    """``GET`` the summary, ``POST`` saves a draft without discharging."""
    ipd = admission_or_404(pk)
    if request.method == 'GET':
        summary = DischargeSummary.objects.filter(ipd=ipd).first()
        return Response({'ok': True, 'data': discharge_service.serialize_summary(summary)})
    s = DischargeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    summary = discharge_service.save_draft(ipd, s.summary_fields())
    return Response({'ok': True, 'data': discharge_service.serialize_summary(summary)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def discharge_finalize(request, pk: int):
    ipd = admission_or_404(pk)
    s = DischargeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    discharge_type = s.validated_data.get('dischargeType') or DischargeSummary.TYPE_DISCHARGE
    summary = discharge_service.finalize(ipd, s.summary_fields(), discharge_type)
    log_action(user=request.user, action='ipd_discharge', object_type='ipd', object_id=pk,
               detail={'type': discharge_type})
    ipd = admission_or_404(pk)
    return Response({'ok': True, 'data': discharge_service.serialize_summary(summary),
                     'admission': ipd_service.serialize_ipd(ipd)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def mortality_report(request):
    period, _ = period_from_query(request)
    rows = []
    for s in discharge_service.mortality(period):
        rows.append({
            'ipdId': s.ipd_id,
            'uhid': s.uhid,
            'patientName': s.ipd.patient.name,
            'admissionDate': s.ipd.admission_date.isoformat() if s.ipd.admission_date else None,
            'dateOfDeath': timezone.localtime(s.ipd.discharge_date).isoformat(),
            'finalDiagnosis': s.final_diagnosis,
            'roomType': s.ipd.bed.room_type if s.ipd.bed else None,
        })
    return Response({'ok': True, 'period': period.as_dict(), 'total': len(rows), 'data': rows})


# ---------------------------------------------------------------------
# OT
# ---------------------------------------------------------------------
@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsDeskOrReadOnly])
def ot_detail(request, pk: int):
    ipd = admission_or_404(pk)
    detail = OTDetail.objects.filter(ipd=ipd).select_related('ipd__patient').first()
    if request.method == 'GET':
        return Response({'ok': True, 'data': ot_service.serialize_ot(detail) if detail else None})
    if request.method == 'DELETE':
        if detail is None:
            raise NotFound('No OT record for this admission.')
        detail.delete()
        return Response({'ok': True})
    s = OTSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    detail = ot_service.save_ot(ipd, ot_type=vd['otType'], ot_date=vd['otDate'], ot_notes=vd['otNotes'])
    return Response({'ok': True, 'data': ot_service.serialize_ot(detail)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def ot_list(request):
    period, q = period_from_query(request)
    rows = [ot_service.serialize_ot(d) for d in ot_service.filter_ot(period, q)]
    return Response({'ok': True, 'period': period.as_dict(), 'total': len(rows), 'data': rows})
