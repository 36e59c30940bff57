"""
Patient registry views.

The desk searches patients by UHID or phone before registering a visit;
administrators list, edit and delete patients and view their history.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import get_or_404
from clinic.models import Patient
from clinic.permissions import IsAdminRole, IsDeskRole
from clinic.serializers.patient import PageQuerySerializer, PatientFieldsSerializer, PatientSearchSerializer, paginate
from clinic.services.audit import log_action
from clinic.services.patients import (
    filter_patients,
    patient_history,
    register_or_update_patient,
    search_by_phone,
    search_by_uhid,
    serialize_patient,
)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeskRole])
def search_patients(request):
    """Find a patient by ``uhid`` or every patient sharing a ``phone``."""
    s = PatientSearchSerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    uhid = s.validated_data.get('uhid')
    if uhid:
        patients = [search_by_uhid(uhid)]
    else:
        patients = search_by_phone(s.validated_data['phone'])
    return Response({'ok': True, 'data': [serialize_patient(p) for p in patients]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def list_patients(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows, pagination = paginate(filter_patients(q.validated_data.get('q')), q.validated_data)
    return Response({'ok': True, 'data': [serialize_patient(p) for p in rows], 'pagination': pagination})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def patient_detail(request, pk: int):
    patient = get_or_404(Patient.objects.all(), 'Patient not found.', pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_patient(patient)})

    if request.method == 'DELETE':
        uhid = patient.uhid
        patient.delete()
        log_action(user=request.user, action='patient_delete', object_type='patient', object_id=pk,
                   detail={'uhid': uhid})
        return Response({'ok': True})

    s = PatientFieldsSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    changes = s.patient_data()
    patient = register_or_update_patient(changes, patient)
    log_action(user=request.user, action='patient_update', object_type='patient', object_id=pk,
               detail={'fields': sorted(changes)})
    return Response({'ok': True, 'data': serialize_patient(patient)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def patient_history_view(request, pk: int):
    patient = get_or_404(Patient.objects.all(), 'Patient not found.', pk=pk)
    return Response({'ok': True, 'patient': serialize_patient(patient), 'data': patient_history(patient)})
