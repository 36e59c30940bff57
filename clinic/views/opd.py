"""
Outpatient desk views: appointments, on-call entries, bills, prescriptions
and the daily OPD summary.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import get_or_404
from clinic.models import OPDOnCall, OPDPrescription, OPDRegistration, OPDSummary, Patient
from clinic.permissions import IsAdminRole, IsClinicalRole, IsDeskRole
from clinic.serializers.opd import (
    AppointmentSerializer,
    AppointmentUpdateSerializer,
    BookOnCallSerializer,
    OPDListQuerySerializer,
    PrescriptionSerializer,
)
from clinic.serializers.patient import PageQuerySerializer, paginate
from clinic.serializers.reports import DayQuerySerializer
from clinic.services import opd as opd_service
from clinic.services.audit import log_action
from clinic.services.patients import find_existing_patient


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def appointments(request):
    if request.method == 'POST':
        s = AppointmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        existing = None
        if vd.get('existingPatientId'):
            existing = get_or_404(Patient.objects.all(), 'Patient not found.', pk=vd['existingPatientId'])
        elif vd.get('uhid'):
            existing = find_existing_patient(uhid=vd['uhid'])
        result = opd_service.create_appointment(
            patient_data=s.patient_data(),
            existing_patient=existing,
            appointment_type=vd['appointmentType'],
            modalities=vd.get('modalities') or [],
            payment=vd.get('payment'),
            refer_by=vd['referBy'],
            additional_notes=vd['additionalNotes'],
            time=vd.get('time'),
            user=request.user,
        )
        log_action(user=request.user, action='opd_create', object_type='patient', object_id=result['patientId'],
                   detail={k: v for k, v in result.items() if k != 'patientId'})
        return Response({'ok': True, **result}, status=status.HTTP_201_CREATED)

    q = OPDListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = opd_service.filter_opd(date_filter=vd.get('filter'), day=vd.get('date'), q=vd.get('q'))
    rows, pagination = paginate(qs, vd)
    return Response({'ok': True, 'data': [opd_service.serialize_opd(o) for o in rows], 'pagination': pagination})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsDeskRole])
def appointment_detail(request, pk: int):
    opd = get_or_404(OPDRegistration.objects.select_related('patient'), 'Appointment not found.', pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': opd_service.serialize_opd(opd)})
    if request.method == 'DELETE':
        opd.delete()
        log_action(user=request.user, action='opd_delete', object_type='opd', object_id=pk,
                   detail={'uhid': opd.uhid, 'billNo': opd.bill_no})
        return Response({'ok': True})

    s = AppointmentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    opd = opd_service.update_appointment(
        opd,
        patient_data=s.patient_data(),
        modalities=vd.get('modalities'),
        payment=vd.get('payment'),
        refer_by=vd.get('referBy'),
        additional_notes=vd.get('additionalNotes'),
    )
    return Response({'ok': True, 'data': opd_service.serialize_opd(opd)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeskRole])
def appointment_bill(request, pk: int):
    opd = get_or_404(OPDRegistration.objects.select_related('patient'), 'Appointment not found.', pk=pk)
    return Response({'ok': True, 'data': opd_service.opd_bill(opd)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def prescription(request, pk: int):
    opd = get_or_404(OPDRegistration.objects.all(), 'Appointment not found.', pk=pk)
    if request.method == 'GET':
        presc = OPDPrescription.objects.filter(opd=opd).first()
        return Response({'ok': True, 'data': opd_service.serialize_prescription(presc) if presc else None})
    s = PrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    presc = opd_service.save_prescription(opd, s.prescription_data(), request.user)
    return Response({'ok': True, 'data': opd_service.serialize_prescription(presc)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeskRole])
def oncall_list(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = OPDOnCall.objects.select_related('patient').order_by('-created_at', '-id')
    rows, pagination = paginate(qs, q.validated_data)
    return Response({'ok': True, 'data': [opd_service.serialize_oncall(o) for o in rows], 'pagination': pagination})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsDeskRole])
def oncall_detail(request, pk: int):
    oncall = get_or_404(OPDOnCall.objects.all(), 'On-call entry not found.', pk=pk)
    oncall.delete()
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def oncall_book(request, pk: int):
    oncall = get_or_404(OPDOnCall.objects.select_related('patient'), 'On-call entry not found.', pk=pk)
    s = BookOnCallSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    opd = opd_service.book_on_call(oncall, modalities=s.validated_data['modalities'],
                                   payment=s.validated_data.get('payment'), user=request.user)
    return Response({'ok': True, 'uhid': opd.uhid, 'opdId': opd.id, 'billNo': opd.bill_no},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def opd_summary(request):
    q = DayQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    day = q.validated_data.get('date') or timezone.localdate()
    row = OPDSummary.objects.filter(date=day).first()
    return Response({'ok': True, 'data': {
        'date': day.isoformat(),
        'totalCount': row.total_count if row else 0,
        'totalRevenue': row.total_revenue if row else 0,
        'cashRevenue': row.cash_revenue if row else 0,
        'onlineRevenue': row.online_revenue if row else 0,
        'totalDiscount': row.total_discount if row else 0,
    }})
