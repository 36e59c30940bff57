"""
Master data: doctors, billable services, beds and signature PINs.

Doctor and service lists feed every registration form, so they are cached
briefly and the cache is invalidated on every write.
"""
from __future__ import annotations

from django.core.cache import cache
from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import Conflict, get_or_404
from clinic.models import Bed, Doctor, MasterService
from clinic.permissions import IsAdminOrReadOnly, IsClinicalRole, IsDeskRole
from clinic.serializers.masters import (
    BedListQuerySerializer,
    BedSerializer,
    DoctorListQuerySerializer,
    DoctorSerializer,
    MasterServiceSerializer,
    SignatureLookupSerializer,
)
from clinic.serializers.patient import PageQuerySerializer
from clinic.services import beds as bed_service
from clinic.services.doctors import filter_doctors, save_doctor, serialize_doctor
from clinic.services.master_services import filter_services, serialize_service
from clinic.services.signatures import lookup

LIST_CACHE_SECONDS = 60


def _version(name: str) -> int:
    return cache.get_or_set(f"{name}:version", 1, None)


def _bump(name: str) -> None:
    try:
        cache.incr(f"{name}:version")
    except ValueError:
        cache.set(f"{name}:version", 2, None)


# ---------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def doctors(request):
    if request.method == 'POST':
        s = DoctorSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        doctor = save_doctor(s.doctor_data())
        _bump('doctors')
        return Response({'ok': True, 'data': serialize_doctor(doctor)}, status=status.HTTP_201_CREATED)

    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    department = q.validated_data.get('department')
    term = (q.validated_data.get('q') or '').strip()
    cache_key = f"doctors:v={_version('doctors')}:d={department or ''}:q={term}"
    cached = cache.get(cache_key)
    if cached:
        return Response(cached)
    payload = {'ok': True, 'data': [serialize_doctor(d) for d in filter_doctors(department=department, q=term)]}
    cache.set(cache_key, payload, LIST_CACHE_SECONDS)
    return Response(payload)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def doctor_detail(request, pk: int):
    doctor = get_or_404(Doctor.objects.all(), 'Doctor not found.', pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_doctor(doctor)})
    if request.method == 'DELETE':
        doctor.delete()
        _bump('doctors')
        return Response({'ok': True})
    s = DoctorSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = save_doctor(s.doctor_data(), doctor)
    _bump('doctors')
    return Response({'ok': True, 'data': serialize_doctor(doctor)})


# ---------------------------------------------------------------------
# Master services
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def services(request):
    if request.method == 'POST':
        s = MasterServiceSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        svc = MasterService.objects.create(service_name=s.validated_data['serviceName'],
                                           amount=s.validated_data['amount'])
        _bump('services')
        return Response({'ok': True, 'data': serialize_service(svc)}, status=status.HTTP_201_CREATED)

    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    term = (q.validated_data.get('q') or '').strip()
    cache_key = f"services:v={_version('services')}:q={term}"
    cached = cache.get(cache_key)
    if cached:
        return Response(cached)
    payload = {'ok': True, 'data': [serialize_service(x) for x in filter_services(term)]}
    cache.set(cache_key, payload, LIST_CACHE_SECONDS)
    return Response(payload)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def service_detail(request, pk: int):
    svc = get_or_404(MasterService.objects.all(), 'Service not found.', pk=pk)
    if request.method == 'DELETE':
        svc.delete()
        _bump('services')
        return Response({'ok': True})
    s = MasterServiceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    svc.service_name = s.validated_data['serviceName']
    svc.amount = s.validated_data['amount']
    svc.save()
    _bump('services')
    return Response({'ok': True, 'data': serialize_service(svc)})


# ---------------------------------------------------------------------
# Beds
# ---------------------------------------------------------------------
def _ensure_unique_bed(room_type: str, bed_number: str, exclude=None) -> None:
    qs = Bed.objects.filter(room_type__iexact=room_type, bed_number__iexact=bed_number)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise Conflict(f'Bed {bed_number} already exists in {room_type}.')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def beds(request):
    if request.method == 'POST':
        s = BedSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        _ensure_unique_bed(vd['roomType'], vd['bedNumber'])
        with transaction.atomic():
            bed = Bed.objects.create(room_type=vd['roomType'], bed_number=vd['bedNumber'],
                                     bed_type=vd['bedType'], status=vd['status'])
            bed_service.notify_beds_changed(bed)
        return Response({'ok': True, 'data': bed_service.serialize_bed(bed)}, status=status.HTTP_201_CREATED)

    q = BedListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = bed_service.filter_beds(status=vd.get('status'), room_type=vd.get('roomType'), q=vd.get('q'))
    return Response({'ok': True, 'data': [bed_service.serialize_bed(b) for b in qs]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def bed_detail(request, pk: int):
    bed = get_or_404(Bed.objects.all(), 'Bed not found.', pk=pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': bed_service.serialize_bed(bed)})
    if request.method == 'DELETE':
        if bed.admissions.filter(discharge_date__isnull=True).exists():
            raise Conflict('Bed is assigned to an active admission.')
        with transaction.atomic():
            bed_service.notify_beds_changed(bed)
            bed.delete()
        return Response({'ok': True})
    s = BedSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    _ensure_unique_bed(vd['roomType'], vd['bedNumber'], exclude=bed.pk)
    with transaction.atomic():
        bed.room_type = vd['roomType']
        bed.bed_number = vd['bedNumber']
        bed.bed_type = vd['bedType']
        bed.status = vd['status']
        bed.save()
        bed_service.notify_beds_changed(bed)
    return Response({'ok': True, 'data': bed_service.serialize_bed(bed)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def bed_status(request, pk: int):
    bed = get_or_404(Bed.objects.all(), 'Bed not found.', pk=pk)
    with transaction.atomic():
        bed = bed_service.set_bed_status(bed, request.data.get('status'))
    return Response({'ok': True, 'data': bed_service.serialize_bed(bed)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def bed_summary(request):
    return Response({'ok': True, 'data': bed_service.ward_summary()})


# ---------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def signature_lookup(request):
    s = SignatureLookupSerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return Response({'ok': True, 'signatureUrl': lookup(s.validated_data['pin'])})
