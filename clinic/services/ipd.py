"""
Inpatient admissions and the bed they occupy.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict
from clinic.models import Bed, IPDRegistration
from clinic.services import beds as bed_service
from clinic.services.billing import billing_totals, payment_entry
from clinic.services.doctors import to_amount
from clinic.services.patients import find_existing_patient, register_or_update_patient, serialize_patient

logger = logging.getLogger(__name__)

ADMISSION_FIELDS = (
    'admission_source', 'admission_type', 'under_care_of_doctor', 'relative_name', 'relative_ph_no',
    'relative_address', 'admission_date', 'admission_time', 'mrd', 'tpa',
)


def _validate_admission(form: dict) -> None:
    errors = {}
    if not (form.get('name') or '').strip():
        errors['name'] = 'Patient name is required.'
    if not (form.get('number') or '').strip():
        errors['phone'] = 'Phone number is required.'
    if not (form.get('room_type') or '').strip():
        errors['roomType'] = 'Room type is required.'
    if not form.get('bed'):
        errors['bed'] = 'Bed is required.'
    if to_amount(form.get('deposit_amount')) > 0 and form.get('payment_type') == 'online' and not form.get('through'):
        errors['through'] = 'Select how the online payment was received.'
    if errors:
        raise ValidationError(errors)


def _check_room(bed: Bed, room_type: Optional[str]) -> None:
    if room_type and bed.room_type.lower() != room_type.strip().lower():
        raise ValidationError({'bed': f'Bed {bed.bed_number} is not in {room_type}.'})


@transaction.atomic
def admit(form: dict, user=None) -> IPDRegistration:
    """Register an admission: patient upsert, opening deposit and bed occupation."""
    _validate_admission(form)
    patient = find_existing_patient(uhid=form.get('uhid'), name=form.get('name'), phone=form.get('number'))
    patient = register_or_update_patient(form, patient)
    bed = bed_service.occupy(form['bed'])
    _check_room(bed, form.get('room_type'))

    payments = []
    deposit = to_amount(form.get('deposit_amount'))
    if deposit > 0:
        payment_type = form.get('payment_type') or 'cash'
        payments.append(payment_entry(deposit, amount_type='deposit', payment_type=payment_type,
                                      transaction_type='deposit', through=form.get('through') or 'cash'))

    now = timezone.localtime()
    ipd = IPDRegistration(
        patient=patient,
        uhid=patient.uhid,
        bed=bed,
        payment_detail=payments,
        service_detail=[],
        entered_by=user if getattr(user, 'pk', None) else None,
    )
    for field in ADMISSION_FIELDS:
        if form.get(field) is not None:
            setattr(ipd, field, form[field])
    ipd.admission_date = ipd.admission_date or now.date()
    ipd.admission_time = ipd.admission_time or now.time().replace(second=0, microsecond=0)
    ipd.save()
    logger.info(f"Admitted {patient.uhid} to {bed.room_type}/{bed.bed_number} as IPD {ipd.pk}")
    return ipd


@transaction.atomic
def update_admission(ipd: IPDRegistration, form: dict) -> IPDRegistration:
    """Edit an admission; moving an active admission to another bed frees the old one."""
    ipd = IPDRegistration.objects.select_for_update().select_related('patient', 'bed').get(pk=ipd.pk)
    register_or_update_patient(form, ipd.patient)
    new_bed_id = form.get('bed')
    if new_bed_id and new_bed_id != ipd.bed_id:
        if ipd.discharge_date is not None:
            raise Conflict(f'IPD {ipd.pk} is discharged; its bed cannot be changed.')
        old_bed = ipd.bed
        new_bed = bed_service.occupy(new_bed_id)
        _check_room(new_bed, form.get('room_type'))
        bed_service.release(old_bed)
        ipd.bed = new_bed
    for field in ADMISSION_FIELDS:
        if form.get(field) is not None:
            setattr(ipd, field, form[field])
    ipd.save()
    return ipd


@transaction.atomic
def delete_admission(ipd: IPDRegistration) -> None:
    bed = ipd.bed
    ipd.delete()
    if bed is not None and not bed.admissions.filter(discharge_date__isnull=True).exists():
        bed_service.release(bed)


def save_notes(ipd: IPDRegistration, note: str) -> IPDRegistration:
    ipd.ipd_notes = note or ''
    ipd.save(update_fields=['ipd_notes', 'updated_at'])
    return ipd


def _search(qs, q: Optional[str]):
    if q:
        q = q.strip()
        qs = qs.filter(Q(patient__name__icontains=q) | Q(patient__number__icontains=q) | Q(uhid__icontains=q))
    return qs


def active_admissions(*, q: Optional[str] = None, ward: Optional[str] = None):
    qs = IPDRegistration.objects.filter(discharge_date__isnull=True).select_related('patient', 'bed')
    if ward:
        qs = qs.filter(bed__room_type__iexact=ward.strip())
    return _search(qs, q).order_by('-created_at', '-id')


def discharged_admissions(*, phone: Optional[str] = None, q: Optional[str] = None):
    qs = IPDRegistration.objects.filter(discharge_date__isnull=False).select_related('patient', 'bed')
    if phone:
        qs = qs.filter(Q(patient__number__icontains=phone.strip()) | Q(relative_ph_no__icontains=phone.strip()))
    return _search(qs, q).order_by('-discharge_date', '-id')


def serialize_ipd(ipd: IPDRegistration, *, with_ledger: bool = False) -> dict:
    data = {
        'id': ipd.id,
        'uhid': ipd.uhid,
        'patient': serialize_patient(ipd.patient),
        'admissionSource': ipd.admission_source,
        'admissionType': ipd.admission_type,
        'underCareOfDoctor': ipd.under_care_of_doctor,
        'roomType': ipd.bed.room_type if ipd.bed else None,
        'bed': bed_service.serialize_bed(ipd.bed) if ipd.bed else None,
        'relativeName': ipd.relative_name,
        'relativePhone': ipd.relative_ph_no,
        'relativeAddress': ipd.relative_address,
        'admissionDate': ipd.admission_date.isoformat() if ipd.admission_date else None,
        'admissionTime': ipd.admission_time.strftime('%H:%M') if ipd.admission_time else None,
        'mrd': ipd.mrd,
        'tpa': ipd.tpa,
        'dischargeDate': timezone.localtime(ipd.discharge_date).isoformat() if ipd.discharge_date else None,
        'ipdNotes': ipd.ipd_notes,
        'createdAt': timezone.localtime(ipd.created_at).isoformat(),
        'totals': billing_totals(ipd),
    }
    if with_ledger:
        data['serviceDetail'] = ipd.service_detail
        data['paymentDetail'] = ipd.payment_detail
    return data
