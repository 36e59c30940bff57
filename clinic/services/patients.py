"""
Patient registry: registration, lookup and the shared patient header.
"""
from __future__ import annotations

import calendar
import datetime
import logging
from typing import Optional

from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Patient, IPDRegistration
from clinic.services.sequences import generate_next_uhid

logger = logging.getLogger(__name__)

AGE_UNIT_ALIASES = {
    'year': 'year', 'years': 'year',
    'month': 'month', 'months': 'month',
    'day': 'day', 'days': 'day',
}
PATIENT_FIELDS = ('name', 'number', 'age', 'age_unit', 'dob', 'gender', 'address')


def normalize_age_unit(unit: Optional[str]) -> str:
    return AGE_UNIT_ALIASES.get((unit or 'year').strip().lower(), 'year')


def shift_months(day: datetime.date, months: int) -> datetime.date:
    """Move ``day`` back by ``months``, clamping to the last day of the month."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last))


def dob_from_age(age: Optional[int], unit: str = 'year', today: Optional[datetime.date] = None) -> Optional[datetime.date]:
    if age is None:
        return None
    today = today or timezone.localdate()
    unit = normalize_age_unit(unit)
    if unit == 'day':
        return today - datetime.timedelta(days=age)
    if unit == 'month':
        return shift_months(today, age)
    return shift_months(today, age * 12)


def _apply(patient: Patient, data: dict) -> None:
    for field in PATIENT_FIELDS:
        if field in data and data[field] is not None:
            setattr(patient, field, data[field])
    if 'age_unit' in data:
        patient.age_unit = normalize_age_unit(data.get('age_unit'))
    if data.get('age') is not None and not data.get('dob'):
        patient.dob = dob_from_age(data['age'], patient.age_unit)


def register_or_update_patient(data: dict, patient: Optional[Patient] = None) -> Patient:
    """Update ``patient`` with ``data`` or register a new patient with a fresh UHID."""
    if patient is None:
        if not (data.get('name') or '').strip():
            raise ValidationError({'name': 'Patient name is required.'})
        patient = Patient(uhid=generate_next_uhid())
        logger.info(f"Registering patient {patient.uhid}")
    _apply(patient, data)
    patient.save()
    return patient


def find_existing_patient(*, uhid: Optional[str] = None, name: Optional[str] = None,
                          phone: Optional[str] = None) -> Optional[Patient]:
    """Look a patient up by UHID, falling back to exact name + phone."""
    if uhid:
        found = Patient.objects.filter(uhid=uhid).first()
        if found:
            return found
    if name and phone:
        return Patient.objects.filter(name=name.strip(), number=phone.strip()).order_by('-id').first()
    return None


def search_by_uhid(uhid: str) -> Patient:
    patient = Patient.objects.filter(uhid=(uhid or '').strip()).first()
    if not patient:
        raise NotFound('Patient not found with this UHID.')
    return patient


def search_by_phone(phone: str) -> list[Patient]:
    phone = (phone or '').strip()
    if not phone.isdigit():
        raise ValidationError({'phone': 'Invalid phone number format.'})
    patients = list(Patient.objects.filter(number=phone).order_by('-created_at'))
    if not patients:
        raise NotFound('No patients found with this phone number.')
    return patients


def filter_patients(q: Optional[str] = None):
    qs = Patient.objects.all().order_by('-created_at', '-id')
    if q:
        q = q.strip()
        qs = qs.filter(Q(name__icontains=q) | Q(number__icontains=q) | Q(uhid__icontains=q))
    return qs


def serialize_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'uhid': p.uhid,
        'name': p.name,
        'phone': p.number,
        'age': p.age,
        'ageUnit': p.age_unit,
        'dob': p.dob.isoformat() if p.dob else None,
        'gender': p.gender,
        'address': p.address,
        'createdAt': timezone.localtime(p.created_at).isoformat() if p.created_at else None,
    }


def patient_history(patient: Patient) -> list[dict]:
    """Every OPD visit, IPD admission and OT procedure of a patient, newest first."""
    events: list[dict] = []
    for opd in patient.opd_registrations.all():
        events.append({
            'kind': 'OPD',
            'id': opd.id,
            'date': opd.date.isoformat(),
            'createdAt': opd.created_at,
            'billNo': opd.bill_no,
            'services': [m.get('service') or m.get('type') for m in opd.service_info or []],
            'amount': (opd.payment_info or {}).get('totalPaid', 0),
        })
    for ipd in patient.ipd_registrations.select_related('bed'):
        events.append({
            'kind': 'IPD',
            'id': ipd.id,
            'date': (ipd.admission_date or timezone.localdate(ipd.created_at)).isoformat(),
            'createdAt': ipd.created_at,
            'doctor': ipd.under_care_of_doctor,
            'roomType': ipd.bed.room_type if ipd.bed else None,
            'dischargeDate': ipd.discharge_date,
        })
        detail = getattr(ipd, 'ot_detail', None)
        if detail is not None:
            events.append({
                'kind': 'OT',
                'id': detail.id,
                'ipdId': ipd.id,
                'date': detail.ot_date.isoformat(),
                'createdAt': detail.created_at,
                'otType': detail.ot_type,
            })
    events.sort(key=lambda e: (e['date'], e['createdAt']), reverse=True)
    return events


def patient_header(ipd: IPDRegistration) -> dict:
    """Header block printed on top of every clinical form."""
    p = ipd.patient
    age = f"{p.age} {p.age_unit}{'s' if p.age != 1 else ''}" if p.age is not None else ''
    return {
        'ipdId': ipd.id,
        'uhid': p.uhid,
        'name': p.name,
        'age': age,
        'gender': p.gender,
        'ageGender': ' / '.join(x for x in (age, p.gender) if x),
        'phone': p.number,
        'address': p.address,
        'admissionDate': ipd.admission_date.isoformat() if ipd.admission_date else None,
        'admissionTime': ipd.admission_time.strftime('%H:%M') if ipd.admission_time else None,
        'underCareOfDoctor': ipd.under_care_of_doctor,
        'roomType': ipd.bed.room_type if ipd.bed else None,
        'bedNumber': ipd.bed.bed_number if ipd.bed else None,
        'discharged': ipd.discharge_date is not None,
    }
