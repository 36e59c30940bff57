from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db.models import Q

from clinic.models import Doctor

IPD_ROOM_KEYS = ('female', 'male', 'casuality', 'delux', 'nicu', 'suit', 'icu')


def to_amount(value) -> float:
    """Parse a charge entered in a form; blanks and junk count as 0."""
    if value in (None, ''):
        return 0.0
    try:
        return float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return 0.0


def build_ipd_charges(values: Optional[dict]) -> dict:
    values = values or {}
    return {key: to_amount(values.get(key)) for key in IPD_ROOM_KEYS}


def build_charges(department: str, name: str, *, first_visit=None, follow_up=None,
                  ipd_charges: Optional[dict] = None, charge_id: Optional[str] = None) -> list[dict]:
    charge_id = charge_id or uuid.uuid4().hex
    if department == 'ipd':
        return [{'id': charge_id, 'name': name, 'department': 'IPD', 'ipdCharges': build_ipd_charges(ipd_charges)}]
    charge = {
        'id': charge_id,
        'name': name,
        'department': 'Both' if department == 'both' else 'OPD',
        'firstVisitCharge': to_amount(first_visit),
        'followUpCharge': to_amount(follow_up),
    }
    if department == 'both':
        charge['ipdCharges'] = build_ipd_charges(ipd_charges)
    return [charge]


def _charge(doctor: Doctor) -> dict:
    return (doctor.charges or [{}])[0] or {}


def consultation_charge(doctor: Doctor, visit_type: str = 'first') -> float:
    charge = _charge(doctor)
    key = 'followUpCharge' if visit_type == 'followup' else 'firstVisitCharge'
    return to_amount(charge.get(key))


def ipd_charge(doctor: Doctor, room_type: str) -> float:
    rooms = _charge(doctor).get('ipdCharges') or {}
    return to_amount(rooms.get((room_type or '').strip().lower()))


def save_doctor(data: dict, doctor: Optional[Doctor] = None) -> Doctor:
    """Create or update a doctor; the charge id survives updates."""
    doctor = doctor or Doctor()
    existing_id = _charge(doctor).get('id') if doctor.pk else None
    doctor.dr_name = data['dr_name'].strip()
    doctor.department = data['department']
    doctor.specialist = list(data.get('specialist') or [])
    doctor.charges = build_charges(
        doctor.department, doctor.dr_name,
        first_visit=data.get('first_visit_charge'),
        follow_up=data.get('follow_up_charge'),
        ipd_charges=data.get('ipd_charges'),
        charge_id=existing_id,
    )
    doctor.save()
    return doctor


def filter_doctors(*, department: Optional[str] = None, q: Optional[str] = None):
    qs = Doctor.objects.all().order_by('dr_name')
    if department in ('opd', 'ipd'):
        qs = qs.filter(department__in=[department, 'both'])
    elif department == 'both':
        qs = qs.filter(department='both')
    if q:
        qs = qs.filter(Q(dr_name__icontains=q.strip()))
    return qs


def serialize_doctor(d: Doctor) -> dict:
    return {
        'id': d.id,
        'name': d.dr_name,
        'department': d.department,
        'specialist': d.specialist,
        'charges': d.charges,
    }
