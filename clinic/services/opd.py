"""
Outpatient desk: appointments, on-call entries, daily summary and
prescriptions.

An appointment either logs an on-call request (no billing) or creates an
OPD registration with the selected modalities (consultation, x-ray,
pathology, ...) and the payment taken at the desk. Every new registration
bumps the running :class:`OPDSummary` row of its day.
"""
from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import OPDRegistration, OPDOnCall, OPDSummary, OPDPrescription, Patient
from clinic.services.doctors import to_amount
from clinic.services.patients import register_or_update_patient, serialize_patient
from clinic.services.sequences import next_opd_bill_no

logger = logging.getLogger(__name__)

MODALITY_TYPES = ('consultation', 'casualty', 'xray', 'pathology', 'ipd', 'radiology', 'custom', 'cardiology')
PAYMENT_METHODS = ('cash', 'online', 'mixed', 'card-credit', 'card-debit')
ONLINE_METHODS = {'online', 'card-credit', 'card-debit'}
APPOINTMENT_ONCALL = 'oncall'


def build_service_info(modalities: Iterable[dict]) -> list[dict]:
    info = []
    for m in modalities:
        if m.get('type') not in MODALITY_TYPES:
            raise ValidationError({'modalities': f'Unknown service type "{m.get("type")}".'})
        info.append({
            'type': m['type'],
            'doctor': m.get('doctor') or None,
            'specialist': m.get('specialist') or None,
            'visitType': m.get('visitType') or None,
            'service': m.get('service') or None,
            'charges': to_amount(m.get('charges')),
        })
    return info


def build_payment_info(payment: dict, total_charges: float) -> dict:
    """Normalise the desk payment against the billed total.

    The cash/online split defaults from the payment method when the form
    did not send one.
    """
    method = payment.get('paymentMethod') or 'cash'
    if method not in PAYMENT_METHODS:
        raise ValidationError({'paymentMethod': f'Unknown payment method "{method}".'})
    discount = to_amount(payment.get('discount'))
    if discount > total_charges:
        raise ValidationError({'discount': 'Discount cannot exceed total charges.'})
    cash = to_amount(payment.get('cashAmount'))
    online = to_amount(payment.get('onlineAmount'))
    if payment.get('totalPaid') not in (None, ''):
        total_paid = to_amount(payment.get('totalPaid'))
    elif method == 'mixed':
        total_paid = cash + online
    else:
        total_paid = total_charges - discount
    if method == 'cash' and not cash:
        cash = total_paid
    elif method in ONLINE_METHODS and not online:
        online = total_paid
    return {
        'paymentMethod': method,
        'totalCharges': total_charges,
        'discount': discount,
        'totalPaid': total_paid,
        'cashAmount': cash,
        'onlineAmount': online,
        'cashThrough': payment.get('cashThrough') or None,
        'onlineThrough': payment.get('onlineThrough') or None,
    }


def _bump_summary(day: datetime.date, payment_info: dict) -> None:
    OPDSummary.objects.get_or_create(date=day)
    OPDSummary.objects.filter(date=day).update(
        total_count=F('total_count') + 1,
        total_revenue=F('total_revenue') + Decimal(str(payment_info['totalPaid'])),
        cash_revenue=F('cash_revenue') + Decimal(str(payment_info['cashAmount'])),
        online_revenue=F('online_revenue') + Decimal(str(payment_info['onlineAmount'])),
        total_discount=F('total_discount') + Decimal(str(payment_info['discount'])),
        updated_at=timezone.now(),
    )


def _register(patient: Patient, *, modalities, payment, refer_by='', additional_notes='', user=None) -> OPDRegistration:
    service_info = build_service_info(modalities)
    if not service_info:
        raise ValidationError({'modalities': 'Please select at least one service.'})
    total = sum(m['charges'] for m in service_info)
    payment_info = build_payment_info(payment or {}, total)
    opd = OPDRegistration.objects.create(
        patient=patient,
        uhid=patient.uhid,
        bill_no=next_opd_bill_no(),
        date=timezone.localdate(),
        refer_by=(refer_by or '').strip(),
        additional_notes=(additional_notes or '').strip(),
        service_info=service_info,
        payment_info=payment_info,
        entered_by=user if getattr(user, 'pk', None) else None,
    )
    _bump_summary(opd.date, payment_info)
    logger.info(f"OPD bill {opd.bill_no} for {patient.uhid}: paid {payment_info['totalPaid']}")
    return opd


@transaction.atomic
def create_appointment(*, patient_data: dict, existing_patient: Optional[Patient] = None,
                       appointment_type: str = 'visithospital', modalities=(), payment: Optional[dict] = None,
                       refer_by: str = '', additional_notes: str = '', time: Optional[datetime.time] = None,
                       user=None) -> dict:
    patient = register_or_update_patient(patient_data, existing_patient)
    if appointment_type == APPOINTMENT_ONCALL:
        oncall = OPDOnCall.objects.create(
            patient=patient,
            uhid=patient.uhid,
            date=timezone.localdate(),
            time=time or timezone.localtime().time().replace(microsecond=0),
            referred_by=(refer_by or '').strip(),
            additional_notes=(additional_notes or '').strip(),
            entered_by=user if getattr(user, 'pk', None) else None,
        )
        return {'uhid': patient.uhid, 'patientId': patient.id, 'onCallId': oncall.id}
    opd = _register(patient, modalities=modalities, payment=payment, refer_by=refer_by,
                    additional_notes=additional_notes, user=user)
    return {'uhid': patient.uhid, 'patientId': patient.id, 'opdId': opd.id, 'billNo': opd.bill_no}


@transaction.atomic
def update_appointment(opd: OPDRegistration, *, patient_data: dict, modalities=None, payment: Optional[dict] = None,
                       refer_by: Optional[str] = None, additional_notes: Optional[str] = None) -> OPDRegistration:
    """Edit a registration and its patient. The day summary keeps the booked figures."""
    register_or_update_patient(patient_data, opd.patient)
    if modalities is not None:
        opd.service_info = build_service_info(modalities)
        if not opd.service_info:
            raise ValidationError({'modalities': 'Please select at least one service.'})
    if payment is not None or modalities is not None:
        total = sum(m['charges'] for m in opd.service_info)
        opd.payment_info = build_payment_info(payment or opd.payment_info, total)
    if refer_by is not None:
        opd.refer_by = refer_by.strip()
    if additional_notes is not None:
        opd.additional_notes = additional_notes.strip()
    opd.save()
    return opd


@transaction.atomic
def book_on_call(oncall: OPDOnCall, *, modalities, payment: Optional[dict] = None, user=None) -> OPDRegistration:
    """Bill an on-call entry as a regular OPD visit and drop the on-call row."""
    opd = _register(oncall.patient, modalities=modalities, payment=payment, refer_by=oncall.referred_by,
                    additional_notes=oncall.additional_notes, user=user)
    oncall.delete()
    return opd


def rebuild_summary(day: datetime.date) -> OPDSummary:
    """Recompute a day's summary from its registrations."""
    count = 0
    totals = {'totalPaid': Decimal('0'), 'cashAmount': Decimal('0'), 'onlineAmount': Decimal('0'), 'discount': Decimal('0')}
    for info in OPDRegistration.objects.filter(date=day).values_list('payment_info', flat=True):
        count += 1
        for key in totals:
            totals[key] += Decimal(str((info or {}).get(key) or 0))
    summary, _ = OPDSummary.objects.update_or_create(date=day, defaults={
        'total_count': count,
        'total_revenue': totals['totalPaid'],
        'cash_revenue': totals['cashAmount'],
        'online_revenue': totals['onlineAmount'],
        'total_discount': totals['discount'],
    })
    return summary


def filter_opd(*, date_filter: Optional[str] = None, day: Optional[datetime.date] = None, q: Optional[str] = None):
    qs = OPDRegistration.objects.select_related('patient').order_by('-created_at', '-id')
    today = timezone.localdate()
    if day:
        qs = qs.filter(date=day)
    elif date_filter == 'today':
        qs = qs.filter(date=today)
    elif date_filter == '7days':
        qs = qs.filter(date__gte=today - datetime.timedelta(days=6), date__lte=today)
    if q:
        q = q.strip()
        qs = qs.filter(Q(patient__name__icontains=q) | Q(patient__number__icontains=q) | Q(uhid__icontains=q))
    return qs


def serialize_opd(opd: OPDRegistration) -> dict:
    return {
        'id': opd.id,
        'uhid': opd.uhid,
        'billNo': opd.bill_no,
        'date': opd.date.isoformat(),
        'referBy': opd.refer_by,
        'additionalNotes': opd.additional_notes,
        'serviceInfo': opd.service_info,
        'paymentInfo': opd.payment_info,
        'createdAt': timezone.localtime(opd.created_at).isoformat(),
        'patient': serialize_patient(opd.patient),
    }


def serialize_oncall(o: OPDOnCall) -> dict:
    return {
        'id': o.id,
        'uhid': o.uhid,
        'date': o.date.isoformat(),
        'time': o.time.strftime('%H:%M'),
        'referredBy': o.referred_by,
        'additionalNotes': o.additional_notes,
        'createdAt': timezone.localtime(o.created_at).isoformat(),
        'patient': serialize_patient(o.patient),
    }


def opd_bill(opd: OPDRegistration) -> dict:
    info = opd.payment_info or {}
    items = [{
        'description': m.get('service') or (f"{m['type'].title()} - Dr. {m['doctor']}" if m.get('doctor') else m['type'].title()),
        'type': m['type'],
        'visitType': m.get('visitType'),
        'amount': m.get('charges', 0),
    } for m in opd.service_info or []]
    return {
        'billNo': opd.bill_no,
        'date': opd.date.isoformat(),
        'patient': serialize_patient(opd.patient),
        'items': items,
        'totalCharges': info.get('totalCharges', sum(i['amount'] for i in items)),
        'discount': info.get('discount', 0),
        'totalPaid': info.get('totalPaid', 0),
        'paymentMethod': info.get('paymentMethod'),
        'balance': round(info.get('totalCharges', 0) - info.get('discount', 0) - info.get('totalPaid', 0), 2),
    }


def save_prescription(opd: OPDRegistration, data: dict, user=None) -> OPDPrescription:
    author = getattr(user, 'username', '') or ''
    presc, created = OPDPrescription.objects.get_or_create(opd=opd, defaults={'uhid': opd.uhid, 'created_by': author})
    presc.symptoms = data.get('symptoms', presc.symptoms) or ''
    presc.medicines = data.get('medicines', presc.medicines) or []
    presc.overall_instruction = data.get('overall_instruction', presc.overall_instruction) or ''
    presc.updated_by = author
    presc.save()
    return presc


def serialize_prescription(p: OPDPrescription) -> dict:
    return {
        'opdId': p.opd_id,
        'uhid': p.uhid,
        'symptoms': p.symptoms,
        'medicines': p.medicines,
        'overallInstruction': p.overall_instruction,
        'createdBy': p.created_by,
        'updatedBy': p.updated_by,
        'updatedAt': timezone.localtime(p.updated_at).isoformat(),
    }
