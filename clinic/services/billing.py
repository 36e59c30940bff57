"""
IPD billing ledger.

An admission keeps two JSON lists:

``service_detail``
    ``{id, serviceName, doctorName, type, amount, createdAt}`` where ``type``
    is ``service`` (hospital service) or ``doctorvisit`` (consultant visit).
    A quantity of N is stored as N separate items.

``payment_detail``
    ``{id, amount, paymentType, transactionType, amountType, date,
    createdAt, through, remark}`` with ``amountType`` one of ``advance``,
    ``deposit``, ``settlement``, ``refund`` or ``discount``.

Every mutation locks the admission row and rewrites the list.
"""
from __future__ import annotations

import datetime
import logging
import uuid
from collections import OrderedDict
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import IPDRegistration
from clinic.services.doctors import to_amount
from clinic.services.patients import patient_header

logger = logging.getLogger(__name__)

SERVICE = 'service'
DOCTOR_VISIT = 'doctorvisit'
CREDIT_TYPES = ('advance', 'deposit', 'settlement')
AMOUNT_TYPES = CREDIT_TYPES + ('refund', 'discount')
CONSULTANT_PREFIX = 'Consultant Charge: Dr. '


def _now_iso() -> str:
    return timezone.localtime().isoformat()


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _locked(ipd: IPDRegistration) -> IPDRegistration:
    return IPDRegistration.objects.select_for_update().get(pk=ipd.pk)


def service_item(name: str, amount, *, item_type: str = SERVICE, doctor_name: str = '') -> dict:
    return {
        'id': uuid.uuid4().hex,
        'serviceName': name,
        'doctorName': doctor_name,
        'type': item_type,
        'amount': to_amount(amount),
        'createdAt': _now_iso(),
    }


def payment_entry(amount, *, amount_type: str, payment_type: str = 'cash', transaction_type: Optional[str] = None,
                  when: Optional[datetime.datetime] = None, through: Optional[str] = None, remark: str = '') -> dict:
    if amount_type not in AMOUNT_TYPES:
        raise ValidationError({'amountType': f'Unknown amount type "{amount_type}".'})
    when = timezone.localtime(when) if when else timezone.localtime()
    return {
        'id': uuid.uuid4().hex,
        'amount': to_amount(amount),
        'paymentType': payment_type,
        'transactionType': transaction_type or amount_type,
        'amountType': amount_type,
        'date': when.isoformat(),
        'createdAt': _now_iso(),
        'through': through or payment_type,
        'remark': remark or '',
    }


def _expand(name: str, amount, quantity: int, **kwargs) -> list[dict]:
    if not (name or '').strip():
        raise ValidationError({'serviceName': 'Service name is required.'})
    if to_amount(amount) <= 0:
        raise ValidationError({'amount': 'Amount must be greater than 0.'})
    if quantity < 1:
        raise ValidationError({'quantity': 'Quantity must be at least 1.'})
    return [service_item(name.strip(), amount, **kwargs) for _ in range(quantity)]


@transaction.atomic
def add_service(ipd: IPDRegistration, *, name: str, amount, quantity: int = 1) -> list[dict]:
    ipd = _locked(ipd)
    items = _expand(name, amount, quantity)
    ipd.service_detail = list(ipd.service_detail or []) + items
    ipd.save(update_fields=['service_detail', 'updated_at'])
    return items


@transaction.atomic
def add_bulk_services(ipd: IPDRegistration, entries: Iterable[dict]) -> list[dict]:
    ipd = _locked(ipd)
    items: list[dict] = []
    for e in entries:
        item_type = e.get('type') or SERVICE
        if item_type not in (SERVICE, DOCTOR_VISIT):
            raise ValidationError({'type': f'Unknown service type "{item_type}".'})
        items += _expand(e.get('serviceName', ''), e.get('amount'), int(e.get('quantity') or 1),
                         item_type=item_type, doctor_name=e.get('doctorName') or '')
    if not items:
        raise ValidationError({'services': 'No services to add.'})
    ipd.service_detail = list(ipd.service_detail or []) + items
    ipd.save(update_fields=['service_detail', 'updated_at'])
    return items


@transaction.atomic
def add_consultant_visit(ipd: IPDRegistration, *, doctor_name: str, charge, times: int = 1) -> list[dict]:
    ipd = _locked(ipd)
    items = _expand(f"{CONSULTANT_PREFIX}{doctor_name}", charge, times, item_type=DOCTOR_VISIT, doctor_name=doctor_name)
    ipd.service_detail = list(ipd.service_detail or []) + items
    ipd.save(update_fields=['service_detail', 'updated_at'])
    return items


@transaction.atomic
def delete_service_group(ipd: IPDRegistration, *, name: str, amount) -> int:
    """Remove every hospital service item with this name and unit amount."""
    ipd = _locked(ipd)
    amount = to_amount(amount)
    before = list(ipd.service_detail or [])
    kept = [s for s in before
            if not (s.get('type') == SERVICE and s.get('serviceName') == name and to_amount(s.get('amount')) == amount)]
    removed = len(before) - len(kept)
    if not removed:
        raise NotFound('Service not found on this bill.')
    ipd.service_detail = kept
    ipd.save(update_fields=['service_detail', 'updated_at'])
    return removed


@transaction.atomic
def delete_consultant_charges(ipd: IPDRegistration, *, doctor_name: str) -> int:
    ipd = _locked(ipd)
    before = list(ipd.service_detail or [])
    kept = [s for s in before if not (s.get('type') == DOCTOR_VISIT and s.get('doctorName') == doctor_name)]
    removed = len(before) - len(kept)
    if not removed:
        raise NotFound(f'No consultant charges for Dr. {doctor_name}.')
    ipd.service_detail = kept
    ipd.save(update_fields=['service_detail', 'updated_at'])
    return removed


@transaction.atomic
def record_payment(ipd: IPDRegistration, *, amount, payment_type: str, amount_type: str,
                   transaction_type: Optional[str] = None, on_date: Optional[datetime.date] = None,
                   through: Optional[str] = None, remark: str = '') -> dict:
    """Append a payment or refund.

    The entry is stamped with ``on_date`` (the date picked at the desk)
    combined with the current local time.
    """
    if amount_type == 'discount':
        raise ValidationError({'amountType': 'Use the discount endpoint to apply a discount.'})
    if to_amount(amount) <= 0:
        raise ValidationError({'amount': 'Amount must be greater than 0.'})
    if payment_type == 'online' and not through:
        raise ValidationError({'through': 'Select how the online payment was received.'})
    ipd = _locked(ipd)
    now = timezone.localtime()
    when = timezone.make_aware(datetime.datetime.combine(on_date, now.time())) if on_date else now
    entry = payment_entry(amount, amount_type=amount_type, payment_type=payment_type,
                          transaction_type=transaction_type, when=when, through=through, remark=remark)
    ipd.payment_detail = list(ipd.payment_detail or []) + [entry]
    ipd.save(update_fields=['payment_detail', 'updated_at'])
    logger.info(f"IPD {ipd.pk}: {amount_type} {entry['amount']} via {payment_type}")
    return entry


@transaction.atomic
def delete_payment(ipd: IPDRegistration, payment_id: str) -> dict:
    ipd = _locked(ipd)
    payments = list(ipd.payment_detail or [])
    match = next((p for p in payments if p.get('id') == payment_id), None)
    if match is None:
        raise NotFound('Payment not found.')
    ipd.payment_detail = [p for p in payments if p.get('id') != payment_id]
    ipd.save(update_fields=['payment_detail', 'updated_at'])
    return match


@transaction.atomic
def apply_discount(ipd: IPDRegistration, *, amount, given_by: str = '') -> dict:
    """Replace any earlier discount with a single new one."""
    if to_amount(amount) < 0:
        raise ValidationError({'amount': 'Discount cannot be negative.'})
    ipd = _locked(ipd)
    entry = payment_entry(amount, amount_type='discount', payment_type='bill_reduction')
    entry['discountGivenBy'] = given_by
    payments = [p for p in ipd.payment_detail or [] if p.get('amountType') != 'discount']
    ipd.payment_detail = payments + [entry]
    ipd.save(update_fields=['payment_detail', 'updated_at'])
    return entry


def billing_totals(ipd: IPDRegistration) -> dict:
    services = list(ipd.service_detail or [])
    payments = list(ipd.payment_detail or [])
    hospital = sum((_dec(s.get('amount')) for s in services if s.get('type') != DOCTOR_VISIT), Decimal('0'))
    consultants = sum((_dec(s.get('amount')) for s in services if s.get('type') == DOCTOR_VISIT), Decimal('0'))
    credits = sum((_dec(p.get('amount')) for p in payments if p.get('amountType') in CREDIT_TYPES), Decimal('0'))
    refunds = sum((_dec(p.get('amount')) for p in payments if p.get('amountType') == 'refund'), Decimal('0'))
    discount = sum((_dec(p.get('amount')) for p in payments if p.get('amountType') == 'discount'), Decimal('0'))
    total = hospital + consultants
    deposit = credits - refunds
    balance = total - deposit - discount
    return {
        'hospitalServices': hospital,
        'consultantCharges': consultants,
        'totalServices': total,
        'deposit': deposit,
        'refunds': refunds,
        'discount': discount,
        'balance': balance,
        'due': max(balance, Decimal('0')),
        'refundable': max(-balance, Decimal('0')),
    }


def group_services(items: Iterable[dict]) -> list[dict]:
    """Group hospital services by (name, unit amount) for the bill."""
    groups: 'OrderedDict[tuple, dict]' = OrderedDict()
    for s in items:
        if s.get('type') == DOCTOR_VISIT:
            continue
        amount = to_amount(s.get('amount'))
        key = (s.get('serviceName'), amount)
        g = groups.setdefault(key, {'serviceName': key[0], 'amount': amount, 'quantity': 0, 'total': 0.0,
                                    'createdAt': s.get('createdAt')})
        g['quantity'] += 1
        g['total'] = round(g['total'] + amount, 2)
    return list(groups.values())


def aggregate_consultants(items: Iterable[dict]) -> list[dict]:
    by_doctor: 'OrderedDict[str, dict]' = OrderedDict()
    for s in items:
        if s.get('type') != DOCTOR_VISIT:
            continue
        name = s.get('doctorName') or s.get('serviceName', '').replace(CONSULTANT_PREFIX, '')
        row = by_doctor.setdefault(name, {'doctorName': name, 'visited': 0, 'totalCharge': 0.0, 'lastVisit': None})
        row['visited'] += 1
        row['totalCharge'] = round(row['totalCharge'] + to_amount(s.get('amount')), 2)
        created = s.get('createdAt')
        if created and (row['lastVisit'] is None or created > row['lastVisit']):
            row['lastVisit'] = created
    return list(by_doctor.values())


def invoice(ipd: IPDRegistration) -> dict:
    services = list(ipd.service_detail or [])
    payments = sorted(ipd.payment_detail or [], key=lambda p: p.get('date') or '')
    return {
        'header': patient_header(ipd),
        'services': group_services(services),
        'consultants': aggregate_consultants(services),
        'payments': payments,
        'totals': billing_totals(ipd),
        'generatedAt': _now_iso(),
    }
