"""
Dashboard, collection and daily performance (DPR) figures.

Amounts are summed as :class:`~decimal.Decimal` from the JSON ledgers and
returned as numbers. All day bucketing uses hospital local time.
"""
from __future__ import annotations

import datetime
from collections import Counter
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from clinic.models import Bed, DischargeSummary, Doctor, IPDRegistration, OPDRegistration, OTDetail, Patient
from clinic.services.beds import ward_summary
from clinic.services.periods import Period, day_bounds

IPD_DEPOSIT_TYPES = ('advance', 'deposit')
EMERGENCY_ADMISSIONS = ('emergency', 'casualty')


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _sum(values: Iterable) -> Decimal:
    return sum((_dec(v) for v in values), Decimal('0'))


def _local_date(value) -> Optional[datetime.date]:
    """Local calendar date of an ISO timestamp stored in a ledger entry."""
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if timezone.is_naive(parsed):
        return parsed.date()
    return timezone.localdate(parsed)


def opd_in(period: Period):
    return OPDRegistration.objects.filter(created_at__gte=period.start_dt, created_at__lt=period.end_dt)


def ipd_in(period: Period):
    return IPDRegistration.objects.filter(created_at__gte=period.start_dt, created_at__lt=period.end_dt)


def ot_in(period: Period):
    return OTDetail.objects.filter(ot_date__gte=period.start, ot_date__lte=period.end)


def dashboard_statistics(period: Period) -> dict:
    opd_payments = [o or {} for o in opd_in(period).values_list('payment_info', flat=True)]
    ipd_ledgers = [p or [] for p in ipd_in(period).values_list('payment_detail', flat=True)]
    ipd_entries = [e for ledger in ipd_ledgers for e in ledger]
    deposits = [e for e in ipd_entries if e.get('amountType') in IPD_DEPOSIT_TYPES]

    opd_amount = _sum(p.get('totalPaid') for p in opd_payments)
    ipd_deposit = _sum(e.get('amount') for e in deposits)
    return {
        'period': period.as_dict(),
        'totalOpdCount': len(opd_payments),
        'totalOpdAmount': opd_amount,
        'opdCash': _sum(p.get('cashAmount') for p in opd_payments),
        'opdOnline': _sum(p.get('onlineAmount') for p in opd_payments),
        'totalIpdCount': len(ipd_ledgers),
        'totalIpdAmount': ipd_deposit,
        'overallIpdRefunds': _sum(e.get('amount') for e in ipd_entries if e.get('amountType') == 'refund'),
        'ipdCash': _sum(e.get('amount') for e in deposits if e.get('paymentType') == 'cash'),
        'ipdOnline': _sum(e.get('amount') for e in deposits if e.get('paymentType') == 'online'),
        'totalOtCount': ot_in(period).count(),
        'totalRevenue': opd_amount + ipd_deposit,
    }


def appointments(period: Period, q: Optional[str] = None) -> list[dict]:
    """OPD, IPD and OT rows of a period in one list, newest first."""
    opd_qs = opd_in(period).select_related('patient')
    ipd_qs = ipd_in(period).select_related('patient', 'bed')
    ot_qs = ot_in(period).select_related('ipd__patient')
    if q:
        q = q.strip()
        opd_qs = opd_qs.filter(Q(patient__name__icontains=q) | Q(patient__number__icontains=q) | Q(uhid__icontains=q))
        ipd_qs = ipd_qs.filter(Q(patient__name__icontains=q) | Q(patient__number__icontains=q) | Q(uhid__icontains=q))
        ot_qs = ot_qs.filter(Q(ipd__patient__name__icontains=q) | Q(uhid__icontains=q))

    rows = []
    for o in opd_qs:
        created = timezone.localtime(o.created_at)
        rows.append({
            'type': 'OPD', 'id': o.id, 'uhid': o.uhid, 'name': o.patient.name, 'phone': o.patient.number,
            'date': created.date().isoformat(), 'time': created.strftime('%H:%M'), 'sortKey': created,
            'amount': _dec((o.payment_info or {}).get('totalPaid')),
            'services': [m.get('type') for m in o.service_info or []],
        })
    for i in ipd_qs:
        created = timezone.localtime(i.created_at)
        ledger = i.payment_detail or []
        rows.append({
            'type': 'IPD', 'id': i.id, 'uhid': i.uhid, 'name': i.patient.name, 'phone': i.patient.number,
            'date': created.date().isoformat(), 'time': created.strftime('%H:%M'), 'sortKey': created,
            'amount': _sum(e.get('amount') for e in ledger if e.get('amountType') in IPD_DEPOSIT_TYPES),
            'roomType': i.bed.room_type if i.bed else None,
            'doctor': i.under_care_of_doctor,
        })
    for t in ot_qs:
        created = timezone.localtime(t.created_at)
        rows.append({
            'type': 'OT', 'id': t.id, 'uhid': t.uhid, 'name': t.ipd.patient.name, 'phone': t.ipd.patient.number,
            'date': t.ot_date.isoformat(), 'time': created.strftime('%H:%M'), 'sortKey': created,
            'message': t.ot_notes or 'No notes',
        })
    rows.sort(key=lambda r: r['sortKey'], reverse=True)
    for r in rows:
        del r['sortKey']
    return rows


def doctor_consultations(period: Period, limit: Optional[int] = 10) -> list[dict]:
    counts: Counter = Counter()
    for info in opd_in(period).values_list('service_info', flat=True):
        for m in info or []:
            if m.get('type') == 'consultation' and m.get('doctor'):
                counts[m['doctor']] += 1
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit:
        ranked = ranked[:limit]
    return [{'doctor': name, 'count': n} for name, n in ranked]


def three_day_chart(today: Optional[datetime.date] = None) -> dict:
    """OPD/IPD registrations for day-before-yesterday, yesterday and today."""
    today = today or timezone.localdate()
    days = [today - datetime.timedelta(days=d) for d in (2, 1, 0)]
    window = Period(days[0], today)

    def bucket(qs) -> list[int]:
        counts = Counter(timezone.localdate(ts) for ts in qs.values_list('created_at', flat=True))
        return [counts.get(d, 0) for d in days]

    return {
        'labels': [d.isoformat() for d in days],
        'opd': bucket(opd_in(window)),
        'ipd': bucket(ipd_in(window)),
    }


def daily_collection(day: datetime.date) -> dict:
    """Every rupee received or refunded on one local day."""
    _, end = day_bounds(day)
    rows = []
    for o in OPDRegistration.objects.filter(date=day).select_related('patient').order_by('created_at'):
        info = o.payment_info or {}
        for method, key in (('cash', 'cashAmount'), ('online', 'onlineAmount')):
            amount = _dec(info.get(key))
            if amount:
                rows.append({
                    'source': 'OPD', 'recordId': o.id, 'uhid': o.uhid, 'name': o.patient.name,
                    'amount': amount, 'amountType': 'opd', 'paymentType': method,
                    'through': info.get('cashThrough' if method == 'cash' else 'onlineThrough'),
                    'time': timezone.localtime(o.created_at).strftime('%H:%M'),
                })
    # discharged admissions included
    for i in IPDRegistration.objects.filter(created_at__lt=end).select_related('patient'):
        for e in i.payment_detail or []:
            if e.get('amountType') == 'discount' or _local_date(e.get('date')) != day:
                continue
            rows.append({
                'source': 'IPD', 'recordId': i.id, 'uhid': i.uhid, 'name': i.patient.name,
                'amount': _dec(e.get('amount')), 'amountType': e.get('amountType'),
                'paymentType': e.get('paymentType'), 'through': e.get('through'),
                'time': (e.get('date') or '')[11:16],
            })

    def signed(r) -> Decimal:
        return -r['amount'] if r['amountType'] == 'refund' else r['amount']

    by_amount_type: dict[str, Decimal] = {}
    for r in rows:
        by_amount_type[r['amountType']] = by_amount_type.get(r['amountType'], Decimal('0')) + r['amount']
    online_by_through: dict[str, Decimal] = {}
    for r in rows:
        if r['paymentType'] != 'cash':
            through = r['through'] or 'other'
            online_by_through[through] = online_by_through.get(through, Decimal('0')) + signed(r)
    return {
        'date': day.isoformat(),
        'rows': rows,
        'totals': {
            'cash': sum((signed(r) for r in rows if r['paymentType'] == 'cash'), Decimal('0')),
            'online': sum((signed(r) for r in rows if r['paymentType'] != 'cash'), Decimal('0')),
            'opd': sum((r['amount'] for r in rows if r['source'] == 'OPD'), Decimal('0')),
            'ipd': sum((signed(r) for r in rows if r['source'] == 'IPD'), Decimal('0')),
            'refunds': by_amount_type.get('refund', Decimal('0')),
            'net': sum((signed(r) for r in rows), Decimal('0')),
            'byAmountType': by_amount_type,
            'onlineByThrough': online_by_through,
        },
    }


def dpr(day: Optional[datetime.date] = None) -> dict:
    """Daily performance report for one local day."""
    day = day or timezone.localdate()
    period = Period(day, day)
    start, end = day_bounds(day)

    opd_qs = OPDRegistration.objects.filter(date=day)
    opd_infos = list(opd_qs.values_list('service_info', flat=True))
    admissions = ipd_in(period)
    discharges = IPDRegistration.objects.filter(discharge_date__gte=start, discharge_date__lt=end)
    deaths = DischargeSummary.objects.filter(discharge_type=DischargeSummary.TYPE_DEATH, ipd__in=discharges)
    casualty = sum(1 for info in opd_infos for m in info or [] if m.get('type') == 'casualty')
    casualty += sum(1 for t in admissions.values_list('admission_type', flat=True)
                    if (t or '').strip().lower() in EMERGENCY_ADMISSIONS)

    total_beds = Bed.objects.count()
    occupied = Bed.objects.filter(status=Bed.STATUS_OCCUPIED).count()
    collection = daily_collection(day)
    totals = collection['totals']

    return {
        'date': day.isoformat(),
        'hospital': settings.HOSPITAL_NAME,
        'kpis': {
            'totalOPDAppointments': len(opd_infos),
            'totalIPDAdmissions': admissions.count(),
            'totalDischarges': discharges.count(),
            'newPatientRegistrations': Patient.objects.filter(created_at__gte=start, created_at__lt=end).count(),
            'bedOccupancyRate': round(occupied * 100 / total_beds, 1) if total_beds else 0.0,
            'doctorsOnDuty': Doctor.objects.count(),
            'totalRevenue': totals['net'],
            'emergencyCases': casualty,
        },
        'bedManagement': ward_summary(),
        'patientStats': {
            'opd': len(opd_infos),
            'ipd': admissions.count(),
            'ot': ot_in(period).count(),
            'discharges': discharges.count(),
            'deaths': deaths.count(),
            'activeAdmissions': IPDRegistration.objects.filter(discharge_date__isnull=True).count(),
        },
        'revenueData': {
            'opd': totals['opd'],
            'ipd': totals['ipd'],
            'cash': totals['cash'],
            'online': totals['online'],
            'refunds': totals['refunds'],
            'total': totals['net'],
        },
        'doctorConsultations': doctor_consultations(period, limit=None),
    }
