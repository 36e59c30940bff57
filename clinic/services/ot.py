from __future__ import annotations

from typing import Optional

from django.db.models import Q
from django.utils import timezone

from clinic.models import IPDRegistration, OTDetail
from clinic.services.periods import Period


def save_ot(ipd: IPDRegistration, *, ot_type: str, ot_date, ot_notes: str = '') -> OTDetail:
    """Insert or update the single OT record of an admission."""
    detail, _ = OTDetail.objects.update_or_create(
        ipd=ipd,
        defaults={'uhid': ipd.uhid, 'ot_type': ot_type, 'ot_date': ot_date, 'ot_notes': ot_notes or ''},
    )
    return detail


def filter_ot(period: Optional[Period] = None, q: Optional[str] = None):
    qs = OTDetail.objects.select_related('ipd', 'ipd__patient').order_by('-ot_date', '-id')
    if period is not None:
        qs = qs.filter(ot_date__gte=period.start, ot_date__lte=period.end)
    if q:
        q = q.strip()
        qs = qs.filter(Q(ipd__patient__name__icontains=q) | Q(uhid__icontains=q))
    return qs


def serialize_ot(d: OTDetail) -> dict:
    p = d.ipd.patient
    return {
        'id': d.id,
        'ipdId': d.ipd_id,
        'uhid': d.uhid,
        'patientName': p.name,
        'phone': p.number,
        'otType': d.ot_type,
        'otDate': d.ot_date.isoformat(),
        'otNotes': d.ot_notes,
        'createdAt': timezone.localtime(d.created_at).isoformat(),
    }
