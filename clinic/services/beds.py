from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Count, Q
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict
from clinic.models import Bed
from clinic.realtime.events import broadcast_refresh

logger = logging.getLogger(__name__)


def filter_beds(*, status: Optional[str] = None, room_type: Optional[str] = None, q: Optional[str] = None):
    qs = Bed.objects.all().order_by('room_type', 'bed_number')
    if status in (Bed.STATUS_AVAILABLE, Bed.STATUS_OCCUPIED):
        qs = qs.filter(status=status)
    if room_type:
        qs = qs.filter(room_type__iexact=room_type.strip())
    if q:
        q = q.strip()
        qs = qs.filter(Q(bed_number__icontains=q) | Q(bed_type__icontains=q) | Q(room_type__icontains=q))
    return qs


def notify_beds_changed(*beds: Bed) -> None:
    payload = [{'id': b.id, 'roomType': b.room_type, 'bedNumber': b.bed_number, 'status': b.status} for b in beds if b]
    transaction.on_commit(lambda: broadcast_refresh(['beds'], beds=payload))


def set_bed_status(bed: Bed, status: str) -> Bed:
    if status not in (Bed.STATUS_AVAILABLE, Bed.STATUS_OCCUPIED):
        raise ValidationError({'status': f'Unknown bed status "{status}".'})
    if bed.status != status:
        bed.status = status
        bed.save(update_fields=['status'])
        notify_beds_changed(bed)
    return bed


def occupy(bed_id) -> Bed:
    """Lock and occupy a bed; must run inside a transaction."""
    bed = Bed.objects.select_for_update().filter(pk=bed_id).first()
    if bed is None:
        raise ValidationError({'bed': 'Selected bed does not exist.'})
    if bed.status == Bed.STATUS_OCCUPIED:
        raise Conflict(f'Bed {bed.bed_number} in {bed.room_type} is already occupied.')
    return set_bed_status(bed, Bed.STATUS_OCCUPIED)


def release(bed: Optional[Bed]) -> None:
    if bed is not None:
        set_bed_status(bed, Bed.STATUS_AVAILABLE)


def ward_summary() -> list[dict]:
    """Per room type bed counts and occupancy percentage."""
    rows = (
        Bed.objects.values('room_type')
        .annotate(total=Count('id'), occupied=Count('id', filter=Q(status=Bed.STATUS_OCCUPIED)))
        .order_by('room_type')
    )
    summary = []
    for row in rows:
        total, occupied = row['total'], row['occupied']
        summary.append({
            'ward': row['room_type'],
            'total': total,
            'occupied': occupied,
            'available': total - occupied,
            'occupancyRate': round(occupied * 100 / total, 1) if total else 0.0,
        })
    return summary


def serialize_bed(b: Bed) -> dict:
    return {
        'id': b.id,
        'roomType': b.room_type,
        'bedNumber': b.bed_number,
        'bedType': b.bed_type,
        'status': b.status,
    }
