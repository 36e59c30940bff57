from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict
from clinic.models import DischargeSummary, IPDRegistration
from clinic.services import beds as bed_service
from clinic.services.periods import Period

logger = logging.getLogger(__name__)

FINAL_TYPES = (DischargeSummary.TYPE_DISCHARGE, DischargeSummary.TYPE_DEATH)

# request/response key for each summary text field
CAMEL_FIELDS = {
    name: name.split('_')[0] + ''.join(part.title() for part in name.split('_')[1:])
    for name in DischargeSummary.TEXT_FIELDS
}


def _upsert(ipd: IPDRegistration, fields: dict, discharge_type: Optional[str]) -> DischargeSummary:
    summary, _ = DischargeSummary.objects.get_or_create(ipd=ipd, defaults={'uhid': ipd.uhid})
    for name in DischargeSummary.TEXT_FIELDS:
        if name in fields and fields[name] is not None:
            setattr(summary, name, fields[name])
    if discharge_type is not None:
        summary.discharge_type = discharge_type
    summary.save()
    return summary


@transaction.atomic
def save_draft(ipd: IPDRegistration, fields: dict) -> DischargeSummary:
    """Save the summary text without changing the discharge state."""
    return _upsert(ipd, fields, None)


@transaction.atomic
def finalize(ipd: IPDRegistration, fields: dict, discharge_type: str) -> DischargeSummary:
    """Discharge, partially discharge or record death.

    Only an active (or partially discharged) admission can be discharged.
    A final discharge or death stamps ``discharge_date`` and frees the bed;
    a partial discharge keeps the admission active and the bed occupied.
    """
    if discharge_type not in dict(DischargeSummary.TYPE_CHOICES):
        raise ValidationError({'dischargeType': f'Unknown discharge type "{discharge_type}".'})
    ipd = IPDRegistration.objects.select_for_update().select_related('bed').get(pk=ipd.pk)
    if ipd.discharge_date is not None:
        raise Conflict(f'IPD {ipd.pk} is already discharged.')
    if discharge_type in FINAL_TYPES:
        if ipd.bed is None:
            raise ValidationError({'bed': 'No bed is assigned to this admission.'})
        ipd.discharge_date = timezone.now()
        bed_service.release(ipd.bed)
    else:
        ipd.discharge_date = None
    ipd.save(update_fields=['discharge_date', 'updated_at'])
    summary = _upsert(ipd, fields, discharge_type)
    logger.info(f"IPD {ipd.pk} {discharge_type}")
    return summary


def mortality(period: Period):
    return (
        DischargeSummary.objects.filter(
            discharge_type=DischargeSummary.TYPE_DEATH,
            ipd__discharge_date__gte=period.start_dt,
            ipd__discharge_date__lt=period.end_dt,
        )
        .select_related('ipd', 'ipd__patient', 'ipd__bed')
        .order_by('-ipd__discharge_date')
    )


def serialize_summary(s: Optional[DischargeSummary]) -> dict:
    if s is None:
        return {key: '' for key in CAMEL_FIELDS.values()} | {'dischargeType': '', 'lastUpdated': None}
    data = {key: getattr(s, name) for name, key in CAMEL_FIELDS.items()}
    data['dischargeType'] = s.discharge_type
    data['lastUpdated'] = timezone.localtime(s.last_updated).isoformat()
    return data
