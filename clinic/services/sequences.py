"""
Hospital-wide identifiers drawn from named counters.
"""
from __future__ import annotations

import datetime
from typing import Optional

from django.conf import settings
from django.utils import timezone

from clinic.models import SequenceCounter

UHID_COUNTER = 'uhid'
OPD_BILL_COUNTER = 'opd_bill'


def generate_next_uhid(today: Optional[datetime.date] = None) -> str:
    """Return the next UHID, e.g. ``MG-070625-00001``.

    The date part is the registration day (ddMMyy); the serial is global and
    never restarts.
    """
    today = today or timezone.localdate()
    serial = SequenceCounter.next_value(UHID_COUNTER)
    return f"{settings.UHID_PREFIX}-{today:%d%m%y}-{serial:05d}"


def next_opd_bill_no() -> int:
    return SequenceCounter.next_value(OPD_BILL_COUNTER)
