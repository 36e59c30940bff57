"""
Pathology registration counts from the laboratory system.

The lab exposes a PostgREST style RPC; the response shape has varied over
time (bare number, one element list, ``{"count": n}`` or plain text) so the
count is read from whichever is returned.
"""
from __future__ import annotations

import datetime
import json
import logging
from typing import Optional

import requests
from django.conf import settings

from clinic.exceptions import UpstreamError

logger = logging.getLogger(__name__)

RPC_PATH = '/rest/v1/rpc/get_registration_count'


def lab_date(day: datetime.date) -> str:
    # no zero padding: 5-3-2025
    return f"{day.day}-{day.month}-{day.year}"


def parse_count(body) -> int:
    if isinstance(body, bool):
        raise ValueError(f"unexpected count {body!r}")
    if isinstance(body, (int, float)):
        return int(body)
    if isinstance(body, list) and body:
        return parse_count(body[0])
    if isinstance(body, dict):
        for key in ('count', 'get_registration_count', 'registration_count'):
            if key in body:
                return parse_count(body[key])
    if isinstance(body, str):
        text = body.strip()
        if text.lstrip('-').isdigit():
            return int(text)
        return parse_count(json.loads(text))
    raise ValueError(f"unexpected count {body!r}")


def pathology_count(day: datetime.date, hospital: Optional[str] = None) -> int:
    if not settings.LAB_API_KEY or not settings.LAB_API_BEARER:
        raise UpstreamError('Lab API credentials are not configured.')
    url = f"{settings.LAB_API_URL.rstrip('/')}{RPC_PATH}"
    payload = {'p_date': lab_date(day), 'p_hospital': hospital or settings.LAB_HOSPITAL_NAME}
    headers = {
        'apikey': settings.LAB_API_KEY,
        'Authorization': f"Bearer {settings.LAB_API_BEARER}",
        'Content-Type': 'application/json',
    }
    try:
        r = requests.post(url, json=payload, headers=headers, timeout=settings.LAB_TIMEOUT)
        r.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Lab count for {payload['p_date']} failed: {e}")
        raise UpstreamError('Lab service request failed.') from e
    try:
        try:
            body = r.json()
        except ValueError:
            body = r.text
        return parse_count(body)
    except ValueError as e:
        logger.warning(f"Lab count for {payload['p_date']} unreadable: {e}")
        raise UpstreamError('Lab service returned an unreadable count.') from e
