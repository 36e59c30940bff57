"""
Reporting periods in hospital local time.

All day boundaries are taken in ``settings.TIME_ZONE`` so that "today" on
the dashboard means the hospital's today, regardless of where the server
clock is. A :class:`Period` holds inclusive local dates and exposes the
aware datetime bounds used to filter ``created_at`` columns.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils import timezone
from rest_framework.exceptions import ValidationError

FILTER_TYPES = ('today', 'yesterday', 'week', 'month', '7days', 'dateRange')


def local_midnight(day: datetime.date) -> datetime.datetime:
    return timezone.make_aware(datetime.datetime.combine(day, datetime.time.min))


def day_bounds(day: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """Aware ``[start, end)`` bounds of a local calendar day."""
    return local_midnight(day), local_midnight(day + datetime.timedelta(days=1))


@dataclass(frozen=True)
class Period:
    start: datetime.date
    end: datetime.date
    filter_type: str = 'dateRange'
    clamped: bool = False

    @property
    def start_dt(self) -> datetime.datetime:
        return local_midnight(self.start)

    @property
    def end_dt(self) -> datetime.datetime:
        """Exclusive upper bound (midnight after ``end``)."""
        return local_midnight(self.end + datetime.timedelta(days=1))

    def days(self) -> list[datetime.date]:
        return [self.start + datetime.timedelta(days=i) for i in range((self.end - self.start).days + 1)]

    def as_dict(self) -> dict:
        return {
            'filterType': self.filter_type,
            'startDate': self.start.isoformat(),
            'endDate': self.end.isoformat(),
            'clamped': self.clamped,
        }


def _parse_date(value, field: str) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError({field: f'Invalid date "{value}", expected YYYY-MM-DD.'})


def resolve_period(filter_type: str = 'today', *, month: Optional[str] = None, start=None, end=None,
                   today: Optional[datetime.date] = None) -> Period:
    """Turn dashboard filter inputs into a :class:`Period`.

    ``week`` runs Monday to Sunday, ``month`` takes ``YYYY-MM`` (defaults to
    the current month) and ``dateRange`` is capped at
    ``DASHBOARD_MAX_RANGE_DAYS`` by moving the end date back.
    """
    today = today or timezone.localdate()
    if filter_type == 'today':
        return Period(today, today, filter_type)
    if filter_type == 'yesterday':
        y = today - datetime.timedelta(days=1)
        return Period(y, y, filter_type)
    if filter_type == '7days':
        return Period(today - datetime.timedelta(days=6), today, filter_type)
    if filter_type == 'week':
        monday = today - datetime.timedelta(days=today.weekday())
        return Period(monday, monday + datetime.timedelta(days=6), filter_type)
    if filter_type == 'month':
        if month:
            try:
                first = datetime.datetime.strptime(month, '%Y-%m').date()
            except ValueError:
                raise ValidationError({'month': f'Invalid month "{month}", expected YYYY-MM.'})
        else:
            first = today.replace(day=1)
        next_first = (first.replace(day=28) + datetime.timedelta(days=4)).replace(day=1)
        return Period(first, next_first - datetime.timedelta(days=1), filter_type)
    if filter_type == 'dateRange':
        if not start or not end:
            raise ValidationError({'startDate': 'startDate and endDate are required for dateRange.'})
        start_d = _parse_date(start, 'startDate')
        end_d = _parse_date(end, 'endDate')
        if end_d < start_d:
            raise ValidationError({'endDate': 'endDate must not be before startDate.'})
        max_days = settings.DASHBOARD_MAX_RANGE_DAYS
        if (end_d - start_d).days > max_days:
            return Period(start_d, start_d + datetime.timedelta(days=max_days), filter_type, clamped=True)
        return Period(start_d, end_d, filter_type)
    raise ValidationError({'filterType': f'Unknown filter "{filter_type}".'})
