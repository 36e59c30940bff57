"""
Administrative dashboard and reports.

Dashboard endpoints share the period filter (``today``, ``yesterday``,
``week``, ``month``, ``7days``, ``dateRange``) and are cached for a short
time per period.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.cache import cache
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.http import HttpResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import UpstreamError
from clinic.permissions import IsAdminRole
from clinic.serializers.reports import DayQuerySerializer
from clinic.services import lab, reports
from clinic.services.audit import log_action
from clinic.services.dpr_pdf import render_dpr
from clinic.services.notifications import send_image_url
from clinic.views.ipd import period_from_query

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_SECONDS = 60


def _day(request):
    q = DayQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data.get('date') or timezone.localdate()


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_stats(request):
    period, _ = period_from_query(request)
    ck = f"dashboard:stats:{period.start}:{period.end}"
    cached = cache.get(ck)
    if cached:
        return Response(cached)
    payload = {'ok': True, 'data': reports.dashboard_statistics(period)}
    cache.set(ck, payload, DASHBOARD_CACHE_SECONDS)
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_appointments(request):
    period, q = period_from_query(request)
    rows = reports.appointments(period, q)
    return Response({'ok': True, 'period': period.as_dict(), 'total': len(rows), 'data': rows})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def doctor_consultations(request):
    period, _ = period_from_query(request)
    return Response({'ok': True, 'period': period.as_dict(), 'data': reports.doctor_consultations(period)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def three_day_chart(request):
    return Response({'ok': True, 'data': reports.three_day_chart()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def daily_collection(request):
    return Response({'ok': True, 'data': reports.daily_collection(_day(request))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dpr(request):
    return Response({'ok': True, 'data': reports.dpr(_day(request))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dpr_pdf(request):
    day = _day(request)
    pdf = render_dpr(reports.dpr(day))
    resp = HttpResponse(pdf, content_type='application/pdf')
    resp['Content-Disposition'] = f'attachment; filename="DPR_{day.isoformat()}.pdf"'
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dpr_send(request):
    """Store the DPR PDF under media and push it to the DPR recipient on WhatsApp."""
    q = DayQuerySerializer(data=request.data)
    q.is_valid(raise_exception=True)
    day = q.validated_data.get('date') or timezone.localdate()
    if not settings.DPR_RECIPIENT:
        raise UpstreamError('No DPR recipient is configured.')

    report = reports.dpr(day)
    name = default_storage.save(f"dpr/DPR_{day.isoformat()}.pdf", ContentFile(render_dpr(report)))
    url = request.build_absolute_uri(default_storage.url(name))
    kpis = report['kpis']
    caption = (f"DPR {day.isoformat()}: OPD {kpis['totalOPDAppointments']}, IPD {kpis['totalIPDAdmissions']}, "
               f"Discharges {kpis['totalDischarges']}, Revenue Rs {float(kpis['totalRevenue']):,.0f}")
    sent = send_image_url(settings.DPR_RECIPIENT, url, caption)
    log_action(user=request.user, action='dpr_send', object_type='report', object_id=day.isoformat(),
               detail={'sent': sent, 'file': name})
    logger.info(f"DPR {day} stored at {name}, sent={sent}")
    return Response({'ok': True, 'sent': sent, 'url': url})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def pathology_count(request):
    day = _day(request)
    hospital = (request.query_params.get('hospital') or '').strip() or None
    return Response({'ok': True, 'date': day.isoformat(), 'count': lab.pathology_count(day, hospital)})
