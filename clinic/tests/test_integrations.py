import datetime
from decimal import Decimal

import pytest
import requests
from django.core.management import call_command
from django.urls import reverse
from django.utils import timezone

from clinic.exceptions import UpstreamError
from clinic.models import AuditEvent, Bed, Doctor, IPDRegistration, OPDSummary, User
from clinic.realtime import events
from clinic.services import beds, billing, lab, notifications, opd, ot, reports
from clinic.services.dpr_pdf import render_dpr
from clinic.services.periods import resolve_period

pytestmark = pytest.mark.django_db


class FakeResponse:
    def __init__(self, body=None, text='', status=200):
        self._body = body
        self.text = text
        self.status_code = status

    def json(self):
        if self._body is None:
            raise ValueError('no json')
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


@pytest.fixture
def busy_day(admission, desk_user):
    """One OPD visit, one admission with a deposit and a refund, one OT today."""
    opd.create_appointment(
        patient_data={'name': 'Priya Sharma', 'number': '9811000002'},
        modalities=[{'type': 'consultation', 'doctor': 'Sunita Rao', 'charges': 600},
                    {'type': 'casualty', 'charges': 200}],
        payment={'paymentMethod': 'cash', 'discount': 100},
        user=desk_user,
    )
    billing.record_payment(admission, amount=5000, payment_type='online', through='upi', amount_type='deposit')
    billing.record_payment(admission, amount=1000, payment_type='cash', amount_type='refund')
    ot.save_ot(admission, ot_type='minor', ot_date=timezone.localdate(), ot_notes='Suturing')
    admission.refresh_from_db()
    return admission


# ---------------------------------------------------------------------
# dashboard / collection / DPR
# ---------------------------------------------------------------------
def test_dashboard_statistics(busy_day):
    stats = reports.dashboard_statistics(resolve_period('today'))
    assert stats['totalOpdCount'] == 1
    assert stats['totalOpdAmount'] == Decimal('700')
    assert stats['opdCash'] == Decimal('700')
    assert stats['totalIpdCount'] == 1
    assert stats['totalIpdAmount'] == Decimal('5000')
    assert stats['ipdOnline'] == Decimal('5000')
    assert stats['overallIpdRefunds'] == Decimal('1000')
    assert stats['totalOtCount'] == 1
    assert stats['totalRevenue'] == Decimal('5700')


def test_combined_appointments_and_search(busy_day):
    rows = reports.appointments(resolve_period('today'))
    assert sorted(r['type'] for r in rows) == ['IPD', 'OPD', 'OT']
    only = reports.appointments(resolve_period('today'), q='Priya')
    assert [r['type'] for r in only] == ['OPD']


def test_doctor_consultations_ranked(desk_user):
    for doctor in ('Anil', 'Sunita', 'Anil'):
        opd.create_appointment(patient_data={'name': doctor, 'number': '9000000000'},
                               modalities=[{'type': 'consultation', 'doctor': doctor, 'charges': 100}])
    assert reports.doctor_consultations(resolve_period('today')) == [
        {'doctor': 'Anil', 'count': 2}, {'doctor': 'Sunita', 'count': 1},
    ]


def test_three_day_chart(busy_day):
    today = timezone.localdate()
    chart = reports.three_day_chart(today)
    assert chart['labels'][-1] == today.isoformat()
    assert chart['opd'] == [0, 0, 1]
    assert chart['ipd'] == [0, 0, 1]


def test_daily_collection_nets_refunds(busy_day):
    data = reports.daily_collection(timezone.localdate())
    totals = data['totals']
    assert totals['opd'] == Decimal('700')
    assert totals['ipd'] == Decimal('4000')
    assert totals['cash'] == Decimal('-300')
    assert totals['online'] == Decimal('5000')
    assert totals['refunds'] == Decimal('1000')
    assert totals['net'] == Decimal('4700')
    assert totals['byAmountType']['deposit'] == Decimal('5000')
    assert totals['onlineByThrough'] == {'upi': Decimal('5000')}


def test_online_receipts_are_totalled_by_channel(admission):
    billing.record_payment(admission, amount=3000, payment_type='online', through='card', amount_type='advance')
    billing.record_payment(admission, amount=1500, payment_type='online', through='upi', amount_type='deposit')
    billing.record_payment(admission, amount=500, payment_type='online', through='upi', amount_type='refund')
    billing.record_payment(admission, amount=800, payment_type='cash', amount_type='advance')
    totals = reports.daily_collection(timezone.localdate())['totals']
    assert totals['onlineByThrough'] == {'card': Decimal('3000'), 'upi': Decimal('1000')}
    assert totals['online'] == Decimal('4000')


def test_settlement_after_discharge_is_collected(admission):
    IPDRegistration.objects.filter(pk=admission.pk).update(
        discharge_date=timezone.now() - datetime.timedelta(days=1))
    billing.record_payment(admission, amount=5000, payment_type='cash', amount_type='settlement')

    data = reports.daily_collection(timezone.localdate())
    assert [r['amountType'] for r in data['rows']] == ['settlement']
    assert data['totals']['net'] == Decimal('5000')
    assert reports.dpr(timezone.localdate())['kpis']['totalRevenue'] == Decimal('5000')


def test_payment_on_other_day_is_not_collected_today(admission):
    billing.record_payment(admission, amount=900, payment_type='cash', amount_type='advance',
                           on_date=timezone.localdate() - datetime.timedelta(days=3))
    assert reports.daily_collection(timezone.localdate())['rows'] == []


def test_dpr_kpis_and_pdf(busy_day):
    Doctor.objects.create(dr_name='Anil', department='both')
    report = reports.dpr(timezone.localdate())
    kpis = report['kpis']
    assert kpis['totalOPDAppointments'] == 1
    assert kpis['totalIPDAdmissions'] == 1
    assert kpis['emergencyCases'] == 1
    assert kpis['doctorsOnDuty'] == 1
    assert kpis['bedOccupancyRate'] == 50.0
    assert kpis['totalRevenue'] == Decimal('4700')
    assert report['patientStats']['ot'] == 1
    assert report['patientStats']['activeAdmissions'] == 1

    pdf = render_dpr(report)
    assert pdf.startswith(b'%PDF')


def test_dashboard_endpoints(admin_client, busy_day):
    r = admin_client.get(reverse('dashboard_stats'), {'filter': 'today'})
    assert r.status_code == 200
    assert r.data['data']['totalOpdCount'] == 1

    r = admin_client.get(reverse('dashboard_stats'), {'filter': 'dateRange', 'startDate': '2025-01-01',
                                                      'endDate': '2025-06-01'})
    assert r.data['data']['period']['clamped'] is True

    r = admin_client.get(reverse('dashboard_appointments'), {'filter': 'week'})
    assert r.data['total'] == 3

    r = admin_client.get(reverse('dpr_pdf'))
    assert r.status_code == 200
    assert r['Content-Type'] == 'application/pdf'


def test_dpr_send_stores_pdf_and_pushes_image(admin_client, busy_day, settings, tmp_path, monkeypatch):
    settings.MEDIA_ROOT = str(tmp_path)
    settings.DPR_RECIPIENT = '9811000777'
    settings.WHATSAPP_ENABLE = True
    calls = []

    def fake_post(url, json=None, timeout=None, **kwargs):
        calls.append((url, json))
        return FakeResponse({'status': 'ok'})

    monkeypatch.setattr(notifications.requests, 'post', fake_post)
    r = admin_client.post(reverse('dpr_send'), {}, format='json')
    assert r.status_code == 200
    assert r.data['sent'] is True
    url, body = calls[0]
    assert url.endswith('/send-image-url')
    assert body['number'] == '919811000777'
    assert body['imageUrl'].endswith('.pdf')
    assert list(tmp_path.joinpath('dpr').iterdir())
    assert AuditEvent.objects.filter(action='dpr_send').exists()


def test_dpr_send_without_recipient_is_upstream_error(admin_client, settings):
    settings.DPR_RECIPIENT = ''
    r = admin_client.post(reverse('dpr_send'), {}, format='json')
    assert r.status_code == 502
    assert r.data['error']['code'] == 'upstream_error'


# ---------------------------------------------------------------------
# lab
# ---------------------------------------------------------------------
@pytest.mark.parametrize('body,expected', [
    (5, 5),
    ([7], 7),
    ([{'count': 3}], 3),
    ({'get_registration_count': 4}, 4),
    ('12', 12),
    ('[9]', 9),
])
def test_parse_count(body, expected):
    assert lab.parse_count(body) == expected


@pytest.mark.parametrize('body', ['abc', [], {'total': 1}, True])
def test_parse_count_rejects_garbage(body):
    with pytest.raises(ValueError):
        lab.parse_count(body)


def test_lab_date_has_no_padding():
    assert lab.lab_date(datetime.date(2025, 3, 5)) == '5-3-2025'


@pytest.fixture
def lab_settings(settings):
    settings.LAB_API_URL = 'https://lab.example'
    settings.LAB_API_KEY = 'anon-key'
    settings.LAB_API_BEARER = 'bearer'
    settings.LAB_HOSPITAL_NAME = 'medford'
    return settings


def test_pathology_count_posts_rpc(lab_settings, monkeypatch):
    seen = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        seen.update(url=url, json=json, headers=headers)
        return FakeResponse([{'count': 11}])

    monkeypatch.setattr(lab.requests, 'post', fake_post)
    assert lab.pathology_count(datetime.date(2025, 3, 5)) == 11
    assert seen['url'] == 'https://lab.example/rest/v1/rpc/get_registration_count'
    assert seen['json'] == {'p_date': '5-3-2025', 'p_hospital': 'medford'}
    assert seen['headers']['apikey'] == 'anon-key'
    assert seen['headers']['Authorization'] == 'Bearer bearer'


def test_pathology_count_reads_plain_text(lab_settings, monkeypatch):
    monkeypatch.setattr(lab.requests, 'post', lambda *a, **kw: FakeResponse(text=' 8 '))
    assert lab.pathology_count(datetime.date(2025, 3, 5), hospital='other') == 8


def test_pathology_count_failures(lab_settings, monkeypatch):
    monkeypatch.setattr(lab.requests, 'post', lambda *a, **kw: FakeResponse(status=500))
    with pytest.raises(UpstreamError):
        lab.pathology_count(datetime.date(2025, 3, 5))

    lab_settings.LAB_API_KEY = ''
    with pytest.raises(UpstreamError):
        lab.pathology_count(datetime.date(2025, 3, 5))


def test_pathology_count_endpoint(admin_client, lab_settings, monkeypatch):
    monkeypatch.setattr(lab.requests, 'post', lambda *a, **kw: FakeResponse(6))
    r = admin_client.get(reverse('pathology_count'), {'date': '2025-03-05'})
    assert r.status_code == 200
    assert r.data == {'ok': True, 'date': '2025-03-05', 'count': 6}


# ---------------------------------------------------------------------
# notifications
# ---------------------------------------------------------------------
def test_notifications_disabled_do_nothing(settings, monkeypatch):
    settings.WHATSAPP_ENABLE = False

    def boom(*a, **kw):
        raise AssertionError('should not be called')

    monkeypatch.setattr(notifications.requests, 'post', boom)
    assert notifications.send_text('9811000001', 'hi') is False


def test_notification_failure_is_reported_not_raised(settings, monkeypatch):
    settings.WHATSAPP_ENABLE = True

    def down(*a, **kw):
        raise requests.ConnectionError('gateway down')

    monkeypatch.setattr(notifications.requests, 'post', down)
    assert notifications.send_text('9811000001', 'hi') is False
    assert notifications.send_text('', 'hi') is False


def test_normalize_number():
    assert notifications.normalize_number('98110 00001') == '919811000001'
    assert notifications.normalize_number('+91 98110 00001') == '919811000001'
    assert notifications.normalize_number(None) is None


def test_admission_notifies_patient_and_relative(admission, settings, monkeypatch):
    settings.WHATSAPP_ENABLE = True
    sent = []
    monkeypatch.setattr(notifications.requests, 'post',
                        lambda url, json=None, timeout=None: sent.append(json) or FakeResponse({}))
    result = notifications.notify_admission(admission)
    assert result == {'patient': True, 'relative': True}
    assert sent[0]['number'] == '919811000001'
    assert 'Ramesh Kumar' in sent[0]['message']
    assert sent[1]['number'] == '919811000099'
    assert 'Dear Sita' in sent[1]['message']


def test_payment_message_wording():
    assert 'refund of Rs 500' in notifications.payment_message('Ramesh', 500, 4500, 'refund')
    assert 'payment of Rs 1,000' in notifications.payment_message('Ramesh', 1000, 6000, 'deposit')


class BrokenLayer:
    async def group_send(self, group, event):
        raise ConnectionError('redis down')


def test_bed_change_survives_a_broken_channel_layer(male_beds, monkeypatch, django_capture_on_commit_callbacks):
    monkeypatch.setattr(events, 'get_channel_layer', lambda: BrokenLayer())
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        beds.set_bed_status(male_beds[0], Bed.STATUS_OCCUPIED)
    assert len(callbacks) == 1
    male_beds[0].refresh_from_db()
    assert male_beds[0].status == Bed.STATUS_OCCUPIED


# ---------------------------------------------------------------------
# management commands / health
# ---------------------------------------------------------------------
def test_ensure_test_users_is_idempotent():
    call_command('ensure_test_users')
    User.objects.filter(username='desk1').update(role=User.ROLE_STAFF, is_active=False)
    call_command('ensure_test_users')
    desk = User.objects.get(username='desk1')
    assert desk.role == User.ROLE_DESK and desk.is_active
    assert desk.check_password('123456')
    assert User.objects.filter(username__in=['admin1', 'desk1', 'nurse1']).count() == 3


def test_populate_data_admits_a_patient():
    call_command('ensure_test_users')
    call_command('populate_data')
    call_command('populate_data')
    assert Bed.objects.filter(room_type='icu').count() == 4
    assert IPDRegistration.objects.filter(discharge_date__isnull=True).count() == 1
    assert Bed.objects.filter(status=Bed.STATUS_OCCUPIED).count() == 1
    assert OPDSummary.objects.get(date=timezone.localdate()).total_count == 5


def test_rebuild_opd_summary_command(desk_user):
    opd.create_appointment(patient_data={'name': 'A', 'number': '9000000001'},
                           modalities=[{'type': 'consultation', 'doctor': 'Anil', 'charges': 400}])
    OPDSummary.objects.all().delete()
    call_command('rebuild_opd_summary')
    assert OPDSummary.objects.get(date=timezone.localdate()).total_revenue == 400


def test_healthz(client):
    r = client.get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}
