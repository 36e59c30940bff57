import datetime

import pytest
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict
from clinic.models import Bed, ClinicalSheet, DischargeSummary, IPDRegistration, OPDOnCall, OPDSummary, Signature
from clinic.services import billing, discharge, ipd as ipd_service, opd, records
from clinic.services.doctors import build_charges, consultation_charge, ipd_charge, save_doctor, to_amount
from clinic.services.patients import dob_from_age, normalize_age_unit, patient_header
from clinic.services.periods import resolve_period
from clinic.services.sequences import generate_next_uhid, next_opd_bill_no
from clinic.services.signatures import lookup, resolve_signature_pins

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------
# sequences / patients
# ---------------------------------------------------------------------
def test_uhid_format_and_global_counter():
    assert generate_next_uhid(datetime.date(2025, 6, 7)) == 'MG-070625-00001'
    # the serial does not restart on a new day
    assert generate_next_uhid(datetime.date(2025, 6, 8)) == 'MG-080625-00002'


def test_bill_numbers_are_sequential():
    assert [next_opd_bill_no() for _ in range(3)] == [1, 2, 3]


def test_uhid_prefix_from_settings(settings):
    settings.UHID_PREFIX = 'XY'
    assert generate_next_uhid(datetime.date(2025, 1, 2)).startswith('XY-020125-')


@pytest.mark.parametrize('age,unit,today,expected', [
    (1, 'year', datetime.date(2024, 2, 29), datetime.date(2023, 2, 28)),
    (1, 'months', datetime.date(2025, 3, 31), datetime.date(2025, 2, 28)),
    (10, 'days', datetime.date(2025, 1, 5), datetime.date(2024, 12, 26)),
    (30, 'Years', datetime.date(2025, 6, 15), datetime.date(1995, 6, 15)),
])
def test_dob_from_age_clamps_month_end(age, unit, today, expected):
    assert dob_from_age(age, unit, today) == expected


def test_age_unit_aliases():
    assert normalize_age_unit('Months') == 'month'
    assert normalize_age_unit(None) == 'year'
    assert normalize_age_unit('decades') == 'year'


def test_patient_header(admission):
    header = patient_header(admission)
    assert header['uhid'] == 'MG-010125-00001'
    assert header['ageGender'] == '54 years / Male'
    assert header['roomType'] == 'male'
    assert header['bedNumber'] == 'M01'
    assert header['discharged'] is False


# ---------------------------------------------------------------------
# periods
# ---------------------------------------------------------------------
def test_week_runs_monday_to_sunday():
    p = resolve_period('week', today=datetime.date(2025, 6, 11))
    assert (p.start, p.end) == (datetime.date(2025, 6, 9), datetime.date(2025, 6, 15))


def test_month_period_handles_leap_february():
    p = resolve_period('month', month='2024-02', today=datetime.date(2025, 1, 1))
    assert (p.start, p.end) == (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))
    assert len(p.days()) == 29


def test_date_range_is_clamped(settings):
    settings.DASHBOARD_MAX_RANGE_DAYS = 30
    p = resolve_period('dateRange', start='2025-01-01', end='2025-03-01')
    assert p.end == datetime.date(2025, 1, 31)
    assert p.clamped is True
    assert p.as_dict()['endDate'] == '2025-01-31'


def test_period_bounds_are_local_midnight():
    p = resolve_period('yesterday', today=datetime.date(2025, 6, 11))
    assert timezone.localtime(p.start_dt).hour == 0
    assert p.end_dt - p.start_dt == datetime.timedelta(days=1)


@pytest.mark.parametrize('kwargs', [
    {'filter_type': 'fortnight'},
    {'filter_type': 'dateRange', 'start': '2025-02-01'},
    {'filter_type': 'dateRange', 'start': '2025-02-10', 'end': '2025-02-01'},
    {'filter_type': 'month', 'month': '2025/02'},
])
def test_invalid_periods(kwargs):
    with pytest.raises(ValidationError):
        resolve_period(**kwargs)


# ---------------------------------------------------------------------
# doctors
# ---------------------------------------------------------------------
def test_build_charges_by_department():
    opd_charge = build_charges('opd', 'Sunita', first_visit='600', follow_up='x')[0]
    assert opd_charge['department'] == 'OPD'
    assert opd_charge['followUpCharge'] == 0.0
    assert 'ipdCharges' not in opd_charge

    ipd_only = build_charges('ipd', 'Farhan', ipd_charges={'icu': '2000'})[0]
    assert ipd_only['department'] == 'IPD'
    assert ipd_only['ipdCharges']['icu'] == 2000.0
    assert set(ipd_only['ipdCharges']) == {'female', 'male', 'casuality', 'delux', 'nicu', 'suit', 'icu'}


def test_doctor_update_keeps_charge_id():
    doctor = save_doctor({'dr_name': 'Anil', 'department': 'both', 'first_visit_charge': 500,
                          'follow_up_charge': 300, 'ipd_charges': {'male': 800}})
    charge_id = doctor.charges[0]['id']
    doctor = save_doctor({'dr_name': 'Anil', 'department': 'both', 'first_visit_charge': 550}, doctor)
    assert doctor.charges[0]['id'] == charge_id
    assert consultation_charge(doctor) == 550.0
    assert consultation_charge(doctor, 'followup') == 0.0
    assert ipd_charge(doctor, 'Male') == 0.0


def test_to_amount():
    assert to_amount('12.5') == 12.5
    assert to_amount('') == 0.0
    assert to_amount('n/a') == 0.0


# ---------------------------------------------------------------------
# opd
# ---------------------------------------------------------------------
def test_payment_split_follows_method():
    assert opd.build_payment_info({'paymentMethod': 'online'}, 500)['onlineAmount'] == 500
    mixed = opd.build_payment_info({'paymentMethod': 'mixed', 'cashAmount': 200, 'onlineAmount': 100}, 500)
    assert mixed['totalPaid'] == 300
    with pytest.raises(ValidationError):
        opd.build_payment_info({'discount': 600}, 500)


def test_summary_rebuild_matches_registrations(desk_user):
    for charge in (300, 500):
        opd.create_appointment(patient_data={'name': f'P{charge}', 'number': '9000000001'},
                               modalities=[{'type': 'consultation', 'doctor': 'Anil', 'charges': charge}],
                               payment={'paymentMethod': 'cash'}, user=desk_user)
    today = timezone.localdate()
    assert OPDSummary.objects.get(date=today).total_count == 2

    opd.filter_opd(date_filter='today').first().delete()
    # deletes do not touch the running summary until it is rebuilt
    assert OPDSummary.objects.get(date=today).total_count == 2
    summary = opd.rebuild_summary(today)
    assert summary.total_count == 1
    assert summary.total_revenue == 300


def test_unknown_modality_is_rejected():
    with pytest.raises(ValidationError):
        opd.build_service_info([{'type': 'acupuncture', 'charges': 100}])


def test_oncall_creates_no_bill(patient):
    result = opd.create_appointment(patient_data={}, existing_patient=patient, appointment_type='oncall')
    assert 'billNo' not in result
    assert OPDOnCall.objects.filter(pk=result['onCallId']).exists()
    assert not OPDSummary.objects.exists()


# ---------------------------------------------------------------------
# ipd / beds
# ---------------------------------------------------------------------
def _form(bed, **overrides):
    form = {'name': 'Ramesh Kumar', 'number': '9811000001', 'room_type': bed.room_type, 'bed': bed.id,
            'deposit_amount': 0}
    form.update(overrides)
    return form


def test_admit_reuses_patient_by_name_and_phone(patient, male_beds):
    ipd = ipd_service.admit(_form(male_beds[1], age=55))
    assert ipd.patient_id == patient.id
    patient.refresh_from_db()
    assert patient.age == 55
    assert ipd.payment_detail == []
    assert ipd.admission_date == timezone.localdate()


def test_admit_to_occupied_bed_raises_conflict(admission, male_beds):
    with pytest.raises(Conflict):
        ipd_service.admit(_form(male_beds[0], name='Someone Else', number='9000000009'))


def test_admit_checks_room_type(male_beds):
    with pytest.raises(ValidationError):
        ipd_service.admit(_form(male_beds[1], room_type='icu'))


def test_delete_admission_frees_bed(admission):
    bed = admission.bed
    ipd_service.delete_admission(admission)
    bed.refresh_from_db()
    assert bed.status == Bed.STATUS_AVAILABLE


# ---------------------------------------------------------------------
# billing
# ---------------------------------------------------------------------
def test_billing_totals(admission):
    billing.add_service(admission, name='CBC', amount=250, quantity=2)
    billing.add_consultant_visit(admission, doctor_name='Anil Mehta', charge=800)
    billing.record_payment(admission, amount=1000, payment_type='cash', amount_type='deposit')
    billing.record_payment(admission, amount=200, payment_type='cash', amount_type='refund')
    billing.apply_discount(admission, amount=100)
    billing.apply_discount(admission, amount=50, given_by='Dr. Anil')
    admission.refresh_from_db()

    discounts = [p for p in admission.payment_detail if p['amountType'] == 'discount']
    assert len(discounts) == 1 and discounts[0]['discountGivenBy'] == 'Dr. Anil'

    totals = billing.billing_totals(admission)
    assert totals['hospitalServices'] == 500
    assert totals['consultantCharges'] == 800
    assert totals['totalServices'] == 1300
    assert totals['deposit'] == 800
    assert totals['refunds'] == 200
    assert totals['discount'] == 50
    assert totals['balance'] == 450
    assert totals['due'] == 450 and totals['refundable'] == 0


def test_overpaid_bill_is_refundable(admission):
    billing.add_service(admission, name='Dressing', amount=200)
    billing.record_payment(admission, amount=500, payment_type='cash', amount_type='advance')
    admission.refresh_from_db()
    totals = billing.billing_totals(admission)
    assert totals['balance'] == -300
    assert totals['refundable'] == 300 and totals['due'] == 0


def test_grouping_and_consultant_aggregation(admission):
    billing.add_bulk_services(admission, [
        {'serviceName': 'CBC', 'amount': 250, 'quantity': 2},
        {'serviceName': 'CBC', 'amount': 300},
        {'serviceName': 'Visit', 'amount': 800, 'type': 'doctorvisit', 'doctorName': 'Anil Mehta'},
    ])
    billing.add_consultant_visit(admission, doctor_name='Anil Mehta', charge=800, times=2)
    admission.refresh_from_db()

    groups = billing.group_services(admission.service_detail)
    assert [(g['serviceName'], g['amount'], g['quantity'], g['total']) for g in groups] == [
        ('CBC', 250.0, 2, 500.0), ('CBC', 300.0, 1, 300.0),
    ]
    consultants = billing.aggregate_consultants(admission.service_detail)
    assert consultants == [{'doctorName': 'Anil Mehta', 'visited': 3, 'totalCharge': 2400.0,
                            'lastVisit': consultants[0]['lastVisit']}]

    assert billing.delete_consultant_charges(admission, doctor_name='Anil Mehta') == 3
    with pytest.raises(NotFound):
        billing.delete_service_group(admission, name='CBC', amount=999)


def test_payment_date_uses_chosen_day(admission):
    entry = billing.record_payment(admission, amount=100, payment_type='online', through='upi',
                                   amount_type='settlement', on_date=datetime.date(2025, 1, 2))
    assert entry['date'].startswith('2025-01-02T')
    assert entry['transactionType'] == 'settlement'


@pytest.mark.parametrize('kwargs', [
    {'amount': 0, 'payment_type': 'cash', 'amount_type': 'deposit'},
    {'amount': 100, 'payment_type': 'online', 'amount_type': 'deposit'},
    {'amount': 100, 'payment_type': 'cash', 'amount_type': 'discount'},
    {'amount': 100, 'payment_type': 'cash', 'amount_type': 'bonus'},
])
def test_invalid_payments(admission, kwargs):
    with pytest.raises(ValidationError):
        billing.record_payment(admission, **kwargs)


# ---------------------------------------------------------------------
# discharge
# ---------------------------------------------------------------------
def test_draft_keeps_discharge_state(admission):
    summary = discharge.save_draft(admission, {'final_diagnosis': 'Typhoid'})
    admission.refresh_from_db()
    assert admission.discharge_date is None
    assert summary.discharge_type == ''
    assert discharge.serialize_summary(summary)['finalDiagnosis'] == 'Typhoid'


def test_final_discharge_needs_a_bed(admission):
    IPDRegistration.objects.filter(pk=admission.pk).update(bed=None)
    with pytest.raises(ValidationError):
        discharge.finalize(admission, {}, DischargeSummary.TYPE_DEATH)


def _discharge_and_reuse_bed(admission):
    discharge.finalize(admission, {}, DischargeSummary.TYPE_DISCHARGE)
    return ipd_service.admit(_form(admission.bed, name='Meena Devi', number='9811000022'))


@pytest.mark.parametrize('discharge_type', [
    DischargeSummary.TYPE_DISCHARGE, DischargeSummary.TYPE_DEATH, DischargeSummary.TYPE_PARTIAL,
])
def test_discharged_admission_cannot_be_discharged_again(admission, discharge_type):
    other = _discharge_and_reuse_bed(admission)
    with pytest.raises(Conflict):
        discharge.finalize(admission, {}, discharge_type)
    other.bed.refresh_from_db()
    admission.refresh_from_db()
    assert other.bed.status == Bed.STATUS_OCCUPIED
    assert admission.discharge_date is not None


def test_partial_then_final_discharge(admission):
    discharge.finalize(admission, {}, DischargeSummary.TYPE_PARTIAL)
    summary = discharge.finalize(admission, {}, DischargeSummary.TYPE_DISCHARGE)
    assert summary.discharge_type == DischargeSummary.TYPE_DISCHARGE
    admission.bed.refresh_from_db()
    assert admission.bed.status == Bed.STATUS_AVAILABLE


def test_discharged_admission_keeps_its_bed(admission, male_beds):
    other = _discharge_and_reuse_bed(admission)
    with pytest.raises(Conflict):
        ipd_service.update_admission(admission, {'bed': male_beds[1].id})
    for bed in male_beds:
        bed.refresh_from_db()
    assert male_beds[0].status == Bed.STATUS_OCCUPIED
    assert male_beds[1].status == Bed.STATUS_AVAILABLE
    assert IPDRegistration.objects.get(pk=admission.pk).bed_id == other.bed_id


def test_mortality_lists_deaths_in_period(admission):
    discharge.finalize(admission, {'final_diagnosis': 'Sepsis'}, DischargeSummary.TYPE_DEATH)
    rows = list(discharge.mortality(resolve_period('today')))
    assert [r.final_diagnosis for r in rows] == ['Sepsis']
    assert not list(discharge.mortality(resolve_period('yesterday')))


# ---------------------------------------------------------------------
# records / signatures
# ---------------------------------------------------------------------
def test_investigation_results_merge_by_test_name(admission, staff_user):
    first = records.append_entry(admission, 'investigation', {
        'testName': 'Haemoglobin', 'entries': [{'dateTime': '2025-01-01T09:00', 'value': '11.2', 'type': 'text'}],
    }, staff_user)
    records.append_entry(admission, 'investigation', {
        'testName': 'haemoglobin', 'entries': [{'dateTime': '2025-01-02T09:00', 'value': '11.8', 'type': 'text'}],
    }, staff_user)
    sheet = ClinicalSheet.objects.get(ipd=admission, kind='investigation')
    assert len(sheet.data['entries']) == 1
    assert sheet.data['entries'][0]['id'] == first['id']
    assert [e['value'] for e in sheet.data['entries'][0]['entries']] == ['11.2', '11.8']


def test_single_entries_only_on_entry_sheets(admission):
    with pytest.raises(ValidationError):
        records.append_entry(admission, 'drug_chart', {'drug': 'x'})
    with pytest.raises(NotFound):
        records.delete_entry(admission, 'vitals', 'missing')


def test_serialize_missing_sheet_has_defaults(admission):
    assert records.serialize_sheet(admission, 'glucose', None)['data'] == {'entries': []}
    assert records.serialize_sheet(admission, 'patient_file', None)['data'] == {}


def test_resolve_signature_pins_walks_nested_payloads():
    Signature.objects.create(owner_name='Dr A', pin='ABCDEFGHIJ', signature_url='https://cdn.example/a.png')
    payload = {
        'doctorSign': 'ABCDEFGHIJ',
        'nurseSignature': 'ZZZZZZZZZZ',
        'witnessSign': 'https://cdn.example/w.png',
        'rows': [{'signatureBy': 'ABCDEFGHIJ', 'note': 'ABCDEFGHIJ'}],
    }
    out = resolve_signature_pins(payload)
    assert out['doctorSign'] == 'https://cdn.example/a.png'
    assert out['nurseSignature'] == ''
    assert out['witnessSign'] == 'https://cdn.example/w.png'
    assert out['rows'][0] == {'signatureBy': 'https://cdn.example/a.png', 'note': 'ABCDEFGHIJ'}
    assert payload['doctorSign'] == 'ABCDEFGHIJ'


def test_doctor_visit_signature_fields_are_resolved(admission):
    Signature.objects.create(owner_name='Dr A', pin='ABCDEFGHIJ', signature_url='https://cdn.example/a.png')
    saved = records.append_entry(admission, 'doctor_visit', {
        'note': 'Afebrile', 'consultant': 'ABCDEFGHIJ', 'referral1': 'QQQQQQQQQQ', 'referral2': 'Anil Mehta',
    })
    assert saved['consultant'] == 'https://cdn.example/a.png'
    assert saved['referral1'] == ''
    assert saved['referral2'] == 'Anil Mehta'
    stored = ClinicalSheet.objects.get(ipd=admission, kind='doctor_visit').data['entries'][0]
    assert 'ABCDEFGHIJ' not in stored.values()

    # other sheets keep a field called consultant as plain text
    assert resolve_signature_pins({'consultant': 'ABCDEFGHIJ'}, 'vitals') == {'consultant': 'ABCDEFGHIJ'}


def test_signature_lookup():
    Signature.objects.create(owner_name='Dr A', pin='ABCDEFGHIJ', signature_url='https://cdn.example/a.png')
    assert lookup('ABCDEFGHIJ') == 'https://cdn.example/a.png'
    with pytest.raises(ValidationError):
        lookup('short')
    with pytest.raises(NotFound):
        lookup('0000000000')
