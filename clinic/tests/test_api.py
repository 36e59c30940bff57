"""
Integration tests for the hospital API.

These exercise the desk workflows end to end: OPD registration and
on-call booking, IPD admission with bed occupancy, billing, discharge
and the clinical record sheets, plus role based access control.
"""

from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import (
    AuditEvent,
    Bed,
    ClinicalSheet,
    IPDRegistration,
    OPDOnCall,
    OPDRegistration,
    OPDSummary,
    Patient,
    Signature,
    User,
)


class HospitalAPITests(APITestCase):
    def setUp(self) -> None:
        """Users for each role, a small ward and a registered patient."""
        self.admin_user = User.objects.create_user(username='admin1', password='adminpass', role=User.ROLE_ADMIN)
        self.desk_user = User.objects.create_user(username='desk1', password='deskpass', role=User.ROLE_DESK)
        self.staff_user = User.objects.create_user(username='nurse1', password='nursepass', role=User.ROLE_STAFF)

        self.bed1 = Bed.objects.create(room_type='male', bed_number='M01', bed_type='General')
        self.bed2 = Bed.objects.create(room_type='male', bed_number='M02', bed_type='General')
        self.icu_bed = Bed.objects.create(room_type='icu', bed_number='I01', bed_type='ICU')

        self.patient = Patient.objects.create(uhid='MG-010125-00001', name='Priya Sharma', number='9811000002',
                                              age=29, gender='Female')

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def admit(self, client=None, **overrides):
        body = {
            'name': 'Ramesh Kumar',
            'phone': '9811000001',
            'age': 54,
            'gender': 'Male',
            'roomType': 'male',
            'bed': self.bed1.id,
            'underCareOfDoctor': 'Anil Mehta',
            'relativeName': 'Sita Kumar',
            'relativePhone': '9811000099',
            'depositAmount': 5000,
            'paymentType': 'cash',
        }
        body.update(overrides)
        return (client or self.authenticate(self.desk_user)).post(reverse('ipd_admissions'), body, format='json')

    # ------------------------------------------------------------------
    # OPD
    # ------------------------------------------------------------------
    def test_opd_registration_creates_bill_and_bumps_summary(self):
        client = self.authenticate(self.desk_user)
        response = client.post(reverse('opd_appointments'), {
            'name': 'Mohd. Arif',
            'phone': '9811000003',
            'age': 41,
            'gender': 'Male',
            'modalities': [
                {'type': 'consultation', 'doctor': 'Anil Mehta', 'visitType': 'first', 'charges': 500},
                {'type': 'xray', 'service': 'X-Ray Chest PA', 'charges': 350},
            ],
            'payment': {'paymentMethod': 'cash', 'discount': 50},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['uhid'].startswith('MG-'))
        self.assertEqual(response.data['billNo'], 1)

        opd = OPDRegistration.objects.get(pk=response.data['opdId'])
        self.assertEqual(opd.payment_info['totalCharges'], 850.0)
        self.assertEqual(opd.payment_info['totalPaid'], 800.0)
        self.assertEqual(opd.payment_info['cashAmount'], 800.0)

        summary = OPDSummary.objects.get(date=timezone.localdate())
        self.assertEqual(summary.total_count, 1)
        self.assertEqual(summary.total_revenue, Decimal('800'))
        self.assertEqual(summary.total_discount, Decimal('50'))
        self.assertTrue(AuditEvent.objects.filter(action='opd_create').exists())

        bill = client.get(reverse('opd_bill', args=[opd.id]))
        self.assertEqual(bill.status_code, status.HTTP_200_OK)
        self.assertEqual(len(bill.data['data']['items']), 2)
        self.assertEqual(bill.data['data']['balance'], 0)

    def test_opd_registration_requires_a_service(self):
        client = self.authenticate(self.desk_user)
        response = client.post(reverse('opd_appointments'), {'name': 'No Service', 'phone': '9811000007'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['ok'])
        self.assertFalse(Patient.objects.filter(name='No Service').exists())

    def test_existing_patient_is_reused_by_uhid(self):
        client = self.authenticate(self.desk_user)
        response = client.post(reverse('opd_appointments'), {
            'uhid': self.patient.uhid,
            'name': 'Priya Sharma',
            'address': 'Lajpat Nagar',
            'modalities': [{'type': 'pathology', 'service': 'CBC', 'charges': 250}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['uhid'], self.patient.uhid)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.address, 'Lajpat Nagar')
        self.assertEqual(Patient.objects.count(), 1)

    def test_oncall_entry_is_booked_as_opd_visit(self):
        client = self.authenticate(self.desk_user)
        response = client.post(reverse('opd_appointments'), {
            'existingPatientId': self.patient.id,
            'appointmentType': 'oncall',
            'referBy': 'Dr. Gupta',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        oncall_id = response.data['onCallId']
        self.assertFalse(OPDSummary.objects.exists())

        listed = client.get(reverse('oncall_list'))
        self.assertEqual(listed.data['data'][0]['patient']['uhid'], self.patient.uhid)

        booked = client.post(reverse('oncall_book', args=[oncall_id]), {
            'modalities': [{'type': 'consultation', 'doctor': 'Sunita Rao', 'charges': 600}],
            'payment': {'paymentMethod': 'online'},
        }, format='json')
        self.assertEqual(booked.status_code, status.HTTP_201_CREATED)
        self.assertFalse(OPDOnCall.objects.filter(pk=oncall_id).exists())
        opd = OPDRegistration.objects.get(pk=booked.data['opdId'])
        self.assertEqual(opd.refer_by, 'Dr. Gupta')
        self.assertEqual(opd.payment_info['onlineAmount'], 600.0)

    def test_prescription_upsert(self):
        opd = OPDRegistration.objects.create(patient=self.patient, uhid=self.patient.uhid, bill_no=10,
                                             date=timezone.localdate(), service_info=[], payment_info={})
        client = self.authenticate(self.staff_user)
        self.assertIsNone(client.get(reverse('opd_prescription', args=[opd.id])).data['data'])
        response = client.post(reverse('opd_prescription', args=[opd.id]), {
            'symptoms': 'Fever',
            'medicines': [{'name': 'Paracetamol 650', 'consumptionDays': '3',
                           'times': {'morning': True, 'evening': False, 'night': True}}],
            'overallInstruction': 'Plenty of fluids',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['createdBy'], 'nurse1')
        self.assertEqual(data['medicines'][0]['name'], 'Paracetamol 650')
        self.assertEqual(data['overallInstruction'], 'Plenty of fluids')

    # ------------------------------------------------------------------
    # IPD
    # ------------------------------------------------------------------
    def test_admission_occupies_bed_and_records_deposit(self):
        response = self.admit()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.bed1.refresh_from_db()
        self.assertEqual(self.bed1.status, Bed.STATUS_OCCUPIED)

        ipd = IPDRegistration.objects.get(pk=data['id'])
        self.assertEqual(len(ipd.payment_detail), 1)
        self.assertEqual(ipd.payment_detail[0]['amountType'], 'deposit')
        self.assertEqual(ipd.payment_detail[0]['through'], 'cash')
        self.assertEqual(ipd.service_detail, [])
        self.assertEqual(data['totals']['deposit'], Decimal('5000'))
        self.assertTrue(AuditEvent.objects.filter(action='ipd_admit', object_id=str(ipd.id)).exists())

    def test_admission_to_occupied_bed_conflicts(self):
        self.assertEqual(self.admit().status_code, status.HTTP_201_CREATED)
        response = self.admit(name='Second Patient', phone='9811000055')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'conflict')
        self.assertFalse(Patient.objects.filter(name='Second Patient').exists())

    def test_admission_validates_required_fields(self):
        response = self.admit(roomType='', bed=None)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.admit(paymentType='online', through='')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.bed1.refresh_from_db()
        self.assertEqual(self.bed1.status, Bed.STATUS_AVAILABLE)

    def test_moving_bed_frees_the_old_one(self):
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.desk_user)
        response = client.put(reverse('ipd_detail', args=[ipd_id]), {'bed': self.icu_bed.id, 'roomType': 'icu'},
                              format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.bed1.refresh_from_db()
        self.icu_bed.refresh_from_db()
        self.assertEqual(self.bed1.status, Bed.STATUS_AVAILABLE)
        self.assertEqual(self.icu_bed.status, Bed.STATUS_OCCUPIED)

    def test_staff_reads_admissions_but_cannot_admit(self):
        self.admit()
        client = self.authenticate(self.staff_user)
        listed = client.get(reverse('ipd_admissions'))
        self.assertEqual(listed.status_code, status.HTTP_200_OK)
        self.assertEqual(listed.data['pagination']['total'], 1)
        response = self.admit(client=client, bed=self.bed2.id)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_billing_flow_and_invoice(self):
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.desk_user)

        r = client.post(reverse('billing_add_service', args=[ipd_id]),
                        {'serviceName': 'Bed Charges', 'amount': 1200, 'quantity': 3}, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(r.data['added']), 3)

        client.post(reverse('billing_add_consultant', args=[ipd_id]),
                    {'doctorName': 'Anil Mehta', 'charge': 800, 'times': 2}, format='json')
        client.post(reverse('billing_payment', args=[ipd_id]),
                    {'amount': 500, 'paymentType': 'cash', 'amountType': 'refund'}, format='json')
        r = client.post(reverse('billing_discount', args=[ipd_id]), {'amount': 100}, format='json')
        self.assertEqual(r.data['discount']['discountGivenBy'], 'desk1')

        totals = r.data['totals']
        self.assertEqual(totals['hospitalServices'], Decimal('3600'))
        self.assertEqual(totals['consultantCharges'], Decimal('1600'))
        self.assertEqual(totals['deposit'], Decimal('4500'))
        self.assertEqual(totals['balance'], Decimal('600'))

        invoice = client.get(reverse('billing_invoice', args=[ipd_id])).data['data']
        self.assertEqual(invoice['services'][0]['quantity'], 3)
        self.assertEqual(invoice['consultants'][0]['visited'], 2)
        self.assertEqual(invoice['header']['bedNumber'], 'M01')

        r = client.post(reverse('billing_delete_group', args=[ipd_id]),
                        {'serviceName': 'Bed Charges', 'amount': 1200}, format='json')
        self.assertEqual(r.data['removed'], 3)

    def test_payment_delete_and_missing_payment(self):
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.desk_user)
        r = client.post(reverse('billing_payment', args=[ipd_id]),
                        {'amount': 2000, 'paymentType': 'online', 'through': 'upi', 'amountType': 'advance'},
                        format='json')
        payment_id = r.data['payment']['id']
        r = client.delete(reverse('billing_delete_payment', args=[ipd_id, payment_id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['totals']['deposit'], Decimal('5000'))
        r = client.delete(reverse('billing_delete_payment', args=[ipd_id, payment_id]))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_discharge_frees_bed_and_partial_keeps_it(self):
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.desk_user)

        r = client.post(reverse('discharge_finalize', args=[ipd_id]),
                        {'finalDiagnosis': 'Dengue', 'dischargeType': 'Discharge Partially'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertIsNone(r.data['admission']['dischargeDate'])
        self.bed1.refresh_from_db()
        self.assertEqual(self.bed1.status, Bed.STATUS_OCCUPIED)

        r = client.post(reverse('discharge_finalize', args=[ipd_id]),
                        {'conditionAtDischarge': 'Stable', 'dischargeType': 'Discharge'}, format='json')
        self.assertEqual(r.data['data']['finalDiagnosis'], 'Dengue')
        self.assertEqual(r.data['data']['conditionAtDischarge'], 'Stable')
        self.assertIsNotNone(r.data['admission']['dischargeDate'])
        self.bed1.refresh_from_db()
        self.assertEqual(self.bed1.status, Bed.STATUS_AVAILABLE)

        discharged = client.get(reverse('ipd_discharged'), {'phone': '9811000001'})
        self.assertEqual(discharged.data['pagination']['total'], 1)
        self.assertEqual(client.get(reverse('ipd_admissions')).data['pagination']['total'], 0)

        r = client.post(reverse('discharge_finalize', args=[ipd_id]), {'dischargeType': 'Discharge'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data['error']['code'], 'conflict')

    def test_death_shows_in_mortality_report(self):
        ipd_id = self.admit().data['data']['id']
        self.authenticate(self.desk_user).post(reverse('discharge_finalize', args=[ipd_id]),
                                               {'finalDiagnosis': 'Cardiac arrest', 'dischargeType': 'Death'},
                                               format='json')
        r = self.authenticate(self.admin_user).get(reverse('mortality_report'), {'filter': 'today'})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['total'], 1)
        self.assertEqual(r.data['data'][0]['finalDiagnosis'], 'Cardiac arrest')

    def test_ot_record_upsert_and_admin_list(self):
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.desk_user)
        today = timezone.localdate().isoformat()
        client.post(reverse('ot_detail', args=[ipd_id]), {'otType': 'minor', 'otDate': today}, format='json')
        r = client.post(reverse('ot_detail', args=[ipd_id]),
                        {'otType': 'major', 'otDate': today, 'otNotes': 'Appendectomy'}, format='json')
        self.assertEqual(r.data['data']['otType'], 'major')

        listed = self.authenticate(self.admin_user).get(reverse('ot_list'), {'filter': 'today'})
        self.assertEqual(listed.data['total'], 1)
        self.assertEqual(listed.data['data'][0]['otNotes'], 'Appendectomy')

    # ------------------------------------------------------------------
    # Clinical records
    # ------------------------------------------------------------------
    def test_sheet_save_resolves_signature_pins(self):
        Signature.objects.create(owner_name='Dr. Anil', pin='ABCDE12345', signature_url='https://cdn.example/a.png')
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.staff_user)

        empty = client.get(reverse('record_sheet', args=[ipd_id, 'drug_chart']))
        self.assertEqual(empty.data['data']['data'], {})

        r = client.put(reverse('record_sheet', args=[ipd_id, 'drug_chart']), {
            'data': {'rows': [{'drug': 'Ceftriaxone', 'doctorSign': 'ABCDE12345', 'nurseSign': 'ZZZZZ99999'}]},
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        row = r.data['data']['data']['rows'][0]
        self.assertEqual(row['doctorSign'], 'https://cdn.example/a.png')
        self.assertEqual(row['nurseSign'], '')
        self.assertEqual(r.data['data']['updatedBy'], 'nurse1')

    def test_entry_sheet_append_and_delete(self):
        ipd_id = self.admit().data['data']['id']
        client = self.authenticate(self.staff_user)
        r = client.post(reverse('record_entries', args=[ipd_id, 'vitals']),
                        {'entry': {'bp': '120/80', 'pulse': 78}}, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        entry_id = r.data['entry']['id']
        self.assertEqual(r.data['entry']['enteredBy'], 'nurse1')

        r = client.delete(reverse('record_entry_delete', args=[ipd_id, 'vitals', entry_id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        sheet = ClinicalSheet.objects.get(ipd_id=ipd_id, kind='vitals')
        self.assertEqual(sheet.data['entries'], [])

    def test_unknown_sheet_kind_is_404(self):
        ipd_id = self.admit().data['data']['id']
        r = self.authenticate(self.staff_user).get(reverse('record_sheet', args=[ipd_id, 'horoscope']))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    # ------------------------------------------------------------------
    # Master data and patients
    # ------------------------------------------------------------------
    def test_doctor_list_cache_is_invalidated_on_write(self):
        client = self.authenticate(self.admin_user)
        self.assertEqual(client.get(reverse('doctors')).data['data'], [])
        r = client.post(reverse('doctors'), {
            'name': 'Kavita Joshi', 'department': 'both', 'firstVisitCharge': '400', 'followUpCharge': 'abc',
            'ipdCharges': {'nicu': 1200},
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        charge = r.data['data']['charges'][0]
        self.assertEqual(charge['department'], 'Both')
        self.assertEqual(charge['followUpCharge'], 0.0)
        self.assertEqual(charge['ipdCharges']['nicu'], 1200.0)

        listed = client.get(reverse('doctors'), {'department': 'ipd'}).data['data']
        self.assertEqual([d['name'] for d in listed], ['Kavita Joshi'])

    def test_duplicate_bed_conflicts_and_occupied_bed_cannot_be_deleted(self):
        client = self.authenticate(self.admin_user)
        r = client.post(reverse('beds'), {'roomType': 'Male', 'bedNumber': 'M01'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

        self.admit()
        r = client.delete(reverse('bed_detail', args=[self.bed1.id]))
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

        summary = client.get(reverse('bed_summary')).data['data']
        male = next(w for w in summary if w['ward'] == 'male')
        self.assertEqual(male['occupied'], 1)
        self.assertEqual(male['occupancyRate'], 50.0)

    def test_patient_search_by_uhid_and_phone(self):
        client = self.authenticate(self.desk_user)
        r = client.get(reverse('patient_search'), {'uhid': self.patient.uhid})
        self.assertEqual(r.data['data'][0]['name'], 'Priya Sharma')
        r = client.get(reverse('patient_search'), {'phone': '98110x'})
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        r = client.get(reverse('patient_search'), {'phone': '9000000000'})
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_edits_patient_and_sees_history(self):
        self.admit(uhid=self.patient.uhid, name='Priya Sharma', phone='9811000002')
        client = self.authenticate(self.admin_user)
        r = client.patch(reverse('patient_detail', args=[self.patient.id]), {'address': 'Saket'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['data']['address'], 'Saket')
        self.assertEqual(r.data['data']['name'], 'Priya Sharma')

        history = client.get(reverse('patient_history', args=[self.patient.id])).data['data']
        self.assertEqual([e['kind'] for e in history], ['IPD'])
