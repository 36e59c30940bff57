"""
Management command to populate the database with demo data.
"""
import random

from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import Bed, Doctor, IPDRegistration, MasterService, Patient, Signature, User
from clinic.services import billing, ipd as ipd_service, opd as opd_service
from clinic.services.doctors import save_doctor

WARDS = {
    'male': ('General', 6),
    'female': ('General', 6),
    'icu': ('ICU', 4),
    'nicu': ('Cradle', 2),
    'delux': ('Private', 2),
    'suit': ('Suite', 1),
    'casuality': ('Trolley', 3),
}

DOCTORS = [
    {'dr_name': 'Anil Mehta', 'department': 'both', 'specialist': ['General Medicine'],
     'first_visit_charge': 500, 'follow_up_charge': 300,
     'ipd_charges': {'male': 800, 'female': 800, 'icu': 1500, 'delux': 1200, 'suit': 2000}},
    {'dr_name': 'Sunita Rao', 'department': 'opd', 'specialist': ['Gynaecology'],
     'first_visit_charge': 600, 'follow_up_charge': 400},
    {'dr_name': 'Farhan Qureshi', 'department': 'ipd', 'specialist': ['General Surgery'],
     'ipd_charges': {'male': 1000, 'female': 1000, 'icu': 2000}},
    {'dr_name': 'Kavita Joshi', 'department': 'both', 'specialist': ['Paediatrics'],
     'first_visit_charge': 400, 'follow_up_charge': 250, 'ipd_charges': {'nicu': 1200}},
]

SERVICES = [
    ('X-Ray Chest PA', 350), ('CBC', 250), ('ECG', 300), ('Nebulisation', 150),
    ('Dressing', 200), ('Oxygen (per hour)', 100), ('Bed Charges', 1200), ('Nursing Charges', 500),
]

PATIENTS = [
    ('Ramesh Kumar', '9811000001', 54, 'Male', 'Sector 12, Noida'),
    ('Priya Sharma', '9811000002', 29, 'Female', 'Lajpat Nagar, Delhi'),
    ('Mohd. Arif', '9811000003', 41, 'Male', 'Ghaziabad'),
    ('Lakshmi Iyer', '9811000004', 67, 'Female', 'Indirapuram'),
    ('Baby of Neha', '9811000005', 3, 'Female', 'Noida Extension'),
]


class Command(BaseCommand):
    help = 'Populate database with demo beds, doctors, services, patients and visits'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=7)

    @transaction.atomic
    def handle(self, *args, **options):
        random.seed(options['seed'])
        self.stdout.write('Creating demo data...')

        self.create_beds()
        self.create_doctors()
        self.create_services()
        self.create_signatures()
        desk = User.objects.filter(role=User.ROLE_DESK).first()
        self.create_opd_visits(desk)
        self.create_admissions(desk)

        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_beds(self):
        created = 0
        for room_type, (bed_type, count) in WARDS.items():
            for n in range(1, count + 1):
                _, was_created = Bed.objects.get_or_create(
                    room_type=room_type, bed_number=f"{room_type[:1].upper()}{n:02d}", defaults={'bed_type': bed_type},
                )
                created += int(was_created)
        self.stdout.write(f"beds: {created} new")

    def create_doctors(self):
        for data in DOCTORS:
            existing = Doctor.objects.filter(dr_name=data['dr_name']).first()
            save_doctor(data, existing)
        self.stdout.write(f"doctors: {len(DOCTORS)}")

    def create_services(self):
        for name, amount in SERVICES:
            MasterService.objects.get_or_create(service_name=name, defaults={'amount': amount})
        self.stdout.write(f"services: {len(SERVICES)}")

    def create_signatures(self):
        Signature.objects.get_or_create(
            pin='DEMO000001', defaults={'owner_name': 'Dr. Anil Mehta',
                                        'signature_url': 'https://example.com/signatures/anil-mehta.png'},
        )

    def create_opd_visits(self, desk):
        for name, phone, age, gender, address in PATIENTS:
            if Patient.objects.filter(name=name, number=phone).exists():
                continue
            doctor = random.choice([d for d in DOCTORS if d['department'] != 'ipd'])
            opd_service.create_appointment(
                patient_data={'name': name, 'number': phone, 'age': age, 'age_unit': 'year',
                              'gender': gender, 'address': address},
                modalities=[{'type': 'consultation', 'doctor': doctor['dr_name'], 'visitType': 'first',
                             'charges': doctor['first_visit_charge']}],
                payment={'paymentMethod': random.choice(['cash', 'online'])},
                user=desk,
            )
        self.stdout.write(f"opd visits for {len(PATIENTS)} patients")

    def create_admissions(self, desk):
        if IPDRegistration.objects.filter(discharge_date__isnull=True).exists():
            self.stdout.write('admissions: already present')
            return
        bed = Bed.objects.filter(room_type='male', status=Bed.STATUS_AVAILABLE).first()
        name, phone, age, gender, address = PATIENTS[0]
        ipd = ipd_service.admit({
            'name': name, 'number': phone, 'age': age, 'age_unit': 'year', 'gender': gender, 'address': address,
            'room_type': bed.room_type, 'bed': bed.id, 'under_care_of_doctor': 'Anil Mehta',
            'admission_type': 'General', 'admission_source': 'opd', 'relative_name': 'Sita Kumar',
            'relative_ph_no': '9811000099', 'deposit_amount': 10000, 'payment_type': 'cash',
        }, desk)
        billing.add_service(ipd, name='Bed Charges', amount=1200, quantity=2)
        billing.add_service(ipd, name='CBC', amount=250)
        billing.add_consultant_visit(ipd, doctor_name='Anil Mehta', charge=800, times=2)
        self.stdout.write(f"admission: IPD {ipd.pk} in {bed.room_type}/{bed.bed_number}")
