import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.models import Bed, IPDRegistration, Patient, User


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttles and list caches live in the default cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role=User.ROLE_ADMIN)


@pytest.fixture
def desk_user(db):
    return User.objects.create_user(username='desk1', password='P@ssw0rd1', role=User.ROLE_DESK)


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username='nurse1', password='P@ssw0rd1', role=User.ROLE_STAFF)


def client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def desk_client(desk_user):
    return client_for(desk_user)


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture
def staff_client(staff_user):
    return client_for(staff_user)


@pytest.fixture
def male_beds(db):
    return [Bed.objects.create(room_type='male', bed_number=f'M0{n}', bed_type='General') for n in (1, 2)]


@pytest.fixture
def patient(db):
    return Patient.objects.create(uhid='MG-010125-00001', name='Ramesh Kumar', number='9811000001',
                                  age=54, gender='Male', address='Noida')


@pytest.fixture
def admission(patient, male_beds):
    bed = male_beds[0]
    bed.status = Bed.STATUS_OCCUPIED
    bed.save()
    return IPDRegistration.objects.create(patient=patient, uhid=patient.uhid, bed=bed,
                                          under_care_of_doctor='Anil Mehta', relative_name='Sita',
                                          relative_ph_no='9811000099')
