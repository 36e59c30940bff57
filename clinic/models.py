"""
Database models for the hospital administration backend.

Patients are registered once and identified by a UHID. Each visit is
either an OPD registration (outpatient, billed on the spot), an on-call
entry or an IPD admission (inpatient, occupying a bed, with a running
ledger of services and payments). Clinical paperwork for an admission is
kept as JSON sheets keyed by the kind of form.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models, transaction


class User(AbstractUser):
    """Staff account with an application role.

    ``admin`` sees the dashboard and the admin pages, ``opd-ipd`` is the
    front desk (registration, admission, billing) and ``staff`` covers
    nurses and doctors filling clinical sheets.
    """
    ROLE_ADMIN = 'admin'
    ROLE_DESK = 'opd-ipd'
    ROLE_STAFF = 'staff'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_DESK, 'OPD/IPD desk'),
        (ROLE_STAFF, 'Clinical staff'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_STAFF)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class SequenceCounter(models.Model):
    """Named monotonically increasing counter (UHIDs, bill numbers)."""
    name = models.CharField(max_length=64, unique=True)
    value = models.PositiveBigIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)

    @classmethod
    def next_value(cls, name: str) -> int:
        with transaction.atomic():
            cls.objects.get_or_create(name=name)
            counter = cls.objects.select_for_update().get(name=name)
            counter.value += 1
            counter.save(update_fields=['value', 'last_updated'])
            return counter.value

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


class Patient(models.Model):
    AGE_UNIT_CHOICES = [
        ('year', 'Years'),
        ('month', 'Months'),
        ('day', 'Days'),
    ]
    uhid = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=255, db_index=True)
    # phone digits as entered; leading zeros and country codes are kept
    number = models.CharField(max_length=20, blank=True, db_index=True)
    age = models.PositiveIntegerField(null=True, blank=True)
    age_unit = models.CharField(max_length=8, choices=AGE_UNIT_CHOICES, default='year')
    dob = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.uhid})"


class Doctor(models.Model):
    DEPARTMENT_CHOICES = [
        ('opd', 'OPD'),
        ('ipd', 'IPD'),
        ('both', 'Both'),
    ]
    dr_name = models.CharField(max_length=255)
    department = models.CharField(max_length=8, choices=DEPARTMENT_CHOICES, default='opd', db_index=True)
    specialist = models.JSONField(default=list, blank=True)
    # a single-element list holding the charge object built by services.doctors
    charges = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Dr. {self.dr_name} ({self.department})"


class MasterService(models.Model):
    """Catalogue of billable hospital services with a default price."""
    service_name = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.service_name


class OPDRegistration(models.Model):
    """An outpatient visit with its billed modalities and payment."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='opd_registrations')
    uhid = models.CharField(max_length=32, db_index=True)
    bill_no = models.PositiveIntegerField(unique=True)
    date = models.DateField(db_index=True)
    refer_by = models.CharField(max_length=255, blank=True)
    additional_notes = models.TextField(blank=True)
    service_info = models.JSONField(default=list, blank=True)
    payment_info = models.JSONField(default=dict, blank=True)
    entered_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='opd_entries'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self) -> str:
        return f"OPD #{self.bill_no} {self.uhid}"


class OPDOnCall(models.Model):
    """A doctor on-call request logged at the desk, not yet billed."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='oncall_entries')
    uhid = models.CharField(max_length=32, db_index=True)
    date = models.DateField()
    time = models.TimeField()
    referred_by = models.CharField(max_length=255, blank=True)
    additional_notes = models.TextField(blank=True)
    entered_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='oncall_entries'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self) -> str:
        return f"On-call {self.uhid} {self.date}"


class OPDSummary(models.Model):
    """Running totals of OPD bookings per calendar day."""
    date = models.DateField(unique=True)
    total_count = models.PositiveIntegerField(default=0)
    total_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cash_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    online_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"OPD summary {self.date}: {self.total_count}"


class OPDPrescription(models.Model):
    opd = models.OneToOneField(OPDRegistration, on_delete=models.CASCADE, related_name='prescription')
    uhid = models.CharField(max_length=32)
    symptoms = models.TextField(blank=True)
    medicines = models.JSONField(default=list, blank=True)
    overall_instruction = models.TextField(blank=True)
    created_by = models.CharField(max_length=150, blank=True)
    updated_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Prescription for OPD #{self.opd_id}"


class Bed(models.Model):
    STATUS_AVAILABLE = 'available'
    STATUS_OCCUPIED = 'occupied'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_OCCUPIED, 'Occupied'),
    ]
    room_type = models.CharField(max_length=64, db_index=True)
    bed_number = models.CharField(max_length=32)
    bed_type = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('room_type', 'bed_number')]

    def __str__(self) -> str:
        return f"{self.room_type} / {self.bed_number} ({self.status})"


class IPDRegistration(models.Model):
    """An inpatient admission.

    ``service_detail`` and ``payment_detail`` are the billing ledger (see
    ``clinic.services.billing`` for the entry shapes). An admission is
    active while ``discharge_date`` is empty.
    """
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='ipd_registrations')
    uhid = models.CharField(max_length=32, db_index=True)
    admission_source = models.CharField(max_length=64, blank=True)
    admission_type = models.CharField(max_length=64, blank=True)
    under_care_of_doctor = models.CharField(max_length=255, blank=True)
    payment_detail = models.JSONField(default=list, blank=True)
    service_detail = models.JSONField(default=list, blank=True)
    bed = models.ForeignKey(Bed, null=True, blank=True, on_delete=models.SET_NULL, related_name='admissions')
    relative_name = models.CharField(max_length=255, blank=True)
    relative_ph_no = models.CharField(max_length=20, blank=True)
    relative_address = models.TextField(blank=True)
    admission_date = models.DateField(null=True, blank=True)
    admission_time = models.TimeField(null=True, blank=True)
    mrd = models.CharField(max_length=64, blank=True)
    tpa = models.BooleanField(default=False)
    discharge_date = models.DateTimeField(null=True, blank=True, db_index=True)
    ipd_notes = models.TextField(blank=True)
    entered_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='ipd_entries'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_active(self) -> bool:
        return self.discharge_date is None

    def __str__(self) -> str:
        return f"IPD #{self.pk} {self.uhid}"


class DischargeSummary(models.Model):
    TYPE_DISCHARGE = 'Discharge'
    TYPE_PARTIAL = 'Discharge Partially'
    TYPE_DEATH = 'Death'
    TYPE_CHOICES = [
        (TYPE_DISCHARGE, 'Discharge'),
        (TYPE_PARTIAL, 'Discharge Partially'),
        (TYPE_DEATH, 'Death'),
    ]
    TEXT_FIELDS = (
        'final_diagnosis',
        'procedures',
        'provisional_diagnosis',
        'history_of_present_illness',
        'investigations',
        'treatment_given',
        'hospital_course',
        'surgery_procedure_details',
        'condition_at_discharge',
        'discharge_medication',
        'follow_up',
        'discharge_instructions',
    )

    ipd = models.OneToOneField(IPDRegistration, on_delete=models.CASCADE, related_name='discharge_summary')
    uhid = models.CharField(max_length=32)
    final_diagnosis = models.TextField(blank=True)
    procedures = models.TextField(blank=True)
    provisional_diagnosis = models.TextField(blank=True)
    history_of_present_illness = models.TextField(blank=True)
    investigations = models.TextField(blank=True)
    treatment_given = models.TextField(blank=True)
    hospital_course = models.TextField(blank=True)
    surgery_procedure_details = models.TextField(blank=True)
    condition_at_discharge = models.TextField(blank=True)
    discharge_medication = models.TextField(blank=True)
    follow_up = models.TextField(blank=True)
    discharge_instructions = models.TextField(blank=True)
    discharge_type = models.CharField(max_length=32, choices=TYPE_CHOICES, blank=True)
    last_updated = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Discharge summary for IPD #{self.ipd_id}"


class OTDetail(models.Model):
    OT_TYPE_CHOICES = [
        ('major', 'Major'),
        ('minor', 'Minor'),
    ]
    ipd = models.OneToOneField(IPDRegistration, on_delete=models.CASCADE, related_name='ot_detail')
    uhid = models.CharField(max_length=32)
    ot_type = models.CharField(max_length=8, choices=OT_TYPE_CHOICES)
    ot_notes = models.TextField(blank=True)
    ot_date = models.DateField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"OT {self.ot_type} {self.ot_date} (IPD #{self.ipd_id})"


class ClinicalSheet(models.Model):
    """One paper-style clinical form of an admission, stored as JSON."""
    KIND_CHOICES = [
        ('admission_assessment', 'Admission assessment'),
        ('blood_transfusion_consent', 'Blood transfusion consent'),
        ('blood_transfusion', 'Blood transfusion record'),
        ('clinical_notes', 'Clinical notes'),
        ('discharge_ama', 'Discharge against medical advice'),
        ('discharge_summary', 'Discharge summary sheet'),
        ('doctor_visit', 'Doctor visits'),
        ('drug_chart', 'Drug chart'),
        ('emergency_care', 'Emergency care'),
        ('glucose', 'Glucose monitoring'),
        ('investigation', 'Investigation sheet'),
        ('iv_infusion', 'IV infusion'),
        ('nurses_notes', 'Nurses notes'),
        ('patient_charges', 'Patient charges'),
        ('patient_file', 'Patient file'),
        ('progress_notes', 'Progress notes'),
        ('surgical_consent', 'Surgical consent'),
        ('vitals', 'Vital observations'),
        ('writing_pad', 'Writing pad'),
    ]
    ipd = models.ForeignKey(IPDRegistration, on_delete=models.CASCADE, related_name='sheets')
    kind = models.CharField(max_length=40, choices=KIND_CHOICES)
    data = models.JSONField(default=dict, blank=True)
    header = models.JSONField(default=dict, blank=True)
    updated_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='sheet_updates'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('ipd', 'kind')]

    def __str__(self) -> str:
        return f"{self.kind} for IPD #{self.ipd_id}"


class Signature(models.Model):
    """A staff signature image unlocked by a 10 character PIN."""
    owner_name = models.CharField(max_length=150)
    pin = models.CharField(max_length=10, unique=True)
    signature_url = models.URLField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Signature of {self.owner_name}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
