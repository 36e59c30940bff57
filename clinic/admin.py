"""
Django admin registrations for the clinic models.

Superusers can inspect registrations, admissions and ledgers at
``/admin/`` and correct master data by hand. The JSON ledgers are shown
read-only in lists; edit them through the API so totals stay consistent.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Bed,
    ClinicalSheet,
    DischargeSummary,
    Doctor,
    IPDRegistration,
    MasterService,
    OPDOnCall,
    OPDPrescription,
    OPDRegistration,
    OPDSummary,
    OTDetail,
    Patient,
    SequenceCounter,
    Signature,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'first_name', 'last_name', 'is_active', 'is_superuser')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('uhid', 'name', 'number', 'age', 'age_unit', 'gender', 'created_at')
    list_filter = ('gender',)
    search_fields = ('uhid', 'name', 'number')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('dr_name', 'department', 'created_at')
    list_filter = ('department',)
    search_fields = ('dr_name',)


@admin.register(MasterService)
class MasterServiceAdmin(admin.ModelAdmin):
    list_display = ('service_name', 'amount')
    search_fields = ('service_name',)


@admin.register(Bed)
class BedAdmin(admin.ModelAdmin):
    list_display = ('room_type', 'bed_number', 'bed_type', 'status')
    list_filter = ('room_type', 'status')
    search_fields = ('room_type', 'bed_number')


@admin.register(OPDRegistration)
class OPDRegistrationAdmin(admin.ModelAdmin):
    list_display = ('bill_no', 'uhid', 'patient', 'date', 'refer_by', 'created_at')
    list_filter = ('date',)
    search_fields = ('uhid', 'patient__name', 'patient__number')
    raw_id_fields = ('patient', 'entered_by')


@admin.register(OPDOnCall)
class OPDOnCallAdmin(admin.ModelAdmin):
    list_display = ('uhid', 'patient', 'date', 'time', 'referred_by')
    search_fields = ('uhid', 'patient__name')
    raw_id_fields = ('patient', 'entered_by')


@admin.register(OPDSummary)
class OPDSummaryAdmin(admin.ModelAdmin):
    list_display = ('date', 'total_count', 'total_revenue', 'cash_revenue', 'online_revenue', 'total_discount')
    ordering = ('-date',)


@admin.register(OPDPrescription)
class OPDPrescriptionAdmin(admin.ModelAdmin):
    list_display = ('opd', 'uhid', 'created_by', 'updated_at')
    search_fields = ('uhid',)
    raw_id_fields = ('opd',)


@admin.register(IPDRegistration)
class IPDRegistrationAdmin(admin.ModelAdmin):
    list_display = ('id', 'uhid', 'patient', 'bed', 'under_care_of_doctor', 'admission_date', 'discharge_date')
    list_filter = ('admission_type', 'tpa')
    search_fields = ('uhid', 'patient__name', 'patient__number', 'relative_ph_no')
    raw_id_fields = ('patient', 'bed', 'entered_by')
    readonly_fields = ('service_detail', 'payment_detail')


@admin.register(DischargeSummary)
class DischargeSummaryAdmin(admin.ModelAdmin):
    list_display = ('ipd', 'uhid', 'discharge_type', 'last_updated')
    list_filter = ('discharge_type',)
    search_fields = ('uhid', 'final_diagnosis')
    raw_id_fields = ('ipd',)


@admin.register(OTDetail)
class OTDetailAdmin(admin.ModelAdmin):
    list_display = ('ipd', 'uhid', 'ot_type', 'ot_date')
    list_filter = ('ot_type',)
    search_fields = ('uhid',)
    raw_id_fields = ('ipd',)


@admin.register(ClinicalSheet)
class ClinicalSheetAdmin(admin.ModelAdmin):
    list_display = ('ipd', 'kind', 'updated_by', 'updated_at')
    list_filter = ('kind',)
    raw_id_fields = ('ipd', 'updated_by')


@admin.register(Signature)
class SignatureAdmin(admin.ModelAdmin):
    list_display = ('owner_name', 'signature_url', 'created_at')
    search_fields = ('owner_name',)


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ('name', 'value', 'last_updated')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
