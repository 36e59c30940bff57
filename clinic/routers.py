"""
URL mappings for the hospital API.

Paths carry no trailing slash. Admission scoped endpoints (billing,
discharge, OT, clinical records) hang off ``api/ipd/admissions/<pk>``.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view
from .views import billing, health, ipd, masters, opd, patients, records, reports

ADMISSION = 'api/ipd/admissions/<int:pk>'

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view, name='me_view'),

    # Patients
    path('api/patients', patients.list_patients, name='patient_list'),
    path('api/patients/search', patients.search_patients, name='patient_search'),
    path('api/patients/<int:pk>', patients.patient_detail, name='patient_detail'),
    path('api/patients/<int:pk>/history', patients.patient_history_view, name='patient_history'),

    # Master data
    path('api/doctors', masters.doctors, name='doctors'),
    path('api/doctors/<int:pk>', masters.doctor_detail, name='doctor_detail'),
    path('api/services', masters.services, name='services'),
    path('api/services/<int:pk>', masters.service_detail, name='service_detail'),
    path('api/beds', masters.beds, name='beds'),
    path('api/beds/summary', masters.bed_summary, name='bed_summary'),
    path('api/beds/<int:pk>', masters.bed_detail, name='bed_detail'),
    path('api/beds/<int:pk>/status', masters.bed_status, name='bed_status'),
    path('api/signatures/lookup', masters.signature_lookup, name='signature_lookup'),

    # OPD
    path('api/opd/appointments', opd.appointments, name='opd_appointments'),
    path('api/opd/appointments/<int:pk>', opd.appointment_detail, name='opd_appointment_detail'),
    path('api/opd/appointments/<int:pk>/bill', opd.appointment_bill, name='opd_bill'),
    path('api/opd/appointments/<int:pk>/prescription', opd.prescription, name='opd_prescription'),
    path('api/opd/oncall', opd.oncall_list, name='oncall_list'),
    path('api/opd/oncall/<int:pk>', opd.oncall_detail, name='oncall_detail'),
    path('api/opd/oncall/<int:pk>/book', opd.oncall_book, name='oncall_book'),
    path('api/opd/summary', opd.opd_summary, name='opd_summary'),

    # IPD
    path('api/ipd/admissions', ipd.admissions, name='ipd_admissions'),
    path('api/ipd/discharged', ipd.discharged, name='ipd_discharged'),
    path(ADMISSION, ipd.admission_detail, name='ipd_detail'),
    path(f'{ADMISSION}/notes', ipd.admission_notes, name='ipd_notes'),
    path(f'{ADMISSION}/header', ipd.admission_header, name='ipd_header'),
    path(f'{ADMISSION}/discharge', ipd.discharge_summary, name='discharge_summary'),
    path(f'{ADMISSION}/discharge/finalize', ipd.discharge_finalize, name='discharge_finalize'),
    path(f'{ADMISSION}/ot', ipd.ot_detail, name='ot_detail'),

    # Billing
    path(f'{ADMISSION}/services', billing.add_service, name='billing_add_service'),
    path(f'{ADMISSION}/services/bulk', billing.add_bulk_services, name='billing_bulk_services'),
    path(f'{ADMISSION}/services/delete-group', billing.delete_service_group, name='billing_delete_group'),
    path(f'{ADMISSION}/consultants', billing.add_consultant_visit, name='billing_add_consultant'),
    path(f'{ADMISSION}/consultants/delete', billing.delete_consultant_charges, name='billing_delete_consultant'),
    path(f'{ADMISSION}/payments', billing.record_payment, name='billing_payment'),
    path(f'{ADMISSION}/payments/<str:payment_id>', billing.delete_payment, name='billing_delete_payment'),
    path(f'{ADMISSION}/discount', billing.apply_discount, name='billing_discount'),
    path(f'{ADMISSION}/invoice', billing.invoice, name='billing_invoice'),

    # Clinical records
    path(f'{ADMISSION}/records/<slug:kind>', records.sheet, name='record_sheet'),
    path(f'{ADMISSION}/records/<slug:kind>/entries', records.add_entry, name='record_entries'),
    path(f'{ADMISSION}/records/<slug:kind>/entries/<str:entry_id>', records.delete_entry, name='record_entry_delete'),

    # OT / reports
    path('api/ot', ipd.ot_list, name='ot_list'),
    path('api/reports/mortality', ipd.mortality_report, name='mortality_report'),
    path('api/dashboard/stats', reports.dashboard_stats, name='dashboard_stats'),
    path('api/dashboard/appointments', reports.dashboard_appointments, name='dashboard_appointments'),
    path('api/dashboard/doctor-consultations', reports.doctor_consultations, name='doctor_consultations'),
    path('api/dashboard/chart', reports.three_day_chart, name='three_day_chart'),
    path('api/reports/collection', reports.daily_collection, name='daily_collection'),
    path('api/reports/dpr', reports.dpr, name='dpr'),
    path('api/reports/dpr/pdf', reports.dpr_pdf, name='dpr_pdf'),
    path('api/reports/dpr/send', reports.dpr_send, name='dpr_send'),
    path('api/reports/pathology-count', reports.pathology_count, name='pathology_count'),
]
