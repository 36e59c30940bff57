"""
Clinical record sheets of an admission.

Each kind of form (drug chart, vitals, consent, ...) is one JSON document
shared by everyone treating the patient. Entry based sheets (doctor
visits, nurse notes, vitals, glucose readings, investigations, charge
sheet) keep ``data["entries"]`` and support append/delete of single entries.
"""
from __future__ import annotations

import uuid
from typing import Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import ClinicalSheet, IPDRegistration
from clinic.services.signatures import resolve_signature_pins

SHEET_KINDS = tuple(k for k, _ in ClinicalSheet.KIND_CHOICES)
ENTRY_KINDS = (
    'doctor_visit', 'glucose', 'investigation', 'nurses_notes', 'progress_notes', 'vitals', 'patient_charges',
)


def _check_kind(kind: str) -> None:
    if kind not in SHEET_KINDS:
        raise NotFound(f'Unknown clinical sheet "{kind}".')


def get_sheet(ipd: IPDRegistration, kind: str) -> Optional[ClinicalSheet]:
    _check_kind(kind)
    return ClinicalSheet.objects.filter(ipd=ipd, kind=kind).select_related('updated_by').first()


@transaction.atomic
def save_sheet(ipd: IPDRegistration, kind: str, *, data, header=None, user=None) -> ClinicalSheet:
    """Upsert a whole sheet; signature PINs are resolved first."""
    _check_kind(kind)
    sheet, _ = ClinicalSheet.objects.select_for_update().get_or_create(ipd=ipd, kind=kind)
    sheet.data = resolve_signature_pins(data if data is not None else {}, kind)
    if header is not None:
        sheet.header = resolve_signature_pins(header, kind)
    sheet.updated_by = user if getattr(user, 'pk', None) else None
    sheet.save()
    return sheet


def _entries(sheet: ClinicalSheet) -> list:
    data = sheet.data if isinstance(sheet.data, dict) else {}
    return list(data.get('entries') or [])


def _author(user) -> str:
    if not getattr(user, 'pk', None):
        return ''
    return user.get_full_name() or user.username


@transaction.atomic
def append_entry(ipd: IPDRegistration, kind: str, entry: dict, user=None) -> dict:
    """Add one entry to an entry based sheet.

    Investigation results for a test already on the sheet are appended to
    that test's ``entries`` instead of creating a new row.
    """
    if kind not in ENTRY_KINDS:
        raise ValidationError({'kind': f'Sheet "{kind}" does not take single entries.'})
    if not isinstance(entry, dict) or not entry:
        raise ValidationError({'entry': 'Entry must be a non-empty object.'})
    sheet, _ = ClinicalSheet.objects.select_for_update().get_or_create(ipd=ipd, kind=kind)
    entries = _entries(sheet)
    entry = resolve_signature_pins(entry, kind)

    saved = None
    if kind == 'investigation':
        test_name = (entry.get('testName') or '').strip()
        if not test_name:
            raise ValidationError({'testName': 'Test name is required.'})
        existing = next((e for e in entries if (e.get('testName') or '').lower() == test_name.lower()), None)
        if existing is not None:
            existing['entries'] = list(existing.get('entries') or []) + list(entry.get('entries') or [])
            existing['updatedAt'] = timezone.localtime().isoformat()
            saved = existing

    if saved is None:
        saved = {
            **entry,
            'id': uuid.uuid4().hex,
            'enteredBy': entry.get('enteredBy') or _author(user),
            'timestamp': entry.get('timestamp') or timezone.localtime().isoformat(),
        }
        entries.append(saved)

    base = sheet.data if isinstance(sheet.data, dict) else {}
    sheet.data = {**base, 'entries': entries}
    sheet.updated_by = user if getattr(user, 'pk', None) else None
    sheet.save()
    return saved


@transaction.atomic
def delete_entry(ipd: IPDRegistration, kind: str, entry_id: str) -> None:
    _check_kind(kind)
    sheet = ClinicalSheet.objects.select_for_update().filter(ipd=ipd, kind=kind).first()
    entries = _entries(sheet) if sheet else []
    kept = [e for e in entries if e.get('id') != entry_id]
    if sheet is None or len(kept) == len(entries):
        raise NotFound('Entry not found.')
    sheet.data = {**sheet.data, 'entries': kept}
    sheet.save()


def serialize_sheet(ipd: IPDRegistration, kind: str, sheet: Optional[ClinicalSheet]) -> dict:
    default = {'entries': []} if kind in ENTRY_KINDS else {}
    return {
        'ipdId': ipd.id,
        'kind': kind,
        'data': sheet.data if sheet else default,
        'header': sheet.header if sheet else {},
        'updatedBy': (sheet.updated_by.username if sheet and sheet.updated_by else None),
        'updatedAt': timezone.localtime(sheet.updated_at).isoformat() if sheet else None,
    }
