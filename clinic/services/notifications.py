"""
WhatsApp notifications through the hospital's messaging gateway.

Notifications are best effort: a failed send is logged and reported as
``False`` but never fails the admission or payment that triggered it.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def normalize_number(number) -> Optional[str]:
    digits = ''.join(ch for ch in str(number or '') if ch.isdigit())
    if not digits:
        return None
    if len(digits) == 10:
        return f"91{digits}"
    return digits


def _post(endpoint: str, payload: dict) -> bool:
    if not settings.WHATSAPP_ENABLE:
        logger.debug(f"WhatsApp disabled, skipping {endpoint}")
        return False
    url = f"{settings.WHATSAPP_API_URL.rstrip('/')}/{endpoint}"
    try:
        r = requests.post(url, json={'token': settings.WHATSAPP_TOKEN, **payload}, timeout=settings.WHATSAPP_TIMEOUT)
        r.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"WhatsApp {endpoint} to {payload.get('number')} failed: {e}")
        return False
    return True


def send_text(number, message: str) -> bool:
    to = normalize_number(number)
    if not to:
        logger.info("Skipping WhatsApp text: no phone number")
        return False
    return _post('send-text', {'number': to, 'message': message})


def send_image_url(number, image_url: str, caption: str = '') -> bool:
    to = normalize_number(number)
    if not to:
        logger.info("Skipping WhatsApp image: no phone number")
        return False
    return _post('send-image-url', {'number': to, 'imageUrl': image_url, 'caption': caption})


def _fmt_money(amount) -> str:
    return f"{float(amount or 0):,.0f}"


def admission_details(ipd) -> list[str]:
    bed = ipd.bed
    return [
        f"• *UHID:* {ipd.uhid}",
        f"• *Admission Date:* {ipd.admission_date or 'N/A'}",
        f"• *Admission Time:* {ipd.admission_time.strftime('%H:%M') if ipd.admission_time else 'N/A'}",
        f"• *Room Type:* {bed.room_type if bed else 'N/A'}",
        f"• *Bed Number:* {bed.bed_number if bed else 'N/A'} ({(bed.bed_type or 'N/A') if bed else 'N/A'})",
        f"• *Under Care Of:* Dr. {ipd.under_care_of_doctor or 'N/A'}",
    ]


def admission_message_for_patient(ipd) -> str:
    hospital = settings.HOSPITAL_NAME
    return "\n".join([
        f"🏥 *IPD Admission Confirmation - {hospital}*",
        "",
        f"Dear *{ipd.patient.name}*,",
        "",
        "Your IPD admission has been successfully registered.",
        "",
        "*Details:*",
        *admission_details(ipd),
        "",
        "We wish you a speedy recovery!",
        "",
        "For any assistance, please contact us.",
        hospital,
    ])


def admission_message_for_relative(ipd) -> str:
    hospital = settings.HOSPITAL_NAME
    return "\n".join([
        f"🏥 *IPD Admission Update - {hospital}*",
        "",
        f"Dear {ipd.relative_name},",
        "",
        f"This message is to confirm the IPD admission of *{ipd.patient.name}*.",
        "",
        "*Admission Details:*",
        *admission_details(ipd),
        "",
        "We will keep you updated on their progress.",
        hospital,
    ])


def payment_message(patient_name: str, amount, updated_deposit, amount_type: str) -> str:
    if amount_type == 'refund':
        return (f"Dear {patient_name}, a refund of Rs {_fmt_money(amount)} has been processed to your account. "
                f"Your updated total deposit is Rs {_fmt_money(updated_deposit)}.")
    return (f"Dear {patient_name}, your payment of Rs {_fmt_money(amount)} has been successfully added to your "
            f"account. Your updated total deposit is Rs {_fmt_money(updated_deposit)}. "
            f"Thank you for choosing our service.")


def notify_admission(ipd) -> dict:
    sent = {'patient': send_text(ipd.patient.number, admission_message_for_patient(ipd)), 'relative': False}
    if ipd.relative_name and ipd.relative_ph_no:
        sent['relative'] = send_text(ipd.relative_ph_no, admission_message_for_relative(ipd))
    return sent
