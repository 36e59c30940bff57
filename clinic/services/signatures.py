"""
Signature PINs.

Staff sign forms by typing a 10 character PIN into a signature field; on
save the PIN is swapped for the URL of their signature image. Values that
look like a PIN but match nobody are cleared.
"""
from __future__ import annotations

from typing import Optional

from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Signature

PIN_LENGTH = 10

# sheets whose signature inputs do not follow the *Sign naming
KIND_SIGNATURE_FIELDS = {
    'doctor_visit': frozenset({'consultant', 'referral1', 'referral2', 'referral3', 'referral4'}),
}


def is_signature_key(key: str, extra: frozenset = frozenset()) -> bool:
    return (key in extra or key.endswith('Sign') or key.endswith('Signature')
            or key.startswith('signature'))


def _looks_like_pin(value) -> bool:
    return (isinstance(value, str) and len(value) == PIN_LENGTH and ' ' not in value
            and not value.startswith('http'))


def lookup(pin: str) -> str:
    pin = (pin or '').strip()
    if len(pin) != PIN_LENGTH:
        raise ValidationError({'pin': f'Signature PIN must be {PIN_LENGTH} characters.'})
    sig = Signature.objects.filter(pin=pin).first()
    if sig is None:
        raise NotFound('Invalid signature PIN.')
    return sig.signature_url


def resolve_signature_pins(payload, kind: Optional[str] = None):
    """Return a copy of ``payload`` with signature PINs replaced by URLs.

    ``kind`` adds the sheet specific signature fields from
    ``KIND_SIGNATURE_FIELDS``.
    """
    extra = KIND_SIGNATURE_FIELDS.get(kind, frozenset())
    pins: set[str] = set()

    def collect(node):
        if isinstance(node, dict):
            for k, v in node.items():
                if is_signature_key(str(k), extra) and _looks_like_pin(v):
                    pins.add(v)
                else:
                    collect(v)
        elif isinstance(node, list):
            for v in node:
                collect(v)

    collect(payload)
    urls = dict(Signature.objects.filter(pin__in=pins).values_list('pin', 'signature_url')) if pins else {}

    def rewrite(node):
        if isinstance(node, dict):
            out = {}
            for k, v in node.items():
                if is_signature_key(str(k), extra) and _looks_like_pin(v):
                    out[k] = urls.get(v, '')
                else:
                    out[k] = rewrite(v)
            return out
        if isinstance(node, list):
            return [rewrite(v) for v in node]
        return node

    return rewrite(payload)
