"""
Token authentication for the API.

Kept apart from the views so that DRF can import the authentication
class during initialisation without pulling in view modules.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication using the ``Token`` keyword.

    Exists to give the settings a stable import path.
    """

    keyword = 'Token'
