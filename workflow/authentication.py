"""
Token authentication for the workflow API.

Staff dashboards authenticate with either a DRF token (``Authorization:
Token <key>``) or a SimpleJWT access token (``Authorization: Bearer
<jwt>``); both classes are listed in ``REST_FRAMEWORK`` settings.  This
subclass keeps the token class importable from a stable path without
pulling view modules in during REST framework initialisation.
"""
from __future__ import annotations

from rest_framework import authentication
from rest_framework.exceptions import AuthenticationFailed


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token auth that also rejects accounts without a workflow role."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if not getattr(user, 'role', None):
            raise AuthenticationFailed('User has no role assigned.')
        return user, token
