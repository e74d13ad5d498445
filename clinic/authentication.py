"""
Bearer JWT authentication for the API.

Wraps ``rest_framework_simplejwt``'s ``JWTAuthentication`` so that an
expired token and a malformed or forged token produce distinct error
codes (``token_expired`` / ``token_invalid``), and so that staff whose
employment status no longer allows sign-in are turned away even while
an earlier access token is still valid.
"""
from __future__ import annotations

from rest_framework import exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import ExpiredTokenError, TokenError
from rest_framework_simplejwt.tokens import AccessToken

from .models import EmployeeProfile


class BearerJWTAuthentication(JWTAuthentication):

    def get_validated_token(self, raw_token):
        try:
            return AccessToken(raw_token)
        except ExpiredTokenError:
            raise exceptions.AuthenticationFailed('Token expired', code='token_expired')
        except TokenError:
            raise exceptions.AuthenticationFailed('Invalid token', code='token_invalid')

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if validated_token.get('role') and validated_token['role'] != user.role:
            raise exceptions.AuthenticationFailed('Invalid token', code='token_invalid')
        if user.is_authority:
            prof = EmployeeProfile.objects.filter(user=user).only('status').first()
            if prof is not None and prof.status not in EmployeeProfile.LOGIN_STATUSES:
                raise exceptions.AuthenticationFailed('Account is not active', code='account_inactive')
        return user
