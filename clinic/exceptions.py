"""
API error types and the project wide DRF exception handler.

Every error response has the same envelope::

    {"ok": false, "error": {"code": "...", "message": "...", "fields": [...]}}

``fields`` is only present for validation errors and lists one
``{"field", "message"}`` entry per failing input.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class DomainError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request cannot be processed.'
    default_code = 'domain_error'


class InvalidTransition(DomainError):
    default_detail = 'Status change not allowed.'
    default_code = 'invalid_transition'


class SlotUnavailable(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The requested time slot is not available.'
    default_code = 'slot_unavailable'


class NotOwner(exceptions.PermissionDenied):
    default_detail = 'You do not have access to this resource.'
    default_code = 'not_owner'


class AccountInactive(exceptions.PermissionDenied):
    default_detail = 'Account is not active.'
    default_code = 'account_inactive'


def _flatten(data, prefix: str = '') -> list[dict]:
    """Turn DRF's nested error dict into a flat list of field errors."""
    out: list[dict] = []
    if isinstance(data, dict):
        for key, value in data.items():
            name = f"{prefix}.{key}" if prefix else str(key)
            out.extend(_flatten(value, name))
    elif isinstance(data, list):
        for idx, value in enumerate(data):
            if isinstance(value, (dict, list)):
                out.extend(_flatten(value, f"{prefix}[{idx}]" if prefix else str(idx)))
            else:
                out.append({'field': prefix or 'non_field_errors', 'message': str(value)})
    else:
        out.append({'field': prefix or 'non_field_errors', 'message': str(data)})
    return out


def api_exception_handler(exc, context):
    if isinstance(exc, ObjectDoesNotExist):
        # Model.DoesNotExist raised by services for unknown human ids
        exc = exceptions.NotFound(f"{type(exc).__qualname__.split('.')[0]} not found")
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception("Unhandled error in %s", getattr(view, '__name__', view.__class__.__name__ if view else '?'))
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, exceptions.ValidationError):
        body = {'code': 'validation_error', 'message': 'Validation failed', 'fields': _flatten(exc.detail)}
    else:
        if isinstance(exc, Http404):
            code = 'not_found'
        elif isinstance(exc, PermissionDenied):
            code = 'permission_denied'
        elif isinstance(exc, exceptions.APIException):
            codes = exc.get_codes()
            code = codes if isinstance(codes, str) else 'api_error'
        else:
            code = 'api_error'
        detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
        body = {'code': code, 'message': str(detail if detail is not None else resp.data)}
        if resp.status_code >= 500:
            logger.error("API error %s: %s", resp.status_code, body['message'])
    resp.data = {'ok': False, 'error': body}
    return resp
