"""
Authentication views.

Patients and staff sign in on separate endpoints; both receive a JWT
access / refresh pair from ``rest_framework_simplejwt``.  Refresh
tokens rotate and the superseded token is blacklisted, logout and
password changes blacklist outstanding refresh tokens.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework import exceptions, status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer

from clinic.permissions import IsManagementRole
from clinic.serializers.auth import (
    AuthorityRegisterSerializer, ChangePasswordSerializer, EMPLOYEE_TYPES, LoginSerializer, LogoutSerializer,
    PatientRegisterSerializer, RefreshSerializer,
)
from clinic.serializers.patient import ProfileUpdateSerializer
from clinic.services import accounts
from clinic.throttles import LoginRateThrottle, RegisterRateThrottle

from .models import User


def _session_payload(user: User, **extra) -> dict:
    return {
        'ok': True,
        **accounts.issue_tokens(user),
        'userType': user.role,
        'user': accounts.format_user(user),
        **extra,
    }


def _login(request, *, patient: bool) -> Response:
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.login(request, s.validated_data['email'], s.validated_data['password'], patient=patient)
    if user is None:
        raise exceptions.AuthenticationFailed('Invalid email or password', code='invalid_credentials')
    return Response(_session_payload(user, message='Login successful'))


# ---------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([RegisterRateThrottle])
def patient_register_view(request):
    s = PatientRegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.register_patient(s.validated_data)
    return Response(_session_payload(user, message='Patient registered successfully',
                                     patientId=user.public_id),
                    status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def patient_login_view(request):
    return _login(request, patient=True)


# ---------------------------------------------------------------------
# Staff ("authority")
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManagementRole])
def authority_register_view(request, employee_type: str | None = None):
    """Register a staff account.

    Called either as ``/api/auth/authority/register`` with ``userType``
    in the body, or as ``/api/employee/<type>/register`` where the URL
    decides the role.  Managers may not create other managers; only a
    system administrator can.
    """
    data = request.data.copy()
    if employee_type is not None:
        if employee_type not in EMPLOYEE_TYPES:
            raise exceptions.NotFound(f"Unknown employee type '{employee_type}'")
        data['userType'] = EMPLOYEE_TYPES[employee_type]
    s = AuthorityRegisterSerializer(data=data)
    s.is_valid(raise_exception=True)
    if s.validated_data['userType'] == User.ROLE_MANAGER and request.user.role != User.ROLE_ADMIN:
        raise exceptions.PermissionDenied('Only a system administrator can register health care managers')
    user = accounts.register_employee(s.validated_data, created_by=request.user)
    return Response({
        'ok': True,
        'message': 'Employee registered successfully',
        'empID': user.public_id,
        'user': accounts.format_user(user),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def authority_login_view(request):
    return _login(request, patient=False)


# ---------------------------------------------------------------------
# Tokens & credentials
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_token_view(request):
    """Exchange a refresh token for a new access token (and a rotated refresh token)."""
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = TokenRefreshSerializer(data={'refresh': s.validated_data['refreshToken']})
    try:
        refresh.is_valid(raise_exception=True)
    except TokenError:
        raise exceptions.AuthenticationFailed('Invalid or expired refresh token', code='token_invalid')
    data = refresh.validated_data
    return Response({
        'ok': True,
        'accessToken': data['access'],
        'refreshToken': data.get('refresh', s.validated_data['refreshToken']),
        'expiresIn': int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    s = ChangePasswordSerializer(data=request.data, context={'user': request.user})
    s.is_valid(raise_exception=True)
    if not accounts.change_password(request.user, s.validated_data['currentPassword'],
                                    s.validated_data['newPassword']):
        raise exceptions.ValidationError({'currentPassword': 'Current password is incorrect'})
    return Response({'ok': True, 'message': 'Password changed. Please sign in again.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding one."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        count = accounts.revoke_refresh_tokens(request.user, s.validated_data.get('refreshToken') or None)
    except TokenError:
        raise exceptions.ValidationError({'refreshToken': 'Invalid refresh token'})
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def verify_token_view(request):
    return Response({'ok': True, 'valid': True, 'userType': request.user.role,
                     'user': accounts.format_user(request.user)})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': accounts.format_user(request.user)})
    s = ProfileUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = accounts.update_profile(request.user, s.validated_data)
    user.refresh_from_db()
    return Response({'ok': True, 'message': 'Profile updated', 'data': accounts.format_user(user)})
