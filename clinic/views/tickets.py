"""
Support ticket endpoints.

Visibility: patients see their own tickets, managers and system
administrators see every ticket, other staff see tickets assigned to
them.
"""
from __future__ import annotations

from rest_framework import exceptions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import SupportTicket, User
from ..permissions import IsHealthCareManager, IsManagementRole, MANAGEMENT_ROLES
from ..serializers.ticket import (
    TicketAssignSerializer, TicketCloseSerializer, TicketCreateSerializer, TicketEscalateSerializer,
    TicketMessageSerializer, TicketPrioritySerializer, TicketRateSerializer, TicketStatusSerializer,
)
from ..services import tickets as service


def _ok(request, t: SupportTicket, *, message: str = '', code: int = 200) -> Response:
    t = service.base_queryset().get(pk=t.pk)
    body = {'ok': True, 'data': service.format_ticket(t, viewer=request.user, with_messages=True)}
    if message:
        body['message'] = message
    return Response(body, status=code)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def tickets(request):
    user: User = request.user
    if request.method == 'GET':
        qs = service.scoped_queryset(user)
        for param, field in (('status', 'status__in'), ('priority', 'priority__in'), ('category', 'category__in')):
            value = request.query_params.get(param)
            if value:
                qs = qs.filter(**{field: value.split(',')})
        return Response({'ok': True, 'data': [service.format_ticket(t) for t in qs[:200]]})

    s = TicketCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    if user.is_patient:
        patient = user
    elif user.role in MANAGEMENT_ROLES | {User.ROLE_STAFF}:
        if not s.validated_data.get('patientId'):
            raise exceptions.ValidationError({'patientId': 'This field is required.'})
        patient = User.objects.get(role=User.ROLE_PATIENT,
                                   patient_profile__patient_id=s.validated_data['patientId'])
    else:
        raise exceptions.PermissionDenied('Your role cannot open tickets')
    t = service.create(user, patient, s.validated_data)
    return _ok(request, t, message='Support ticket created', code=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagementRole])
def ticket_stats(request):
    return Response({'ok': True, 'data': service.statistics()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ticket_detail(request, ticket_id: str):
    t = service.get_for_user(request.user, ticket_id)
    return Response({'ok': True, 'data': service.format_ticket(t, viewer=request.user, with_messages=True)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsHealthCareManager])
def assign_ticket(request, ticket_id: str):
    s = TicketAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    staff = User.objects.get(employee_profile__emp_id=s.validated_data['staffId'])
    return _ok(request, service.assign(ticket_id, request.user, staff), message='Ticket assigned')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_ticket_status(request, ticket_id: str):
    s = TicketStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    t = service.change_status(ticket_id, request.user, vd['status'], notes=vd['notes'], resolution=vd['resolution'])
    return _ok(request, t, message=f"Ticket {t.status.replace('_', ' ')}")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def add_ticket_message(request, ticket_id: str):
    s = TicketMessageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    service.add_message(ticket_id, request.user, s.validated_data['message'], internal=s.validated_data['isInternal'])
    return _ok(request, SupportTicket.objects.get(ticket_id=ticket_id), message='Message added',
               code=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def escalate_ticket(request, ticket_id: str):
    s = TicketEscalateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(request, service.escalate(ticket_id, request.user, s.validated_data['reason']),
               message='Ticket escalated')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_ticket_priority(request, ticket_id: str):
    s = TicketPrioritySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(request, service.set_priority(ticket_id, request.user, s.validated_data['priority']),
               message='Priority updated')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def close_ticket(request, ticket_id: str):
    s = TicketCloseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(request, service.close(ticket_id, request.user, s.validated_data['resolution']),
               message='Ticket closed')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def rate_ticket(request, ticket_id: str):
    s = TicketRateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    t = service.rate(ticket_id, request.user, s.validated_data['rating'], s.validated_data['feedback'])
    return _ok(request, t, message='Thank you for your feedback')
