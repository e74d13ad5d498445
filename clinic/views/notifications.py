from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Notification
from ..serializers.notification import NotificationQuerySerializer
from ..services.notifications import format_notification, mark_all_read, mark_read


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    q = NotificationQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Notification.objects.filter(recipient=request.user)
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    if vd.get('type'):
        qs = qs.filter(type=vd['type'])
    return Response({'ok': True, 'data': [format_notification(n) for n in qs[:vd['limit']]]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def unread_count(request):
    return Response({'ok': True, 'count': Notification.objects.filter(recipient=request.user, status='unread').count()})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def read_notification(request, notification_id: str):
    n = mark_read(request.user, notification_id)
    return Response({'ok': True, 'data': format_notification(n)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def read_all_notifications(request):
    return Response({'ok': True, 'updated': mark_all_read(request.user)})
