from rest_framework import serializers

from clinic.models import Notification


class NotificationQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(required=False, choices=[c for c, _ in Notification.STATUS_CHOICES])
    type = serializers.CharField(required=False, max_length=50)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
