from rest_framework import serializers

from clinic.models import SupportTicket
from clinic.serializers.auth import clean_text


class TicketCreateSerializer(serializers.Serializer):
    issueDescription = serializers.CharField(min_length=10, max_length=1000)
    subject = serializers.CharField(required=False, allow_blank=True, max_length=200, default='')
    category = serializers.ChoiceField(required=False, default='general_inquiry',
                                       choices=[c for c, _ in SupportTicket.CATEGORY_CHOICES])
    priority = serializers.ChoiceField(required=False, default='medium', choices=SupportTicket.PRIORITIES)
    tags = serializers.ListField(child=serializers.CharField(max_length=30), required=False, default=list)
    patientId = serializers.CharField(required=False, max_length=20)

    def validate_issueDescription(self, v):
        v = clean_text(v)
        if len(v) < 10:
            raise serializers.ValidationError('Description must be 10-1000 characters')
        return v

    def validate_subject(self, v):
        return clean_text(v)


class TicketAssignSerializer(serializers.Serializer):
    staffId = serializers.CharField(max_length=20)


class TicketStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in SupportTicket.STATUS_CHOICES])
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')
    resolution = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')

    def validate(self, attrs):
        attrs['notes'] = clean_text(attrs.get('notes', ''))
        attrs['resolution'] = clean_text(attrs.get('resolution', ''))
        return attrs


class TicketMessageSerializer(serializers.Serializer):
    message = serializers.CharField(min_length=1, max_length=1000)
    isInternal = serializers.BooleanField(required=False, default=False)

    def validate_message(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Message cannot be empty')
        return v


class TicketEscalateSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')

    def validate_reason(self, v):
        return clean_text(v)


class TicketPrioritySerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=SupportTicket.PRIORITIES)


class TicketCloseSerializer(serializers.Serializer):
    resolution = serializers.CharField(min_length=3, max_length=2000)

    def validate_resolution(self, v):
        return clean_text(v)


class TicketRateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    feedback = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')

    def validate_feedback(self, v):
        return clean_text(v)
