from rest_framework import serializers

from clinic.models import EmployeeProfile
from clinic.serializers.auth import clean_text, validate_availability


class EmployeeStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in EmployeeProfile.STATUS_CHOICES])
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate_reason(self, v):
        return clean_text(v)


class AvailabilitySerializer(serializers.Serializer):
    availability = serializers.DictField()

    def validate_availability(self, v):
        return validate_availability(v)


class DoctorRatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate_comment(self, v):
        return clean_text(v)
