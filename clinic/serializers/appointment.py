from rest_framework import serializers

from clinic.models import Appointment
from clinic.serializers.auth import clean_text


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class ReserveSlotSerializer(serializers.Serializer):
    doctorId = serializers.CharField(max_length=20)
    dateTime = serializers.DateTimeField()
    patientId = serializers.CharField(required=False, max_length=20)


class BookAppointmentSerializer(serializers.Serializer):
    doctorId = serializers.CharField(max_length=20)
    patientId = serializers.CharField(required=False, max_length=20)
    dateTime = serializers.DateTimeField()
    reasonForVisit = serializers.CharField(min_length=5, max_length=500)
    department = serializers.CharField(min_length=2, max_length=50)
    duration = serializers.IntegerField(required=False, min_value=15, max_value=120, default=30)
    appointmentType = serializers.ChoiceField(required=False, default='consultation',
                                              choices=[c for c, _ in Appointment.TYPE_CHOICES])
    priority = serializers.ChoiceField(required=False, default='routine',
                                       choices=[c for c, _ in Appointment.PRIORITY_CHOICES])

    def validate_reasonForVisit(self, v):
        v = clean_text(v)
        if len(v) < 5:
            raise serializers.ValidationError('Reason for visit must be 5-500 characters')
        return v

    def validate_department(self, v):
        return clean_text(v)


class PaymentSerializer(serializers.Serializer):
    paymentMethod = serializers.ChoiceField(choices=[c for c, _ in Appointment.PAYMENT_METHOD_CHOICES])
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')

    def validate_reason(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)


class DeclineSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=3, max_length=500)

    def validate_reason(self, v):
        return clean_text(v)


class RescheduleSerializer(serializers.Serializer):
    dateTime = serializers.DateTimeField()
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')

    def validate_reason(self, v):
        return clean_text(v)


class CompleteSerializer(serializers.Serializer):
    diagnosis = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')
    treatmentPlan = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')
    followUpRequired = serializers.BooleanField(required=False, default=False)
    followUpDate = serializers.DateField(required=False, allow_null=True)
    prescriptionId = serializers.CharField(required=False, allow_blank=True, max_length=30)

    def validate_diagnosis(self, v):
        return clean_text(v)

    def validate_treatmentPlan(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if attrs.get('followUpRequired') and not attrs.get('followUpDate'):
            raise serializers.ValidationError({'followUpDate': 'Required when a follow-up is needed'})
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES])
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)
    diagnosis = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    treatmentPlan = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    followUpRequired = serializers.BooleanField(required=False)
    followUpDate = serializers.DateField(required=False, allow_null=True)
    prescriptionId = serializers.CharField(required=False, allow_blank=True, max_length=30)

    def validate(self, attrs):
        for key in ('reason', 'notes', 'diagnosis', 'treatmentPlan'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        if attrs.get('followUpRequired') and not attrs.get('followUpDate'):
            raise serializers.ValidationError({'followUpDate': 'Required when a follow-up is needed'})
        return attrs


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.CharField(required=False)
    date = serializers.DateField(required=False)
    doctorId = serializers.CharField(required=False)
    upcoming = serializers.BooleanField(required=False, default=False)
