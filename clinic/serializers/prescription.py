from rest_framework import serializers

from clinic.models import Prescription
from clinic.serializers.auth import clean_text


class MedicineSerializer(serializers.Serializer):
    medicineId = serializers.CharField(required=False, allow_blank=True, max_length=50)
    medicineName = serializers.CharField(max_length=200)
    strength = serializers.CharField(required=False, allow_blank=True, max_length=50)
    dosageForm = serializers.CharField(required=False, allow_blank=True, max_length=50)
    quantity = serializers.IntegerField(min_value=1)
    dosageInstruction = serializers.CharField(required=False, max_length=300, default='As directed by doctor')
    frequency = serializers.CharField(required=False, allow_blank=True, max_length=100)
    duration = serializers.CharField(required=False, allow_blank=True, max_length=100)
    specialInstructions = serializers.CharField(required=False, allow_blank=True, max_length=300)
    refillsAllowed = serializers.IntegerField(required=False, min_value=0, max_value=5, default=0)

    def validate(self, attrs):
        for key in ('medicineName', 'dosageInstruction', 'specialInstructions'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        return attrs


class PrescriptionCreateSerializer(serializers.Serializer):
    patientId = serializers.CharField(max_length=20)
    appointmentId = serializers.CharField(required=False, allow_blank=True, max_length=30)
    medicineList = MedicineSerializer(many=True, allow_empty=False)
    diagnosis = serializers.CharField(max_length=500)
    symptoms = serializers.ListField(child=serializers.CharField(max_length=100), required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')
    urgency = serializers.ChoiceField(required=False, default='routine',
                                      choices=[c for c, _ in Prescription.URGENCY_CHOICES])
    followUpRequired = serializers.BooleanField(required=False, default=False)
    followUpDate = serializers.DateField(required=False, allow_null=True)

    def validate_diagnosis(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)


class PrescriptionUpdateSerializer(PrescriptionCreateSerializer):
    patientId = None
    appointmentId = None
    medicineList = MedicineSerializer(many=True, allow_empty=False, required=False)
    diagnosis = serializers.CharField(max_length=500, required=False)
    symptoms = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    urgency = serializers.ChoiceField(required=False, choices=[c for c, _ in Prescription.URGENCY_CHOICES])
    followUpRequired = serializers.BooleanField(required=False)


class PrescriptionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Prescription.STATUS_CHOICES])
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')
    pharmacyId = serializers.CharField(required=False, allow_blank=True, max_length=20, default='')

    def validate_notes(self, v):
        return clean_text(v)
