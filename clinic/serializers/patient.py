from rest_framework import serializers

from clinic.serializers.auth import clean_text, validate_person_name


class ProfileUpdateSerializer(serializers.Serializer):
    """Fields any account may edit on itself; role specific ones are ignored for other roles."""
    name = serializers.CharField(required=False)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    address = serializers.DictField(required=False)
    emergencyContact = serializers.DictField(required=False)
    bloodType = serializers.ChoiceField(required=False, allow_blank=True,
                                        choices=['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'])
    department = serializers.CharField(required=False, allow_blank=True, max_length=50)
    bio = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    consultationFee = serializers.DecimalField(required=False, max_digits=10, decimal_places=2, min_value=0)
    maxPatientsPerDay = serializers.IntegerField(required=False, min_value=1, max_value=100)

    def validate_name(self, v):
        return validate_person_name(v)

    def validate_phone(self, v):
        return clean_text(v)

    def validate_department(self, v):
        return clean_text(v)

    def validate_bio(self, v):
        return clean_text(v)


class MedicalHistoryEntrySerializer(serializers.Serializer):
    condition = serializers.CharField(max_length=200)
    diagnosedDate = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=['active', 'resolved', 'chronic'], default='active')
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate_condition(self, v):
        return clean_text(v)


class MedicalHistorySerializer(serializers.Serializer):
    medicalHistory = MedicalHistoryEntrySerializer(many=True)


class AllergySerializer(serializers.Serializer):
    allergen = serializers.CharField(max_length=100)
    severity = serializers.ChoiceField(choices=['mild', 'moderate', 'severe'], default='mild')
    reaction = serializers.CharField(required=False, allow_blank=True, max_length=200)

    def validate_allergen(self, v):
        return clean_text(v)


class AllergiesSerializer(serializers.Serializer):
    allergies = AllergySerializer(many=True)


class ActivityQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=50, default=10)
