from rest_framework import serializers

from clinic.models import MedicineStock, StockMovement
from clinic.serializers.auth import clean_text


class MedicineStockSerializer(serializers.Serializer):
    """Catalogue fields of a stock line; ``partial=True`` for edits."""
    name = serializers.CharField(max_length=200)
    genericName = serializers.CharField(required=False, allow_blank=True, max_length=200)
    quantityAvailable = serializers.IntegerField(required=False, min_value=0, default=0)
    expiryDate = serializers.DateField()
    dosageForm = serializers.ChoiceField(choices=MedicineStock.DOSAGE_FORMS)
    strength = serializers.CharField(required=False, allow_blank=True, max_length=50)
    unit = serializers.ChoiceField(choices=MedicineStock.UNITS)
    category = serializers.ChoiceField(choices=MedicineStock.CATEGORIES)
    prescriptionRequired = serializers.BooleanField(required=False)
    batchNumber = serializers.CharField(required=False, allow_blank=True, max_length=50)
    supplier = serializers.DictField(required=False)
    costPrice = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    sellingPrice = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    minimumStockLevel = serializers.IntegerField(required=False, min_value=0)
    reorderQuantity = serializers.IntegerField(required=False, min_value=1)
    location = serializers.DictField(required=False)
    status = serializers.ChoiceField(required=False, choices=[c for c, _ in MedicineStock.STATUS_CHOICES])

    def validate_name(self, v):
        return clean_text(v)

    def validate_genericName(self, v):
        return clean_text(v)

    def validate(self, attrs):
        cost, price = attrs.get('costPrice'), attrs.get('sellingPrice')
        if cost is not None and price is not None and price < cost:
            raise serializers.ValidationError({'sellingPrice': 'Selling price cannot be below cost price'})
        return attrs


class MedicineUpdateSerializer(MedicineStockSerializer):
    # quantities move through the stock endpoint only
    quantityAvailable = None


class StockMovementSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=[c for c, _ in StockMovement.ACTION_CHOICES])
    quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=300, default='')
    batchNumber = serializers.CharField(required=False, allow_blank=True, max_length=50, default='')

    def validate_reason(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if attrs['action'] != 'adjustment' and attrs['quantity'] < 1:
            raise serializers.ValidationError({'quantity': 'Quantity must be at least 1'})
        return attrs


class MedicineQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=100, default='')
    category = serializers.ChoiceField(required=False, choices=MedicineStock.CATEGORIES)
    status = serializers.ChoiceField(required=False, choices=[c for c, _ in MedicineStock.STATUS_CHOICES])
    lowStock = serializers.BooleanField(required=False, default=False)
    expiringWithin = serializers.IntegerField(required=False, min_value=0, max_value=365)
