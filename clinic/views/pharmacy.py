"""
Medicine inventory endpoints.

Any staff member can look stock up; pharmacists and management add
medicines, edit catalogue data and record stock movements.
"""
from __future__ import annotations

from rest_framework import exceptions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import MedicineStock
from ..permissions import IsAuthorityRole, IsPharmacyStaff
from ..serializers.pharmacy import (
    MedicineQuerySerializer, MedicineStockSerializer, MedicineUpdateSerializer, StockMovementSerializer,
)
from ..services import pharmacy as service


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def medicines(request):
    if request.method == 'POST':
        if not IsPharmacyStaff().has_permission(request, None):
            raise exceptions.PermissionDenied('Only pharmacy staff can add medicines')
        s = MedicineStockSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        m = service.add_medicine(request.user, s.validated_data)
        return Response({'ok': True, 'message': 'Medicine added', 'data': service.format_medicine(m)},
                        status=status.HTTP_201_CREATED)
    q = MedicineQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = service.filter_queryset(MedicineStock.objects.all(), q=vd['q'], category=vd.get('category', ''),
                                 status=vd.get('status', ''), low_stock=vd['lowStock'],
                                 expiring_within=vd.get('expiringWithin'))
    return Response({'ok': True, 'data': [service.format_medicine(m) for m in qs[:500]]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def medicine_stats(request):
    return Response({'ok': True, 'data': service.statistics()})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def medicine_detail(request, medicine_id: str):
    if request.method == 'PUT':
        if not IsPharmacyStaff().has_permission(request, None):
            raise exceptions.PermissionDenied('Only pharmacy staff can edit medicines')
        s = MedicineUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        m = service.update_medicine(medicine_id, request.user, s.validated_data)
        return Response({'ok': True, 'message': 'Medicine updated', 'data': service.format_medicine(m)})
    m = MedicineStock.objects.get(medicine_id=medicine_id)
    return Response({'ok': True, 'data': service.format_medicine(m, with_movements=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyStaff])
def move_stock(request, medicine_id: str):
    s = StockMovementSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    m = service.move_stock(medicine_id, request.user, vd['action'], vd['quantity'], reason=vd['reason'],
                           batch_number=vd['batchNumber'])
    m = MedicineStock.objects.get(pk=m.pk)
    return Response({'ok': True, 'message': 'Stock updated', 'data': service.format_medicine(m, with_movements=True)},
                    status=status.HTTP_201_CREATED)
