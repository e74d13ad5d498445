"""
Pharmacy inventory: medicine stock lines and their movement ledger.

Every quantity change locks the stock row, writes a ``StockMovement``
and an audit entry in the same transaction.  Crossing down to the
minimum stock level notifies pharmacists and managers once.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.utils import timezone

from clinic.exceptions import DomainError
from clinic.models import MedicineStock, Prescription, StockMovement, User
from clinic.services.audit import log_action
from clinic.services.identifiers import new_medicine_id
from clinic.services.notifications import notify_many

logger = logging.getLogger(__name__)

# actions that take stock away; ``adjustment`` sets an absolute count
OUTBOUND = ('stock_out', 'expiry', 'damage')
INBOUND = ('stock_in', 'return')

FIELD_MAP = {
    'name': 'name',
    'genericName': 'generic_name',
    'expiryDate': 'expiry_date',
    'dosageForm': 'dosage_form',
    'strength': 'strength',
    'unit': 'unit',
    'category': 'category',
    'prescriptionRequired': 'prescription_required',
    'batchNumber': 'batch_number',
    'supplier': 'supplier',
    'costPrice': 'cost_price',
    'sellingPrice': 'selling_price',
    'minimumStockLevel': 'minimum_stock_level',
    'reorderQuantity': 'reorder_quantity',
    'location': 'location',
    'status': 'status',
}


def format_movement(m: StockMovement) -> dict:
    return {
        'action': m.action,
        'quantity': m.quantity,
        'previousQuantity': m.previous_quantity,
        'newQuantity': m.new_quantity,
        'performedBy': m.performed_by.public_id if m.performed_by else None,
        'reason': m.reason,
        'batchNumber': m.batch_number,
        'prescriptionId': m.prescription_id or None,
        'timestamp': m.timestamp.isoformat(),
    }


def format_medicine(m: MedicineStock, *, with_movements: bool = False) -> dict:
    today = timezone.localdate()
    data = {
        'id': m.medicine_id,
        'medicineId': m.medicine_id,
        'name': m.name,
        'genericName': m.generic_name,
        'quantityAvailable': m.quantity_available,
        'expiryDate': m.expiry_date.isoformat(),
        'daysUntilExpiry': (m.expiry_date - today).days,
        'dosageForm': m.dosage_form,
        'strength': m.strength,
        'unit': m.unit,
        'category': m.category,
        'prescriptionRequired': m.prescription_required,
        'batchNumber': m.batch_number,
        'supplier': m.supplier,
        'pricing': {
            'costPrice': str(m.cost_price),
            'sellingPrice': str(m.selling_price),
            'margin': str(m.selling_price - m.cost_price),
        },
        'minimumStockLevel': m.minimum_stock_level,
        'reorderQuantity': m.reorder_quantity,
        'location': m.location,
        'status': m.status,
        'isLowStock': m.is_low_stock,
        'isOutOfStock': m.is_out_of_stock,
        'isExpired': m.expiry_date < today,
        'updatedAt': m.updated_at.isoformat() if m.updated_at else None,
    }
    if with_movements:
        data['movements'] = [format_movement(x) for x in m.movements.select_related('performed_by')[:100]]
    return data


def filter_queryset(qs, *, q: str = '', category: str = '', status: str = '', low_stock: bool = False,
                    expiring_within: Optional[int] = None):
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(generic_name__icontains=q) | Q(medicine_id__iexact=q))
    if category:
        qs = qs.filter(category=category)
    if status:
        qs = qs.filter(status=status)
    if low_stock:
        qs = qs.filter(quantity_available__lte=F('minimum_stock_level'))
    if expiring_within is not None:
        today = timezone.localdate()
        qs = qs.filter(expiry_date__gte=today, expiry_date__lte=today + timedelta(days=expiring_within))
    return qs


def _record(m: MedicineStock, *, action: str, quantity: int, previous: int, actor: Optional[User],
            reason: str = '', batch_number: str = '', prescription_id: str = '') -> StockMovement:
    movement = StockMovement.objects.create(
        medicine=m, action=action, quantity=quantity, previous_quantity=previous,
        new_quantity=m.quantity_available, performed_by=actor, reason=reason[:300],
        batch_number=batch_number, prescription_id=prescription_id,
    )
    log_action(user=actor, action='stock_movement', object_type='medicine', object_id=m.medicine_id,
               detail={'action': action, 'quantity': quantity, 'from': previous, 'to': m.quantity_available})
    logger.info("Stock %s %s: %d -> %d", m.medicine_id, action, previous, m.quantity_available)
    return movement


def _warn_if_low(m: MedicineStock, previous: int) -> None:
    if previous > m.minimum_stock_level >= m.quantity_available:
        logger.warning("Medicine %s is low on stock (%d left)", m.medicine_id, m.quantity_available)
        recipients = User.objects.filter(role__in=(User.ROLE_PHARMACIST, User.ROLE_MANAGER), is_active=True)
        notify_many(recipients, type='stock_low', title='Low stock',
                    message=f"{m.name} {m.strength} is down to {m.quantity_available} {m.unit}. "
                            f"Reorder {m.reorder_quantity}.",
                    data={'medicineId': m.medicine_id, 'quantityAvailable': m.quantity_available},
                    priority='high')


@transaction.atomic
def add_medicine(actor: User, data: dict) -> MedicineStock:
    fields = {attr: data[key] for key, attr in FIELD_MAP.items() if key in data}
    m = MedicineStock.objects.create(medicine_id=new_medicine_id(), created_by=actor,
                                     quantity_available=0, **fields)
    initial = data.get('quantityAvailable', 0)
    if initial:
        m.quantity_available = initial
        m.save(update_fields=['quantity_available', 'updated_at'])
        _record(m, action='stock_in', quantity=initial, previous=0, actor=actor, reason='Initial stock',
                batch_number=m.batch_number)
    else:
        log_action(user=actor, action='stock_created', object_type='medicine', object_id=m.medicine_id)
    return m


@transaction.atomic
def update_medicine(medicine_id: str, actor: User, data: dict) -> MedicineStock:
    """Edit catalogue fields; quantities only change through :func:`move_stock`."""
    m = MedicineStock.objects.select_for_update().get(medicine_id=medicine_id)
    changed = []
    for key, attr in FIELD_MAP.items():
        if key in data:
            setattr(m, attr, data[key])
            changed.append(attr)
    if changed:
        m.save(update_fields=changed + ['updated_at'])
        log_action(user=actor, action='stock_updated', object_type='medicine', object_id=m.medicine_id,
                   detail={'fields': changed})
    return m


@transaction.atomic
def move_stock(medicine_id: str, actor: Optional[User], action: str, quantity: int, *, reason: str = '',
               batch_number: str = '', prescription_id: str = '') -> MedicineStock:
    m = MedicineStock.objects.select_for_update().get(medicine_id=medicine_id)
    previous = m.quantity_available
    if action in INBOUND:
        new = previous + quantity
    elif action in OUTBOUND:
        new = previous - quantity
        if new < 0:
            raise DomainError(f"Insufficient stock for {m.name}: {previous} available, {quantity} requested")
    elif action == 'adjustment':
        new = quantity
    else:
        raise DomainError(f"Unknown stock action '{action}'")
    if action == 'stock_out' and (m.status != 'active' or m.expiry_date < timezone.localdate()):
        raise DomainError(f"{m.name} is not available for dispensing")
    m.quantity_available = new
    m.save(update_fields=['quantity_available', 'updated_at'])
    _record(m, action=action, quantity=quantity, previous=previous, actor=actor, reason=reason,
            batch_number=batch_number, prescription_id=prescription_id)
    _warn_if_low(m, previous)
    return m


def dispense_items(p: Prescription, actor: User) -> list[str]:
    """Take stock for every item of ``p`` that names a stocked medicine.

    Must run inside the caller's transaction so that a shortage rolls
    back the dispensing as well.
    """
    stocked = set(MedicineStock.objects.filter(
        medicine_id__in=[i.medicine_id for i in p.items.all() if i.medicine_id],
    ).values_list('medicine_id', flat=True))
    moved = []
    for item in p.items.all():
        if item.medicine_id in stocked:
            move_stock(item.medicine_id, actor, 'stock_out', item.quantity,
                       reason='Dispensed', prescription_id=p.prescription_id)
            moved.append(item.medicine_id)
    return moved


def statistics() -> dict:
    today = timezone.localdate()
    agg = MedicineStock.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status='active')),
        low=Count('id', filter=Q(quantity_available__lte=F('minimum_stock_level'))),
        out=Count('id', filter=Q(quantity_available=0)),
        expired=Count('id', filter=Q(expiry_date__lt=today)),
        value=Sum(ExpressionWrapper(F('quantity_available') * F('cost_price'),
                                    output_field=DecimalField(max_digits=14, decimal_places=2))),
    )
    return {
        'totalMedicines': agg['total'],
        'activeMedicines': agg['active'],
        'lowStockCount': agg['low'],
        'outOfStockCount': agg['out'],
        'expiredCount': agg['expired'],
        'totalStockValue': str(agg['value'] or Decimal('0')),
    }
