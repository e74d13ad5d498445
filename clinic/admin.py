"""
Django admin registrations for the clinic models.

Workflow records (appointments, prescriptions, tickets) show their
history inline; the append-only event tables are read-only.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Appointment, AppointmentEvent, AuditEvent, DoctorProfile, DoctorRating, EmployeeProfile, MedicineStock,
    Notification, PatientProfile, Prescription, PrescriptionEvent, PrescriptionItem, SlotReservation,
    StockMovement, SupportTicket, TicketEvent, TicketMessage, User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'name', 'role', 'is_active', 'is_staff', 'date_joined')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('username', 'email', 'name')
    fieldsets = BaseUserAdmin.fieldsets + (('Clinic', {'fields': ('role', 'name')}),)


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('patient_id', 'user', 'gender', 'date_of_birth', 'status')
    list_filter = ('status', 'gender')
    search_fields = ('patient_id', 'user__name', 'user__email', 'phone')


@admin.register(EmployeeProfile)
class EmployeeProfileAdmin(admin.ModelAdmin):
    list_display = ('emp_id', 'user', 'employee_type', 'department', 'status')
    list_filter = ('employee_type', 'status', 'department')
    search_fields = ('emp_id', 'user__name', 'user__email')


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'license_number', 'consultation_fee', 'average_rating')
    list_filter = ('specialization',)
    search_fields = ('user__name', 'license_number')


@admin.register(DoctorRating)
class DoctorRatingAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'patient', 'rating', 'created_at')


class AppointmentEventInline(admin.TabularInline):
    model = AppointmentEvent
    extra = 0
    readonly_fields = ('action', 'from_status', 'to_status', 'performed_by', 'notes', 'data', 'timestamp')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('appointment_id', 'patient', 'doctor', 'date_time', 'status', 'payment_status')
    list_filter = ('status', 'payment_status', 'department', 'appointment_type')
    search_fields = ('appointment_id', 'patient__name', 'doctor__name')
    date_hierarchy = 'date_time'
    inlines = [AppointmentEventInline]


@admin.register(SlotReservation)
class SlotReservationAdmin(admin.ModelAdmin):
    list_display = ('token', 'doctor', 'patient', 'date_time', 'expires_at')


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0


class PrescriptionEventInline(admin.TabularInline):
    model = PrescriptionEvent
    extra = 0
    readonly_fields = ('action', 'from_status', 'to_status', 'performed_by', 'notes', 'data', 'timestamp')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('prescription_id', 'patient', 'doctor', 'status', 'issued_at', 'expires_at')
    list_filter = ('status', 'urgency')
    search_fields = ('prescription_id', 'patient__name', 'doctor__name')
    inlines = [PrescriptionItemInline, PrescriptionEventInline]


class TicketMessageInline(admin.TabularInline):
    model = TicketMessage
    extra = 0


class TicketEventInline(admin.TabularInline):
    model = TicketEvent
    extra = 0
    readonly_fields = ('action', 'from_status', 'to_status', 'performed_by', 'notes', 'data', 'timestamp')


@admin.register(SupportTicket)
class SupportTicketAdmin(admin.ModelAdmin):
    list_display = ('ticket_id', 'patient', 'category', 'priority', 'status', 'assigned_staff', 'escalation_level')
    list_filter = ('status', 'priority', 'category')
    search_fields = ('ticket_id', 'subject', 'patient__name')
    inlines = [TicketMessageInline, TicketEventInline]


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    extra = 0
    readonly_fields = ('action', 'quantity', 'previous_quantity', 'new_quantity', 'performed_by', 'reason',
                       'batch_number', 'prescription_id', 'timestamp')


@admin.register(MedicineStock)
class MedicineStockAdmin(admin.ModelAdmin):
    list_display = ('medicine_id', 'name', 'strength', 'quantity_available', 'minimum_stock_level', 'expiry_date',
                    'status')
    list_filter = ('status', 'category', 'dosage_form')
    search_fields = ('medicine_id', 'name', 'generic_name', 'batch_number')
    inlines = [StockMovementInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('notification_id', 'recipient', 'type', 'priority', 'status', 'created_at')
    list_filter = ('type', 'status', 'priority')
    search_fields = ('notification_id', 'title', 'recipient__name')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'object_type', 'object_id')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'user__username')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
