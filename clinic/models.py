"""
Database models for the CareHub backend.

The data model covers identities (a single ``User`` table carrying the
role, plus patient / employee / doctor profiles), appointments with
their slot reservations and status history, prescriptions with line
items, support tickets with a communication log, notifications and an
audit trail.  Every workflow entity keeps a human readable identifier
(``APT...``, ``RX...``, ``TKT...``) next to the database primary key;
the API only ever exposes the human identifier.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user model with a role.

    ``username`` holds the lower-cased email so Django's authentication
    backend can be used unchanged.  Role specific data lives on the
    profile models below.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_PHARMACIST = 'pharmacist'
    ROLE_MANAGER = 'healthCareManager'
    ROLE_ADMIN = 'systemAdmin'
    ROLE_STAFF = 'hospitalStaff'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_PHARMACIST, 'Pharmacist'),
        (ROLE_MANAGER, 'Health Care Manager'),
        (ROLE_ADMIN, 'System Administrator'),
        (ROLE_STAFF, 'Hospital Staff'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    name = models.CharField(max_length=100, blank=True)

    @property
    def is_patient(self) -> bool:
        return self.role == self.ROLE_PATIENT

    @property
    def is_authority(self) -> bool:
        return self.role != self.ROLE_PATIENT

    @property
    def public_id(self) -> str | None:
        """``patientId`` for patients, ``empID`` for staff."""
        if self.is_patient:
            prof = getattr(self, 'patient_profile', None)
            return prof.patient_id if prof else None
        prof = getattr(self, 'employee_profile', None)
        return prof.emp_id if prof else None

    def __str__(self) -> str:
        return f"{self.name or self.username} ({self.role})"


class PatientProfile(models.Model):
    GENDER_CHOICES = [('male', 'Male'), ('female', 'Female'), ('other', 'Other')]
    STATUS_CHOICES = [('active', 'Active'), ('inactive', 'Inactive')]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    patient_id = models.CharField(max_length=20, unique=True)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    phone = models.CharField(max_length=32, blank=True)
    address = models.JSONField(default=dict, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)
    blood_type = models.CharField(max_length=5, blank=True)
    medical_history = models.JSONField(default=list, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.patient_id} ({self.user.name})"


class EmployeeProfile(models.Model):
    """Profile shared by every non-patient account."""
    STATUS_ACTIVE = 'active'
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('terminated', 'Terminated'),
        ('on_leave', 'On leave'),
    ]
    # statuses that may still sign in
    LOGIN_STATUSES = {'active', 'on_leave'}

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='employee_profile')
    emp_id = models.CharField(max_length=20, unique=True)
    employee_type = models.CharField(max_length=20, choices=User.ROLE_CHOICES, db_index=True)
    department = models.CharField(max_length=50, blank=True, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    hire_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    # role extras: nurse ward/shift, pharmacist licence, manager departments
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.emp_id} ({self.employee_type})"


class DoctorProfile(models.Model):
    SPECIALIZATIONS = [
        'General Medicine', 'Cardiology', 'Dermatology', 'Neurology', 'Orthopedics',
        'Pediatrics', 'Psychiatry', 'Radiology', 'Surgery', 'Gynecology',
        'Oncology', 'ENT', 'Ophthalmology', 'Urology', 'Endocrinology',
    ]
    WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=50, choices=[(s, s) for s in SPECIALIZATIONS], db_index=True)
    license_number = models.CharField(max_length=50, unique=True)
    experience_years = models.PositiveIntegerField(default=0)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=150)
    # {"monday": [{"start": "09:00", "end": "17:00"}], ...}
    availability = models.JSONField(default=dict, blank=True)
    max_patients_per_day = models.PositiveIntegerField(default=20)
    bio = models.TextField(blank=True)
    average_rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_ratings = models.PositiveIntegerField(default=0)

    @classmethod
    def default_availability(cls) -> dict:
        return {day: ([{'start': '09:00', 'end': '17:00'}] if day not in ('saturday', 'sunday') else [])
                for day in cls.WEEKDAYS}

    def __str__(self) -> str:
        return f"Dr. {self.user.name} ({self.specialization})"


class DoctorRating(models.Model):
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ratings_received')
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ratings_given')
    rating = models.PositiveSmallIntegerField()
    comment = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('doctor', 'patient')]


class Appointment(models.Model):
    STATUS_PENDING_APPROVAL = 'pending_approval'
    STATUS_APPROVED = 'approved'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_DECLINED = 'declined'
    STATUS_NO_SHOW = 'no_show'
    STATUS_CHOICES = [
        (STATUS_PENDING_APPROVAL, 'Pending approval'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_NO_SHOW, 'No show'),
    ]
    # statuses that hold the doctor's time
    ACTIVE_STATUSES = (STATUS_PENDING_APPROVAL, STATUS_APPROVED, STATUS_CONFIRMED, STATUS_IN_PROGRESS)

    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow_up', 'Follow up'),
        ('emergency', 'Emergency'),
        ('routine_checkup', 'Routine checkup'),
        ('specialist_visit', 'Specialist visit'),
        ('procedure', 'Procedure'),
    ]
    PRIORITY_CHOICES = [('routine', 'Routine'), ('urgent', 'Urgent'), ('emergency', 'Emergency')]
    PAYMENT_STATUS_CHOICES = [('pending', 'Pending'), ('paid', 'Paid'), ('refunded', 'Refunded')]
    PAYMENT_METHOD_CHOICES = [('card', 'Card'), ('cash', 'Cash'), ('insurance', 'Insurance'), ('online', 'Online')]

    appointment_id = models.CharField(max_length=30, unique=True)
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    date_time = models.DateTimeField(db_index=True)
    duration = models.PositiveIntegerField(default=30)
    department = models.CharField(max_length=50)
    reason_for_visit = models.CharField(max_length=500)
    appointment_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='routine')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING_APPROVAL, db_index=True)

    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=150)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_reference = models.CharField(max_length=40, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    reviewed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='reviewed_appointments')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    approval_notes = models.CharField(max_length=500, blank=True)
    decline_reason = models.CharField(max_length=500, blank=True)

    cancelled_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='cancelled_appointments')
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)
    refund_eligible = models.BooleanField(default=False)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    diagnosis = models.TextField(blank=True)
    treatment_plan = models.TextField(blank=True)
    follow_up_required = models.BooleanField(default=False)
    follow_up_date = models.DateField(null=True, blank=True)
    prescription = models.ForeignKey('Prescription', null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    reschedule_count = models.PositiveSmallIntegerField(default=0)
    original_date_time = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date_time']
        indexes = [
            models.Index(fields=['doctor', 'date_time'], name='clinic_appo_doctor__7c1f0e_idx'),
            models.Index(fields=['patient', 'date_time'], name='clinic_appo_patient_3b9d2a_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'date_time'],
                condition=models.Q(status__in=['pending_approval', 'approved', 'confirmed', 'in_progress']),
                name='uniq_active_doctor_slot',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.appointment_id} ({self.status})"


class AppointmentEvent(models.Model):
    """Append-only history of what happened to an appointment."""
    appointment = models.ForeignKey(Appointment, related_name='events', on_delete=models.CASCADE)
    action = models.CharField(max_length=30)
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)
    performed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    notes = models.CharField(max_length=500, blank=True)
    data = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']

    def __str__(self) -> str:
        return f"{self.appointment_id}: {self.from_status} → {self.to_status}"


class SlotReservation(models.Model):
    """A short hold on a doctor's slot while the patient completes booking."""
    token = models.CharField(max_length=40, unique=True)
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='slot_holds')
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='slot_reservations')
    date_time = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['doctor', 'date_time'], name='clinic_slot_doctor__4e8a61_idx')]


class Prescription(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent_to_pharmacy'
    STATUS_DISPENSED = 'dispensed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_EXPIRED = 'expired'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SENT, 'Sent to pharmacy'),
        (STATUS_DISPENSED, 'Dispensed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_EXPIRED, 'Expired'),
    ]
    URGENCY_CHOICES = [('routine', 'Routine'), ('urgent', 'Urgent'), ('emergency', 'Emergency')]

    prescription_id = models.CharField(max_length=30, unique=True)
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='prescriptions_issued')
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='prescriptions')
    appointment = models.ForeignKey(Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions')
    diagnosis = models.CharField(max_length=500)
    symptoms = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='routine')
    follow_up_required = models.BooleanField(default=False)
    follow_up_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    issued_at = models.DateTimeField()
    expires_at = models.DateTimeField()

    pharmacy_id = models.CharField(max_length=20, blank=True)
    pharmacist = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions_handled')
    sent_to_pharmacy_at = models.DateTimeField(null=True, blank=True)
    dispensed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-issued_at']

    def __str__(self) -> str:
        return f"{self.prescription_id} ({self.status})"


class PrescriptionItem(models.Model):
    prescription = models.ForeignKey(Prescription, related_name='items', on_delete=models.CASCADE)
    medicine_id = models.CharField(max_length=50, blank=True)
    medicine_name = models.CharField(max_length=200)
    strength = models.CharField(max_length=50, blank=True)
    dosage_form = models.CharField(max_length=50, blank=True)
    quantity = models.PositiveIntegerField()
    dosage_instruction = models.CharField(max_length=300, default='As directed by doctor')
    frequency = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=100, blank=True)
    special_instructions = models.CharField(max_length=300, blank=True)
    refills_allowed = models.PositiveSmallIntegerField(default=0)
    refills_used = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.medicine_name} x{self.quantity}"


class PrescriptionEvent(models.Model):
    prescription = models.ForeignKey(Prescription, related_name='events', on_delete=models.CASCADE)
    action = models.CharField(max_length=30)
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)
    performed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    notes = models.CharField(max_length=500, blank=True)
    data = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']


class SupportTicket(models.Model):
    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_ASSIGNED = 'assigned'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_ASSIGNED, 'Assigned'),
        (STATUS_RESOLVED, 'Resolved'),
        (STATUS_CLOSED, 'Closed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    CATEGORY_CHOICES = [
        ('technical_issue', 'Technical issue'),
        ('billing_inquiry', 'Billing inquiry'),
        ('appointment_issue', 'Appointment issue'),
        ('medical_record_access', 'Medical record access'),
        ('prescription_issue', 'Prescription issue'),
        ('general_inquiry', 'General inquiry'),
        ('complaint', 'Complaint'),
        ('feedback', 'Feedback'),
        ('emergency', 'Emergency'),
    ]
    PRIORITIES = ['low', 'medium', 'high', 'urgent']
    PRIORITY_CHOICES = [(p, p.title()) for p in PRIORITIES]
    MAX_ESCALATION = 3

    ticket_id = models.CharField(max_length=30, unique=True)
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='support_tickets')
    subject = models.CharField(max_length=200, blank=True)
    issue_description = models.TextField()
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default='general_inquiry')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium', db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)
    assigned_staff = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_tickets')
    assigned_at = models.DateTimeField(null=True, blank=True)
    resolution = models.TextField(blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    escalation_level = models.PositiveSmallIntegerField(default=0)
    tags = models.JSONField(default=list, blank=True)
    satisfaction_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    patient_feedback = models.CharField(max_length=1000, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.ticket_id} ({self.status})"


class TicketMessage(models.Model):
    SENDER_TYPES = [('patient', 'Patient'), ('staff', 'Staff'), ('system', 'System')]

    ticket = models.ForeignKey(SupportTicket, related_name='messages', on_delete=models.CASCADE)
    sender = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    sender_type = models.CharField(max_length=10, choices=SENDER_TYPES)
    message = models.CharField(max_length=1000)
    is_internal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']


class TicketEvent(models.Model):
    ticket = models.ForeignKey(SupportTicket, related_name='events', on_delete=models.CASCADE)
    action = models.CharField(max_length=30)
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)
    performed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    notes = models.CharField(max_length=500, blank=True)
    data = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']


class MedicineStock(models.Model):
    """A pharmacy inventory line: one medicine in one strength and form."""
    DOSAGE_FORMS = ['tablet', 'capsule', 'syrup', 'injection', 'cream', 'ointment', 'drops', 'inhaler', 'patch']
    UNITS = ['mg', 'g', 'ml', 'l', 'units', 'pieces']
    CATEGORIES = ['prescription', 'over_the_counter', 'controlled_substance', 'vaccine', 'medical_device']
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('discontinued', 'Discontinued'),
        ('recalled', 'Recalled'),
    ]

    medicine_id = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200, db_index=True)
    generic_name = models.CharField(max_length=200, blank=True)
    quantity_available = models.PositiveIntegerField(default=0)
    expiry_date = models.DateField(db_index=True)
    dosage_form = models.CharField(max_length=20, choices=[(f, f) for f in DOSAGE_FORMS])
    strength = models.CharField(max_length=50, blank=True)
    unit = models.CharField(max_length=10, choices=[(u, u) for u in UNITS])
    category = models.CharField(max_length=30, choices=[(c, c) for c in CATEGORIES], db_index=True)
    prescription_required = models.BooleanField(default=True)
    batch_number = models.CharField(max_length=50, blank=True)
    # {"supplierName": ..., "phone": ..., "email": ..., "contractNumber": ...}
    supplier = models.JSONField(default=dict, blank=True)
    cost_price = models.DecimalField(max_digits=10, decimal_places=2)
    selling_price = models.DecimalField(max_digits=10, decimal_places=2)
    minimum_stock_level = models.PositiveIntegerField(default=10)
    reorder_quantity = models.PositiveIntegerField(default=100)
    # {"shelfNumber": ..., "rackNumber": ..., "section": ..., "pharmacyId": ...}
    location = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name', 'medicine_id']

    def __str__(self) -> str:
        return f"{self.medicine_id} {self.name} ({self.quantity_available})"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_available <= self.minimum_stock_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity_available == 0


class StockMovement(models.Model):
    """Append-only ledger of inventory changes."""
    ACTION_CHOICES = [(a, a) for a in ('stock_in', 'stock_out', 'adjustment', 'expiry', 'damage', 'return')]

    medicine = models.ForeignKey(MedicineStock, related_name='movements', on_delete=models.CASCADE)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    quantity = models.PositiveIntegerField()
    previous_quantity = models.PositiveIntegerField()
    new_quantity = models.PositiveIntegerField()
    performed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    reason = models.CharField(max_length=300, blank=True)
    batch_number = models.CharField(max_length=50, blank=True)
    prescription_id = models.CharField(max_length=30, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp', '-id']


class Notification(models.Model):
    TYPE_CHOICES = [(t, t) for t in (
        'appointment_booked', 'appointment_approved', 'appointment_declined',
        'appointment_confirmed', 'appointment_cancelled', 'appointment_rescheduled',
        'appointment_reminder', 'appointment_completed', 'appointment_no_show',
        'prescription_created', 'prescription_updated', 'prescription_ready',
        'ticket_update', 'stock_low', 'system',
    )]
    PRIORITY_CHOICES = [('low', 'Low'), ('medium', 'Medium'), ('high', 'High')]
    STATUS_CHOICES = [('unread', 'Unread'), ('read', 'Read')]

    notification_id = models.CharField(max_length=30, unique=True)
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    recipient_type = models.CharField(max_length=20)
    title = models.CharField(max_length=200)
    message = models.CharField(max_length=1000)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES, default='system')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='unread', db_index=True)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [models.Index(fields=['recipient', 'status'], name='clinic_noti_recipie_9f2c5d_idx')]

    def __str__(self) -> str:
        return f"{self.notification_id} → {self.recipient_id}"


class AuditEvent(models.Model):
    """Records security relevant actions and every workflow transition."""
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='audit_events')
    action = models.CharField(max_length=50, db_index=True)
    object_type = models.CharField(max_length=50, blank=True)
    object_id = models.CharField(max_length=50, blank=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.action} {self.object_type}:{self.object_id}"
