"""
URL mappings for the clinic API.

Trailing slashes are omitted.  Fixed segments (``stats``,
``pending-approval``, ``login`` ...) are listed ahead of the
``<str:...>`` captures they would otherwise be swallowed by.
"""
from django.urls import path

from .auth_views import (
    authority_login_view, authority_register_view, change_password_view, logout_view, patient_login_view,
    patient_register_view, profile_view, refresh_token_view, verify_token_view,
)
from .views import appointments, employees, health, notifications, patients, pharmacy, prescriptions, tickets

urlpatterns = [
    path('healthz', health.healthz),

    # Authentication
    path('api/auth/patient/register', patient_register_view),
    path('api/auth/patient/login', patient_login_view),
    path('api/auth/authority/register', authority_register_view),
    path('api/auth/authority/login', authority_login_view),
    path('api/auth/refresh-token', refresh_token_view),
    path('api/auth/change-password', change_password_view),
    path('api/auth/logout', logout_view),

    # Current user
    path('api/user/verify-token', verify_token_view),
    path('api/user/refresh-token', refresh_token_view),
    path('api/user/change-password', change_password_view),
    path('api/user/profile', profile_view),
    path('api/user/logout', logout_view),

    # Patients
    path('api/patient/register', patient_register_view),
    path('api/patient/login', patient_login_view),
    path('api/patient/profile', profile_view),
    path('api/patient/medical-records', patients.medical_records),
    path('api/patient/medical-history', patients.update_medical_history),
    path('api/patient/allergies', patients.update_allergies),
    path('api/patient/dashboard/stats', patients.dashboard_stats),
    path('api/patient/dashboard/recent-activity', patients.recent_activity),
    path('api/patient/appointments', patients.my_appointments),
    path('api/patient/notifications', patients.my_notifications),
    path('api/patient/search', patients.search_patients),
    path('api/patient/<str:patient_id>', patients.patient_detail),

    # Employees
    path('api/employee/login', authority_login_view),
    path('api/employee/profile', profile_view),
    path('api/employee/dashboard/stats', employees.employee_dashboard),
    path('api/employee/doctor/availability', employees.update_availability),
    path('api/employee/doctor/<str:emp_id>/rate', employees.rate_doctor),
    path('api/employee/<str:employee_type>/register', authority_register_view),
    path('api/employee/<str:employee_type>/<str:emp_id>/status', employees.update_employee_status),
    path('api/employee/<str:employee_type>/<str:emp_id>', employees.employee_detail),
    path('api/employee/<str:employee_type>', employees.list_employees),

    # Appointments
    path('api/appointments/departments', appointments.departments),
    path('api/appointments/doctors/<str:department>', appointments.doctors_by_department),
    path('api/appointments/available-slots/<str:doctor_id>', appointments.available_slots),
    path('api/appointments/reserve-slot', appointments.reserve_slot),
    path('api/appointments/book', appointments.book),
    path('api/appointments/stats', appointments.appointment_stats),
    path('api/appointments/pending-approval', appointments.pending_approval),
    path('api/appointments/health-manager/all', appointments.manager_all),
    path('api/appointments/patient/<str:patient_id>', appointments.patient_appointments),
    path('api/appointments/doctor/<str:doctor_id>', appointments.doctor_appointments),
    path('api/appointments/<str:appointment_id>', appointments.appointment_detail),
    path('api/appointments/<str:appointment_id>/payment', appointments.payment),
    path('api/appointments/<str:appointment_id>/status', appointments.update_status),
    path('api/appointments/<str:appointment_id>/approve', appointments.approve),
    path('api/appointments/<str:appointment_id>/decline', appointments.decline),
    path('api/appointments/<str:appointment_id>/confirm', appointments.confirm),
    path('api/appointments/<str:appointment_id>/reschedule', appointments.reschedule),
    path('api/appointments/<str:appointment_id>/start', appointments.start),
    path('api/appointments/<str:appointment_id>/complete', appointments.complete),
    path('api/appointments/<str:appointment_id>/no-show', appointments.no_show),

    # Prescriptions
    path('api/prescriptions', prescriptions.create_prescription),
    path('api/prescriptions/doctor', prescriptions.doctor_prescriptions),
    path('api/prescriptions/pharmacist', prescriptions.pharmacist_queue),
    path('api/prescriptions/stats', prescriptions.prescription_stats),
    path('api/prescriptions/patient/<str:patient_id>', prescriptions.patient_prescriptions),
    path('api/prescriptions/<str:prescription_id>', prescriptions.prescription_detail),
    path('api/prescriptions/<str:prescription_id>/status', prescriptions.update_prescription_status),
    path('api/prescriptions/<str:prescription_id>/refill', prescriptions.refill_prescription),

    # Support tickets
    path('api/support-tickets', tickets.tickets),
    path('api/support-tickets/stats', tickets.ticket_stats),
    path('api/support-tickets/<str:ticket_id>', tickets.ticket_detail),
    path('api/support-tickets/<str:ticket_id>/assign', tickets.assign_ticket),
    path('api/support-tickets/<str:ticket_id>/status', tickets.update_ticket_status),
    path('api/support-tickets/<str:ticket_id>/messages', tickets.add_ticket_message),
    path('api/support-tickets/<str:ticket_id>/escalate', tickets.escalate_ticket),
    path('api/support-tickets/<str:ticket_id>/priority', tickets.update_ticket_priority),
    path('api/support-tickets/<str:ticket_id>/close', tickets.close_ticket),
    path('api/support-tickets/<str:ticket_id>/rate', tickets.rate_ticket),

    # Pharmacy inventory
    path('api/pharmacy/medicines', pharmacy.medicines),
    path('api/pharmacy/medicines/stats', pharmacy.medicine_stats),
    path('api/pharmacy/medicines/<str:medicine_id>', pharmacy.medicine_detail),
    path('api/pharmacy/medicines/<str:medicine_id>/stock', pharmacy.move_stock),

    # Notifications
    path('api/notifications', notifications.list_notifications),
    path('api/notifications/unread-count', notifications.unread_count),
    path('api/notifications/read-all', notifications.read_all_notifications),
    path('api/notifications/<str:notification_id>/read', notifications.read_notification),
]
