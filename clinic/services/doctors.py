from typing import Optional
from decimal import Decimal, ROUND_HALF_UP

from django.core.cache import cache
from django.db import transaction
from django.db.models import Avg, Count

from clinic.exceptions import DomainError
from clinic.models import Appointment, DoctorProfile, DoctorRating, EmployeeProfile, User
from clinic.services.accounts import DEPARTMENTS_CACHE_KEY, format_doctor_fields
from clinic.services.audit import log_action


def _active_doctors():
    return User.objects.filter(
        role=User.ROLE_DOCTOR, is_active=True,
        employee_profile__status=EmployeeProfile.STATUS_ACTIVE,
        doctor_profile__isnull=False,
    ).select_related('employee_profile', 'doctor_profile')


def list_departments() -> list[dict]:
    cached = cache.get(DEPARTMENTS_CACHE_KEY)
    if cached is not None:
        return cached
    rows = (_active_doctors().values('employee_profile__department')
            .annotate(n=Count('id')).order_by('employee_profile__department'))
    data = [{'name': r['employee_profile__department'], 'doctorCount': r['n']}
            for r in rows if r['employee_profile__department']]
    cache.set(DEPARTMENTS_CACHE_KEY, data, 300)
    return data


def list_doctors(department: Optional[str] = None, *, q: Optional[str] = None) -> list[dict]:
    qs = _active_doctors()
    if department:
        qs = (qs.filter(employee_profile__department__iexact=department)
              | qs.filter(doctor_profile__specialization__iexact=department))
    if q:
        qs = qs.filter(name__icontains=q)
    return [{
        'id': u.employee_profile.emp_id,
        'empID': u.employee_profile.emp_id,
        'name': u.name,
        'department': u.employee_profile.department,
        **format_doctor_fields(u.doctor_profile),
    } for u in qs.distinct().order_by('name')]


def get_doctor(emp_id: str) -> User:
    return User.objects.select_related('employee_profile', 'doctor_profile').get(
        role=User.ROLE_DOCTOR, employee_profile__emp_id=emp_id)


@transaction.atomic
def rate_doctor(patient: User, doctor: User, rating: int, comment: str = '') -> DoctorProfile:
    """Record (or replace) a patient's rating after a completed visit."""
    if not Appointment.objects.filter(patient=patient, doctor=doctor,
                                      status=Appointment.STATUS_COMPLETED).exists():
        raise DomainError('You can only rate doctors you have completed an appointment with')
    DoctorRating.objects.update_or_create(doctor=doctor, patient=patient,
                                          defaults={'rating': rating, 'comment': comment})
    prof = DoctorProfile.objects.select_for_update().get(user=doctor)
    agg = DoctorRating.objects.filter(doctor=doctor).aggregate(avg=Avg('rating'), n=Count('id'))
    prof.average_rating = Decimal(str(agg['avg'] or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    prof.total_ratings = agg['n']
    prof.save(update_fields=['average_rating', 'total_ratings'])
    log_action(user=patient, action='doctor_rated', object_type='doctor',
               object_id=doctor.employee_profile.emp_id, detail={'rating': rating})
    return prof
