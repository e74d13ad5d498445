from typing import Optional, Any, Dict

from clinic.models import AuditEvent, User


def log_action(*, user: Optional[User], action: str, object_type: str = '', object_id: Any = None,
               detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type,
        object_id='' if object_id is None else str(object_id),
        detail=detail or {},
    )
