from typing import Optional, Any, Dict

from clinic.models import AuditEvent


def log_action(*, actor_id: Optional[str], action: str, object_type: Optional[str]=None, object_id: Optional[Any]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    return AuditEvent.objects.create(
        actor_id=actor_id or None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )
