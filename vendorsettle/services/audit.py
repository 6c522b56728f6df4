import json

from fastapi import Request
from sqlalchemy.orm import Session

from vendorsettle.models.security import AuditLog


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def log_audit(
    db: Session,
    event_type: str,
    actor_user_id: int | None,
    business_id: int | None = None,
    target_user_id: int | None = None,
    request: Request | None = None,
    details: dict | None = None,
) -> None:
    audit = AuditLog(
        event_type=event_type,
        business_id=business_id,
        actor_user_id=actor_user_id,
        target_user_id=target_user_id,
        ip_address=get_client_ip(request) if request is not None else None,
        user_agent=request.headers.get("user-agent") if request is not None else None,
        details=json.dumps(details or {}, default=str),
    )
    db.add(audit)
