from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from vendorsettle.core.security import decode_token
from vendorsettle.db.database import get_db
from vendorsettle.models.business import Business
from vendorsettle.models.user import ApprovalStatus, User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

ROLE_PERMISSIONS: dict[UserRole, set[str]] = {
    UserRole.BUSINESS_OWNER: {
        "catalog:manage",
        "catalog:view",
        "vendors:manage",
        "vendors:view",
        "sales:record",
        "sales:view",
        "users:approve",
    },
    UserRole.WORKER: {"catalog:view", "vendors:view", "sales:record"},
}


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    raw_token = (token or "").strip()
    if not raw_token:
        raw_token = (request.headers.get("x-access-token") or "").strip()
    if not raw_token:
        raise credentials_exception

    try:
        payload = decode_token(raw_token)
    except JWTError as exc:
        raise credentials_exception from exc
    subject = payload.get("sub")
    if subject is None or payload.get("type") != "access":
        raise credentials_exception
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise credentials_exception from exc

    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise credentials_exception
    if user.approval_status != ApprovalStatus.APPROVED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not approved",
        )
    return user


def require_permission(permission: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        permissions = ROLE_PERMISSIONS.get(current_user.role, set())
        if permission not in permissions:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission required: {permission}",
            )
        return current_user

    return checker


def get_active_business(db: Session, current_user: User) -> Business:
    business = db.get(Business, current_user.business_id)
    if not business:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Business not found for current user")
    if not business.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Business is inactive")
    return business


def enforce_business_scope(resource_business_id: int, current_user: User) -> None:
    if resource_business_id != current_user.business_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cross-business access is not allowed")
