from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendorsettle.api.deps import enforce_business_scope, get_current_user, require_permission
from vendorsettle.core.config import settings
from vendorsettle.core.logger import get_logger
from vendorsettle.core.security import create_access_token, hash_password, verify_password
from vendorsettle.db.database import get_db
from vendorsettle.models.business import Business
from vendorsettle.models.user import ApprovalStatus, User, UserRole
from vendorsettle.schemas.auth import LoginRequest, SignUpRequest, SignUpResponse, TokenResponse
from vendorsettle.schemas.user import UserOut
from vendorsettle.services.audit import log_audit

router = APIRouter(prefix="/auth", tags=["Authentication"])

logger = get_logger(__name__)


def authenticate_user(db: Session, identity: str, password: str) -> User:
    user = db.scalar(
        select(User).where(
            or_(
                func.lower(User.email) == identity.lower(),
                func.lower(User.username) == identity.lower(),
            )
        )
    )
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.approval_status == ApprovalStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account pending business owner approval",
        )
    if user.approval_status == ApprovalStatus.REJECTED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account was rejected")
    return user


def _issue_token(user: User) -> TokenResponse:
    access_token = create_access_token(
        subject=str(user.id),
        role=user.role.value,
        business_id=user.business_id,
    )
    return TokenResponse(access_token=access_token, expires_in=settings.access_token_expire_minutes * 60)


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignUpRequest, request: Request, db: Session = Depends(get_db)):
    existing = db.scalar(
        select(User).where(
            or_(
                func.lower(User.email) == payload.email.lower(),
                func.lower(User.username) == payload.username.lower(),
            )
        )
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already exists")

    business_code = payload.business_code.strip().upper()
    business = db.scalar(select(Business).where(func.upper(Business.code) == business_code))

    if payload.role == UserRole.BUSINESS_OWNER:
        if business:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Business code already exists")
        business = Business(
            code=business_code,
            name=(payload.business_name or payload.business_code).strip(),
            business_type=payload.business_type,
        )
        db.add(business)
        try:
            db.flush()
        except IntegrityError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Business code already exists") from exc
        approval_status = ApprovalStatus.APPROVED
    else:
        if not business:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
        if not business.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Business is inactive")
        approval_status = ApprovalStatus.PENDING

    user = User(
        email=payload.email.lower(),
        username=payload.username,
        password_hash=hash_password(payload.password),
        business_id=business.id,
        role=payload.role,
        approval_status=approval_status,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already exists") from exc

    log_audit(
        db=db,
        event_type="auth.signup",
        actor_user_id=user.id,
        business_id=business.id,
        target_user_id=user.id,
        request=request,
        details={"role": user.role.value, "approval_status": user.approval_status.value},
    )
    db.commit()
    logger.info("signup user=%s business=%s role=%s", user.id, business.id, user.role.value)

    message = (
        "Signup successful. Business created."
        if approval_status == ApprovalStatus.APPROVED
        else "Signup successful. Awaiting business owner approval."
    )
    return SignUpResponse(
        user_id=user.id,
        email=user.email,
        username=user.username,
        business_id=business.id,
        role=user.role,
        approval_status=user.approval_status,
        message=message,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = authenticate_user(db=db, identity=payload.identity, password=payload.password)
    log_audit(
        db=db,
        event_type="auth.login.success",
        actor_user_id=user.id,
        business_id=user.business_id,
        target_user_id=user.id,
        request=request,
    )
    db.commit()
    return _issue_token(user)


@router.post("/token", response_model=TokenResponse)
def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = authenticate_user(db=db, identity=form_data.username, password=form_data.password)
    log_audit(
        db=db,
        event_type="auth.token.success",
        actor_user_id=user.id,
        business_id=user.business_id,
        target_user_id=user.id,
        request=request,
    )
    db.commit()
    return _issue_token(user)


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/pending-users", response_model=list[UserOut])
def list_pending_users(
    current_user: User = Depends(require_permission("users:approve")),
    db: Session = Depends(get_db),
):
    users = db.scalars(
        select(User)
        .where(
            User.business_id == current_user.business_id,
            User.approval_status == ApprovalStatus.PENDING,
        )
        .order_by(User.created_at.asc())
    ).all()
    return list(users)


def _decide_pending_user(
    db: Session,
    request: Request,
    current_user: User,
    user_id: int,
    decision: ApprovalStatus,
) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    enforce_business_scope(user.business_id, current_user)
    if user.approval_status != ApprovalStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is not pending approval")

    user.approval_status = decision
    log_audit(
        db=db,
        event_type=f"users.{decision.value}",
        actor_user_id=current_user.id,
        business_id=current_user.business_id,
        target_user_id=user.id,
        request=request,
    )
    db.commit()
    db.refresh(user)
    return user


@router.post("/users/{user_id}/approve", response_model=UserOut)
def approve_user(
    user_id: int,
    request: Request,
    current_user: User = Depends(require_permission("users:approve")),
    db: Session = Depends(get_db),
):
    return _decide_pending_user(db, request, current_user, user_id, ApprovalStatus.APPROVED)


@router.post("/users/{user_id}/reject", response_model=UserOut)
def reject_user(
    user_id: int,
    request: Request,
    current_user: User = Depends(require_permission("users:approve")),
    db: Session = Depends(get_db),
):
    return _decide_pending_user(db, request, current_user, user_id, ApprovalStatus.REJECTED)
