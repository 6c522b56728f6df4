from datetime import datetime

from pydantic import BaseModel

from vendorsettle.models.user import ApprovalStatus, UserRole


class UserOut(BaseModel):
    id: int
    email: str
    username: str
    business_id: int
    role: UserRole
    approval_status: ApprovalStatus
    created_at: datetime

    model_config = {"from_attributes": True}
