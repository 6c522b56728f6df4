from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from vendorsettle.models.business import BusinessType
from vendorsettle.models.user import ApprovalStatus, UserRole


class SignUpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(min_length=10, max_length=128)
    business_code: str = Field(
        min_length=2,
        max_length=64,
        validation_alias=AliasChoices("business_code", "businessCode"),
    )
    business_name: str | None = Field(
        default=None,
        min_length=2,
        max_length=120,
        validation_alias=AliasChoices("business_name", "businessName"),
    )
    business_type: BusinessType = Field(
        default=BusinessType.GENERAL,
        validation_alias=AliasChoices("business_type", "businessType"),
    )
    role: UserRole = UserRole.WORKER

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: str | UserRole):
        if isinstance(value, UserRole):
            return value
        if not isinstance(value, str):
            return value
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        if normalized == "owner":
            normalized = "business_owner"
        return normalized

    @field_validator("business_type", mode="before")
    @classmethod
    def normalize_business_type(cls, value: str | BusinessType):
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
            return "ice_cream" if normalized == "icecream" else normalized
        return value


class SignUpResponse(BaseModel):
    user_id: int
    email: str
    username: str
    business_id: int
    role: UserRole
    approval_status: ApprovalStatus
    message: str


class LoginRequest(BaseModel):
    identity: str = Field(min_length=1, max_length=320, description="Email or username")
    password: str = Field(min_length=1, max_length=128)

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_identity_fields(cls, data):
        if not isinstance(data, dict):
            return data
        if data.get("identity"):
            return data
        for key in ("email", "username"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                data["identity"] = value
                break
        return data

    @field_validator("identity")
    @classmethod
    def normalize_identity(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("identity must not be empty")
        return normalized


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class GenericMessageResponse(BaseModel):
    message: str
