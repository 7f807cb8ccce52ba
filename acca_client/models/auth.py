"""
Authentication and Session Models

These describe the authenticated user, the client-side session state and
the uniform result returned by every auth operation.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)


class AppState(str, Enum):
    """Host application lifecycle states."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    BACKGROUND = "background"


class User(BaseModel):
    """
    Profile snapshot returned by the server.

    The server adds fields over time; unknown keys are kept so that
    `update_user` merges do not lose them.
    """
    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    id: int
    name: str = ""
    email: str = ""
    mobile: Optional[str] = None
    avatar: Optional[str] = None
    profile_picture_url: Optional[str] = None
    two_factor_enabled: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('name', 'email', 'two_factor_enabled', mode='before')
    @classmethod
    def null_as_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @classmethod
    def from_payload(cls, value: Any) -> Optional["User"]:
        """Parse a user dict from the server, or None if it is not one."""
        if not isinstance(value, dict):
            return None
        try:
            return cls.model_validate(value)
        except ValidationError:
            return None

    def merged(self, changes: dict[str, Any]) -> "User":
        """Return a copy with `changes` applied and revalidated."""
        return User.model_validate({**self.model_dump(), **changes})


class SessionState(BaseModel):
    """
    In-memory session state owned by the SessionManager.

    `is_authenticated` is true iff a token is held, whether or not the
    server has confirmed it yet.
    """

    token: Optional[str] = Field(default=None, repr=False)
    user: Optional[User] = None
    loading: bool = True
    session_expired: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


class AuthResult(BaseModel):
    """Uniform outcome of login/register."""

    success: bool
    message: Optional[str] = None
    requires_two_factor: bool = False
    errors: Optional[dict[str, Any]] = None


class DeviceSession(BaseModel):
    """A login session on one device, as listed by the server."""
    model_config = ConfigDict(extra="ignore")

    id: int
    device: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    last_active_at: Optional[datetime] = None
    is_current: bool = False
