# This project was developed with assistance from AI tools.
"""Authentication and authorization schemas."""

from pydantic import BaseModel, ConfigDict, Field
from rpc_db.enums import UserRole


class DataScope(BaseModel):
    """Data visibility rules injected by RBAC middleware."""

    own_data_only: bool = False
    user_id: str | None = None
    broker_id: str | None = None
    funded_only: bool = False
    read_only: bool = False
    full_pipeline: bool = False


class UserContext(BaseModel):
    """Injected by auth middleware into every authenticated request."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    email: str
    name: str
    email_verified: bool = False
    data_scope: DataScope = Field(default_factory=DataScope)

    @property
    def is_ops(self) -> bool:
        return self.role in UserRole.ops_roles()


class Actor(BaseModel):
    """The principal driving a loan transition.

    ``override_reason`` is recorded in history whenever an ops caller
    bypasses a borrower-facing precondition.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    email: str = ""
    email_verified: bool = False
    override_reason: str | None = None

    @classmethod
    def from_user(cls, user: UserContext, override_reason: str | None = None) -> "Actor":
        return cls(
            user_id=user.user_id,
            role=user.role,
            email=user.email,
            email_verified=user.email_verified,
            override_reason=override_reason,
        )

    @property
    def can_override(self) -> bool:
        return self.role in UserRole.ops_roles()


class TokenPayload(BaseModel):
    """Decoded JWT token claims from Keycloak."""

    sub: str
    email: str = ""
    email_verified: bool = False
    preferred_username: str = ""
    name: str = ""
    realm_access: dict = Field(default_factory=dict)
