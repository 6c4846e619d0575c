"""Principal read schemas. The login's password hash is not exposed."""

from datetime import datetime

from pydantic import BaseModel

from iamsync.domain.entities import Principal


class LoginProfileResponse(BaseModel):
    secret_id: str
    secret_version: str
    password_reset_required: bool


class PrincipalResponse(BaseModel):
    name: str
    group_names: list[str]
    contact_email: str | None = None
    password_reset_required: bool
    created_at: datetime
    login: LoginProfileResponse | None = None

    @classmethod
    def from_entity(cls, principal: Principal) -> "PrincipalResponse":
        login = None
        if principal.login is not None:
            login = LoginProfileResponse(
                secret_id=principal.login.secret_id,
                secret_version=principal.login.secret_version,
                password_reset_required=principal.login.password_reset_required,
            )
        return cls(
            name=principal.name,
            group_names=sorted(principal.group_names),
            contact_email=principal.contact_email,
            password_reset_required=principal.password_reset_required,
            created_at=principal.created_at,
            login=login,
        )


class PrincipalListResponse(BaseModel):
    items: list[PrincipalResponse]
    total: int
