"""Request/response schemas for the provisioning API."""

from pydantic import BaseModel, Field

from iamsync.application.dtos import (
    DesiredPrincipal,
    EntryResult,
    GroupPolicy,
    ProvisionResult,
)
from iamsync.domain.entities import PermissionRule


class PermissionRuleSchema(BaseModel):
    actions: list[str] = Field(..., min_length=1, examples=[["s3:Get*", "s3:List*"]])
    resources: list[str] = Field(default_factory=lambda: ["*"])

    def to_rule(self) -> PermissionRule:
        return PermissionRule(actions=tuple(self.actions), resources=tuple(self.resources))


class GroupPolicyRequest(BaseModel):
    """A group and the allow-rules attached to it."""

    group_name: str = Field(..., min_length=1)
    rules: list[PermissionRuleSchema] = Field(default_factory=list)

    def to_dto(self) -> GroupPolicy:
        return GroupPolicy(
            group_name=self.group_name, rules=tuple(r.to_rule() for r in self.rules)
        )


class DesiredPrincipalRequest(BaseModel):
    """One desired-state entry. Names and email are validated by the provisioner."""

    principal_name: str = Field(..., min_length=1, examples=["ec2User"])
    group_name: str = Field(..., min_length=1, examples=["EC2UserGroup"])
    contact_email: str = Field(..., min_length=1, examples=["ec2_user@example.com"])

    def to_dto(self) -> DesiredPrincipal:
        return DesiredPrincipal(
            principal_name=self.principal_name,
            group_name=self.group_name,
            contact_email=self.contact_email,
        )


class ApplyRequest(BaseModel):
    """Payload for POST /provisioning/apply."""

    principals: list[DesiredPrincipalRequest]
    groups: list[GroupPolicyRequest] = Field(default_factory=list)


class EntryResultResponse(BaseModel):
    principal_name: str
    group_name: str
    status: str
    error_code: str | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: EntryResult) -> "EntryResultResponse":
        return cls(
            principal_name=result.principal_name,
            group_name=result.group_name,
            status=result.status.value,
            error_code=result.error_code,
            message=result.message,
        )


class ProvisionResultResponse(BaseModel):
    """Outcome of one convergence pass. Carries the secret version, never its value."""

    secret_id: str
    secret_version: str
    secret_generated: bool
    ok: bool
    entries: list[EntryResultResponse]

    @classmethod
    def from_result(cls, result: ProvisionResult) -> "ProvisionResultResponse":
        return cls(
            secret_id=result.secret_id,
            secret_version=result.secret_version,
            secret_generated=result.secret_generated,
            ok=result.ok,
            entries=[EntryResultResponse.from_result(e) for e in result.entries],
        )
