"""Built-in desired state: two groups with read-only rules and one principal each."""

from iamsync.application.dtos.provisioning import DesiredPrincipal, GroupPolicy
from iamsync.core.config import Settings
from iamsync.domain.entities import PermissionRule

STORAGE_GROUP = "S3UserGroup"
COMPUTE_GROUP = "EC2UserGroup"
COMPUTE_USER = "ec2User"
STORAGE_USER = "s3User"


def default_groups() -> list[GroupPolicy]:
    return [
        GroupPolicy(
            group_name=STORAGE_GROUP,
            rules=(PermissionRule(actions=("s3:Get*", "s3:List*"), resources=("*",)),),
        ),
        GroupPolicy(
            group_name=COMPUTE_GROUP,
            rules=(PermissionRule(actions=("ec2:Describe*", "ec2:Get*"), resources=("*",)),),
        ),
    ]


def default_stack(settings: Settings) -> tuple[list[DesiredPrincipal], list[GroupPolicy]]:
    """Return (desired principals, groups); emails come from settings."""
    desired = [
        DesiredPrincipal(
            principal_name=COMPUTE_USER,
            group_name=COMPUTE_GROUP,
            contact_email=settings.web_app_user_email,
        ),
        DesiredPrincipal(
            principal_name=STORAGE_USER,
            group_name=STORAGE_GROUP,
            contact_email=settings.storage_user_email,
        ),
    ]
    return desired, default_groups()
