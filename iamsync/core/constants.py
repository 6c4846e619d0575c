"""Core constants: resource names and key formats shared across layers."""

# Secrets Manager name of the shared one-time password.
DEFAULT_SECRET_ID = "initial-iam-password"

# Characters never used in generated passwords.
DEFAULT_EXCLUDED_CHARS = '"@/\\'

# Parameter path under which a principal's contact email is registered.
METADATA_PATH_PREFIX = "/provisioned-users"

# Redis pub/sub channel carrying creation events.
REDIS_EVENT_CHANNEL = "principal_created"

# EventBridge rule: CloudTrail CreateUser calls on IAM.
EVENTBRIDGE_SOURCE = "aws.iam"
EVENTBRIDGE_DETAIL_TYPE = "AWS API Call via CloudTrail"
CLOUDTRAIL_EVENT_SOURCE = "iam.amazonaws.com"
CLOUDTRAIL_EVENT_NAME = "CreateUser"


def metadata_path(principal_name: str) -> str:
    """Parameter path of the contact email for principal_name."""
    return f"{METADATA_PATH_PREFIX}/{principal_name}/email"
