import os

from rally_roster.models.role_models import Role


def _get_resource_by_env_var(env_var: str) -> str:
    table_name = os.environ.get(env_var)
    if not table_name:
        raise ValueError(f"Missing environment variable: {env_var}")
    return table_name


def get_aws_region() -> str:
    return _get_resource_by_env_var("AWS_REGION")


def get_kids_table_name() -> str:
    return _get_resource_by_env_var("KIDS_TABLE_NAME")


def get_user_profile_table_name() -> str:
    return _get_resource_by_env_var("USER_PROFILE_TABLE_NAME")


def get_secrets_table_name() -> str:
    return _get_resource_by_env_var("SECRETS_TABLE_NAME")


def get_fallback_role() -> Role:
    """
    Role given to users whose role cannot be determined. Defaults to guest.
    admin is never accepted here.
    """
    value = os.environ.get("FALLBACK_ROLE", Role.GUEST.value)
    role = Role.parse(value)
    if role is None:
        raise ValueError(f"Invalid FALLBACK_ROLE: {value}")
    if role == Role.ADMIN:
        raise ValueError("FALLBACK_ROLE must not be admin")
    return role
