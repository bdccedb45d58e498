"""Configuration resolution and secret generation for n8n-deployer."""

import base64
import re
import secrets
from typing import Callable

from n8ndeployer.constants import (
    APP_PASSWORD_BYTES,
    DB_PASSWORD_BYTES,
    DEFAULT_ADMIN_USER,
    DEFAULT_DOMAIN,
)
from n8ndeployer.errors import ConfigurationError
from n8ndeployer.errors_catalog import actionable_error
from n8ndeployer.models import DeploymentConfig


class ConfigurationResolver:
    """Builds a validated DeploymentConfig or fails before anything is changed."""

    HOSTNAME_LABEL = re.compile(r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)")

    def __init__(self, status, token_bytes: Callable[[int], bytes] = secrets.token_bytes):
        self.status = status
        self.token_bytes = token_bytes

    def generate_secret(self, num_bytes: int) -> str:
        return base64.b64encode(self.token_bytes(num_bytes)).decode("ascii")

    def resolve(self, domain: str, admin_user: str, project_dir: str) -> DeploymentConfig:
        domain = (domain or "").strip()
        admin_user = (admin_user or "").strip()

        self.validate(domain, admin_user)

        return DeploymentConfig(
            domain=domain,
            admin_user=admin_user,
            project_dir=project_dir,
            db_password=self.generate_secret(DB_PASSWORD_BYTES),
            app_password=self.generate_secret(APP_PASSWORD_BYTES),
        )

    def validate(self, domain: str, admin_user: str):
        if domain == DEFAULT_DOMAIN:
            raise ConfigurationError(actionable_error("placeholder_domain", domain=DEFAULT_DOMAIN))

        if not self.is_valid_hostname(domain):
            raise ConfigurationError(actionable_error("invalid_domain", domain=domain))

        if not admin_user or any(char.isspace() or char == "=" for char in admin_user):
            raise ConfigurationError(actionable_error("invalid_admin_user", user=admin_user))

        if admin_user == DEFAULT_ADMIN_USER:
            self.status.warning(
                f"Using default username '{DEFAULT_ADMIN_USER}'. "
                "Consider changing the admin user for better security."
            )

    def is_valid_hostname(self, domain: str) -> bool:
        if not domain or len(domain) > 253:
            return False
        labels = domain.rstrip(".").split(".")
        if len(labels) < 2:
            return False
        return all(self.HOSTNAME_LABEL.fullmatch(label) for label in labels)
