import base64

import pytest

from n8ndeployer.errors import ConfigurationError
from n8ndeployer.services.resolver import ConfigurationResolver


class RecordingStatus:
    def __init__(self):
        self.warnings = []

    def warning(self, message):
        self.warnings.append(message)


def test_resolve_builds_config_with_two_distinct_secrets():
    resolver = ConfigurationResolver(status=RecordingStatus())

    config = resolver.resolve("demo.example.org", "ops", "/srv/n8n")

    assert config.domain == "demo.example.org"
    assert config.admin_user == "ops"
    assert config.project_dir == "/srv/n8n"
    assert config.db_password != config.app_password
    assert len(base64.b64decode(config.db_password)) == 32
    assert len(base64.b64decode(config.app_password)) == 24


def test_resolving_twice_rotates_secrets():
    resolver = ConfigurationResolver(status=RecordingStatus())

    first = resolver.resolve("demo.example.org", "ops", "/srv/n8n")
    second = resolver.resolve("demo.example.org", "ops", "/srv/n8n")

    assert first.db_password != second.db_password
    assert first.app_password != second.app_password


def test_secrets_come_from_token_source():
    resolver = ConfigurationResolver(status=RecordingStatus(), token_bytes=lambda n: b"\x00" * n)

    config = resolver.resolve("demo.example.org", "ops", "/srv/n8n")

    assert config.db_password == base64.b64encode(b"\x00" * 32).decode("ascii")
    assert config.app_password == base64.b64encode(b"\x00" * 24).decode("ascii")


def test_placeholder_domain_is_rejected():
    calls = []
    resolver = ConfigurationResolver(
        status=RecordingStatus(),
        token_bytes=lambda n: calls.append(n) or b"x" * n,
    )

    with pytest.raises(ConfigurationError, match="placeholder"):
        resolver.resolve("your-domain.com", "ops", "/srv/n8n")

    assert calls == []


@pytest.mark.parametrize(
    "domain",
    ["", "localhost", "demo example.org", "demo.example.org;\nlisten 8080", "-bad.example.org"],
)
def test_invalid_domains_are_rejected(domain):
    resolver = ConfigurationResolver(status=RecordingStatus())

    with pytest.raises(ConfigurationError):
        resolver.resolve(domain, "ops", "/srv/n8n")


@pytest.mark.parametrize("admin_user", ["", "two words", "a=b"])
def test_invalid_admin_users_are_rejected(admin_user):
    resolver = ConfigurationResolver(status=RecordingStatus())

    with pytest.raises(ConfigurationError, match="Invalid admin username"):
        resolver.resolve("demo.example.org", admin_user, "/srv/n8n")


def test_default_admin_user_only_warns():
    status = RecordingStatus()
    resolver = ConfigurationResolver(status=status)

    config = resolver.resolve("demo.example.org", "admin", "/srv/n8n")

    assert config.admin_user == "admin"
    assert len(status.warnings) == 1
    assert "admin" in status.warnings[0]


def test_config_repr_hides_secrets():
    resolver = ConfigurationResolver(status=RecordingStatus())

    config = resolver.resolve("demo.example.org", "ops", "/srv/n8n")

    assert config.db_password not in repr(config)
    assert config.app_password not in repr(config)
