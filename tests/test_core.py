import subprocess
from pathlib import Path

import pytest
import yaml

import n8ndeployer.core as core_module
import n8ndeployer.services.docker_runtime as docker_runtime_module
from n8ndeployer.core import N8nDeployer
from n8ndeployer.errors import ReadinessTimeoutError, ToolInvocationError
from n8ndeployer.models import DESTRUCTIVE_ONCE, POLICY_ABORT, POLICY_CONTINUE, POLICY_WARN


class FakeCommandRunner:
    """Pretends every tool succeeds unless its first two tokens are listed in ``failing``."""

    def __init__(self, failing=(), returncode=1):
        self.failing = set(failing)
        self.returncode = returncode
        self.calls = []

    def run(self, cmd, check=True, capture_output=False, **kwargs):
        self.calls.append(list(cmd))
        if tuple(cmd[:2]) in self.failing:
            if check:
                raise ToolInvocationError(
                    f"Command failed ({self.returncode}): {' '.join(cmd)}",
                    returncode=self.returncode,
                )
            return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr="emulated failure")
        stdout = "n8n-docker-n8n-1   Up 5 seconds\n" if cmd[-1] == "ps" else ""
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

    def ran(self, prefix):
        return any(call[: len(prefix)] == prefix for call in self.calls)

    def index_of(self, prefix):
        for index, call in enumerate(self.calls):
            if call[: len(prefix)] == prefix:
                return index
        raise AssertionError(f"{prefix} was not executed")


def build_deployer(tmp_path, monkeypatch, failing=(), returncode=1, ready=True, **kwargs):
    options = {
        "domain": "demo.example.org",
        "admin_user": "ops",
        "project_dir": str(tmp_path / "n8n-docker"),
        "require_root": False,
    }
    options.update(kwargs)
    deployer = N8nDeployer(**options)

    runner = FakeCommandRunner(failing=failing, returncode=returncode)
    deployer.command_runner = runner
    deployer.docker_runtime_service._compose_cmd = ["docker", "compose"]
    deployer.reverse_proxy_service.sites_available = str(tmp_path / "sites-available")
    deployer.reverse_proxy_service.sites_enabled = str(tmp_path / "sites-enabled")
    monkeypatch.setattr(deployer.docker_runtime_service, "install_engine", lambda: None)
    monkeypatch.setattr(docker_runtime_module.time, "sleep", lambda *_args, **_kwargs: None)

    def fake_wait(check):
        if not ready:
            raise ReadinessTimeoutError("Service at http://127.0.0.1:5678 did not become ready")
        return 1

    monkeypatch.setattr(deployer.readiness_poller, "wait", fake_wait)
    return deployer, runner


def test_end_to_end_writes_expected_artifacts(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch)

    assert deployer.run() == 0

    env_content = (tmp_path / "n8n-docker" / ".env").read_text(encoding="utf-8")
    assert "N8N_HOST=demo.example.org\n" in env_content
    assert "N8N_BASIC_AUTH_USER=ops\n" in env_content
    assert f"POSTGRES_PASSWORD={deployer.config.db_password}\n" in env_content

    compose = yaml.safe_load((tmp_path / "n8n-docker" / "docker-compose.yml").read_text(encoding="utf-8"))
    assert compose["services"]["n8n"]["ports"] == ["127.0.0.1:5678:5678"]
    assert "ports" not in compose["services"]["postgres"]

    site = (tmp_path / "sites-available" / "n8n").read_text(encoding="utf-8")
    assert "server_name demo.example.org;" in site
    assert "listen 80;" in site

    assert runner.index_of(["ufw", "--force", "reset"]) < runner.index_of(["docker", "compose", "up"])
    assert runner.index_of(["nginx", "-t"]) < runner.index_of(["systemctl", "reload", "nginx"])
    assert runner.index_of(["systemctl", "reload", "nginx"]) < runner.index_of(["certbot"])
    assert deployer.report.succeeded("obtain_certificate")


def test_placeholder_domain_aborts_before_any_step(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, domain="your-domain.com")
    monkeypatch.setattr(
        deployer.step_runner,
        "run",
        lambda *_args, **_kwargs: pytest.fail("no step may run with the placeholder domain"),
    )

    assert deployer.run() == 1
    assert runner.calls == []
    assert not (tmp_path / "n8n-docker").exists()


def test_non_root_user_is_rejected(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, require_root=True)
    monkeypatch.setattr(core_module.os, "geteuid", lambda: 1000)

    assert deployer.run() == 1
    assert runner.calls == []


def test_firewall_failure_stops_the_run(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, failing=[("ufw", "default")])

    assert deployer.run() == 1
    assert deployer.report.aborted_at == "configure_firewall"
    assert not runner.ran(["docker"])
    assert not (tmp_path / "n8n-docker").exists()


def test_failing_tool_exit_status_becomes_the_run_exit_code(tmp_path, monkeypatch):
    deployer, _ = build_deployer(tmp_path, monkeypatch, failing=[("ufw", "default")], returncode=3)

    assert deployer.run() == 3
    assert deployer.report.aborted_at == "configure_firewall"


def test_readiness_timeout_aborts_by_default(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, ready=False)

    assert deployer.run() == 1
    assert deployer.report.aborted_at == "wait_for_application"
    assert not runner.ran(["nginx"])
    assert not runner.ran(["certbot"])


def test_lenient_readiness_keeps_going_but_fails_the_run(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, ready=False, lenient_readiness=True)

    assert deployer.run() == 1
    assert not deployer.report.aborted
    assert deployer.report.failed_steps == ["wait_for_application"]
    assert runner.ran(["certbot"])


def test_certificate_failure_is_only_a_warning(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, failing=[("certbot", "--nginx")])

    assert deployer.run() == 0
    statuses = {outcome.name: outcome.status for outcome in deployer.report.outcomes}
    assert statuses["obtain_certificate"] == "warning"
    assert statuses["reload_reverse_proxy"] == "success"
    assert statuses["verify_deployment"] == "success"


def test_invalid_nginx_config_blocks_reload_and_certificate(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, failing=[("nginx", "-t")])

    assert deployer.run() == 1
    assert not runner.ran(["systemctl", "reload", "nginx"])
    assert not runner.ran(["certbot"])
    statuses = {outcome.name: outcome.status for outcome in deployer.report.outcomes}
    assert statuses["configure_reverse_proxy"] == "failed"
    assert statuses["obtain_certificate"] == "skipped"
    assert statuses["reload_reverse_proxy"] == "skipped"
    assert not Path(deployer.reverse_proxy_service.site_path).exists()


def test_invalid_nginx_config_keeps_the_default_site_enabled(tmp_path, monkeypatch):
    deployer, _ = build_deployer(tmp_path, monkeypatch, failing=[("nginx", "-t")])
    (tmp_path / "sites-available").mkdir()
    (tmp_path / "sites-enabled").mkdir()
    (tmp_path / "sites-available" / "default").write_text("server {}\n", encoding="utf-8")
    default_link = tmp_path / "sites-enabled" / "default"
    default_link.symlink_to(tmp_path / "sites-available" / "default")

    assert deployer.run() == 1
    assert default_link.is_symlink()
    assert sorted(p.name for p in (tmp_path / "sites-enabled").iterdir()) == ["default"]


def test_inactive_nginx_is_reported_by_verification(tmp_path, monkeypatch):
    deployer, _ = build_deployer(tmp_path, monkeypatch, failing=[("systemctl", "is-active")])

    assert deployer.run() == 0
    assert deployer.report.outcomes[-1].name == "verify_deployment"
    assert deployer.report.outcomes[-1].status == "warning"
    assert "Nginx is not running" in str(deployer.report.outcomes[-1].error)


def test_rerun_rotates_credentials(tmp_path, monkeypatch):
    first, _ = build_deployer(tmp_path, monkeypatch)
    assert first.run() == 0
    first_env = (tmp_path / "n8n-docker" / ".env").read_text(encoding="utf-8")
    first_compose = (tmp_path / "n8n-docker" / "docker-compose.yml").read_text(encoding="utf-8")

    second, _ = build_deployer(tmp_path, monkeypatch)
    assert second.run() == 0
    second_env = (tmp_path / "n8n-docker" / ".env").read_text(encoding="utf-8")
    second_compose = (tmp_path / "n8n-docker" / "docker-compose.yml").read_text(encoding="utf-8")

    assert first.config.db_password != second.config.db_password
    assert first_env != second_env
    assert first_compose == second_compose


def test_dry_run_changes_nothing(tmp_path, monkeypatch):
    deployer, runner = build_deployer(tmp_path, monkeypatch, dry_run=True, require_root=True)
    monkeypatch.setattr(core_module.os, "geteuid", lambda: 1000)

    assert deployer.run() == 0
    assert runner.calls == []
    assert deployer.report is None
    assert not (tmp_path / "n8n-docker").exists()


def test_build_steps_follow_the_provisioning_order(tmp_path, monkeypatch):
    deployer, _ = build_deployer(tmp_path, monkeypatch)

    steps = deployer.build_steps()

    assert [step.name for step in steps] == [
        "update_system",
        "configure_firewall",
        "install_container_engine",
        "write_artifacts",
        "start_containers",
        "wait_for_application",
        "configure_reverse_proxy",
        "obtain_certificate",
        "reload_reverse_proxy",
        "verify_deployment",
    ]
    by_name = {step.name: step for step in steps}
    assert by_name["start_containers"].idempotency == DESTRUCTIVE_ONCE
    assert by_name["wait_for_application"].failure_policy == POLICY_ABORT
    assert by_name["configure_reverse_proxy"].failure_policy == POLICY_CONTINUE
    assert by_name["obtain_certificate"].failure_policy == POLICY_WARN
    assert by_name["obtain_certificate"].requires == ("configure_reverse_proxy",)
