"""Docker runtime services for n8n-deployer."""

import subprocess
import time
from typing import Callable, List, Optional

import requests

from n8ndeployer.constants import (
    CONTAINER_SETTLE_SECONDS,
    DIR_MODE,
    DOCKER_APT_REPO,
    DOCKER_GPG_URL,
    DOCKER_KEYRING,
    DOCKER_KEYRING_DIR,
    DOCKER_PACKAGES,
    DOCKER_SOURCES_LIST,
    FILE_MODE,
    LEGACY_DOCKER_PACKAGES,
)
from n8ndeployer.errors import DeployerError, ToolInvocationError
from n8ndeployer.errors_catalog import actionable_error


class DockerRuntimeService:
    """Installs Docker Engine and manages the compose project lifecycle."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        package_service,
        filesystem_service,
        subprocess_module=subprocess,
        requests_module=requests,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.package_service = package_service
        self.filesystem_service = filesystem_service
        self.subprocess = subprocess_module
        self.requests = requests_module
        self._compose_cmd: Optional[List[str]] = None

    def get_docker_compose_cmd(self) -> List[str]:
        try:
            self.subprocess.run(["docker", "compose", "version"], check=True, capture_output=True)
            return ["docker", "compose"]
        except (self.subprocess.CalledProcessError, FileNotFoundError):
            try:
                self.subprocess.run(["docker-compose", "--version"], check=True, capture_output=True)
                return ["docker-compose"]
            except (self.subprocess.CalledProcessError, FileNotFoundError):
                raise ToolInvocationError(
                    "Docker Compose is not available. Install Docker Compose v2 (`docker compose`) "
                    "or v1 (`docker-compose`) and try again."
                )

    @property
    def compose_cmd(self) -> List[str]:
        if self._compose_cmd is None:
            self._compose_cmd = self.get_docker_compose_cmd()
        return self._compose_cmd

    def install_signing_key(self):
        self.filesystem_service.ensure_dir(DOCKER_KEYRING_DIR, mode=DIR_MODE)
        self.logger.info("Fetching Docker repository key from %s", DOCKER_GPG_URL)

        try:
            response = self.requests.get(DOCKER_GPG_URL, timeout=30)
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise DeployerError(f"Could not download the Docker signing key: {exc}") from exc

        self.run_cmd(
            ["gpg", "--batch", "--yes", "--dearmor", "-o", DOCKER_KEYRING],
            input_text=response.text,
        )
        self.filesystem_service.set_permissions(DOCKER_KEYRING, FILE_MODE)

    def build_apt_source(self, architecture: str, codename: str) -> str:
        return (
            f"deb [arch={architecture} signed-by={DOCKER_KEYRING}] "
            f"{DOCKER_APT_REPO} {codename} stable\n"
        )

    def configure_repository(self):
        architecture = self.run_cmd(
            ["dpkg", "--print-architecture"], capture_output=True
        ).stdout.strip()
        codename = self.run_cmd(["lsb_release", "-cs"], capture_output=True).stdout.strip()
        if not architecture or not codename:
            raise DeployerError("Could not determine the host architecture or release codename.")

        self.filesystem_service.write_text(
            DOCKER_SOURCES_LIST,
            self.build_apt_source(architecture, codename),
            mode=FILE_MODE,
        )

    def install_engine(self):
        self.package_service.remove_if_present(LEGACY_DOCKER_PACKAGES)
        self.install_signing_key()
        self.configure_repository()

        self.package_service.update_index()
        self.package_service.install(DOCKER_PACKAGES)

        self.run_cmd(["systemctl", "start", "docker"])
        self.run_cmd(["systemctl", "enable", "docker"])

        self.validate_environment()

    def validate_environment(self):
        self.console.print("[blue]Validating Docker environment...[/blue]")
        self.run_cmd(["docker", "--version"], capture_output=True)
        self.run_cmd(self.compose_cmd + ["version"], capture_output=True)
        self.console.print("[green]Docker is available.[/green]")

    def start_services(self, project_dir: str, settle_seconds: float = CONTAINER_SETTLE_SECONDS):
        self.run_cmd(self.compose_cmd + ["up", "-d"], cwd=project_dir)

        self.console.print("[yellow]Waiting for database to be ready...[/yellow]")
        time.sleep(settle_seconds)

        if not self.containers_running(project_dir):
            self.dump_logs(project_dir)
            raise ToolInvocationError(
                actionable_error("containers_not_running", project_dir=project_dir)
            )

    def containers_running(self, project_dir: str) -> bool:
        result = self.status(project_dir)
        return result.returncode == 0 and "Up" in (result.stdout or "")

    def status(self, project_dir: str) -> subprocess.CompletedProcess:
        return self.run_cmd(
            self.compose_cmd + ["ps"],
            check=False,
            capture_output=True,
            cwd=project_dir,
        )

    def dump_logs(self, project_dir: str):
        result = self.run_cmd(
            self.compose_cmd + ["logs", "--no-color"],
            check=False,
            capture_output=True,
            cwd=project_dir,
        )
        output = (result.stdout or "").strip()
        if output:
            self.logger.error("Recent container logs:\n%s", output)
