"""Package manager service for n8n-deployer."""

from typing import Callable, Iterable, List

from n8ndeployer.constants import SYSTEM_PACKAGES

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageService:
    """Non-interactive apt-get operations."""

    def __init__(self, logger, run_cmd: Callable):
        self.logger = logger
        self.run_cmd = run_cmd

    def update_index(self):
        self.run_cmd(["apt-get", "update", "-y"], env=APT_ENV)

    def upgrade(self):
        self.run_cmd(["apt-get", "upgrade", "-y"], env=APT_ENV)

    def install(self, packages: Iterable[str]):
        package_list: List[str] = list(packages)
        self.logger.info("Installing packages: %s", ", ".join(package_list))
        self.run_cmd(["apt-get", "install", "-y"] + package_list, env=APT_ENV)

    def remove_if_present(self, packages: Iterable[str]):
        """Best-effort removal; missing packages are not an error."""
        result = self.run_cmd(
            ["apt-get", "remove", "-y"] + list(packages),
            check=False,
            capture_output=True,
            env=APT_ENV,
        )
        if result.returncode != 0:
            self.logger.debug("Legacy package removal skipped (exit %s).", result.returncode)

    def update_system(self):
        self.update_index()
        self.upgrade()
        self.install(SYSTEM_PACKAGES)
