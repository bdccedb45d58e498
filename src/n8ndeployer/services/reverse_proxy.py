"""nginx reverse proxy service for n8n-deployer."""

import os
from typing import Callable

from n8ndeployer.constants import (
    FILE_MODE,
    NGINX_SITE_NAME,
    NGINX_SITES_AVAILABLE,
    NGINX_SITES_ENABLED,
)
from n8ndeployer.errors import ReverseProxyValidationError
from n8ndeployer.errors_catalog import actionable_error


class ReverseProxyService:
    """Manages the n8n virtual host under sites-available/sites-enabled.

    Configuration is always checked with ``nginx -t`` before nginx is
    reloaded. A rejected site file is rolled back so the running nginx keeps
    serving its last valid configuration.
    """

    def __init__(
        self,
        logger,
        run_cmd: Callable,
        filesystem_service,
        sites_available: str = NGINX_SITES_AVAILABLE,
        sites_enabled: str = NGINX_SITES_ENABLED,
        site_name: str = NGINX_SITE_NAME,
        nginx_bin: str = "nginx",
    ):
        self.logger = logger
        self.run_cmd = run_cmd
        self.filesystem_service = filesystem_service
        self.sites_available = sites_available
        self.sites_enabled = sites_enabled
        self.site_name = site_name
        self.nginx_bin = nginx_bin

    @property
    def site_path(self) -> str:
        return os.path.join(self.sites_available, self.site_name)

    @property
    def enabled_path(self) -> str:
        return os.path.join(self.sites_enabled, self.site_name)

    @property
    def default_site_path(self) -> str:
        return os.path.join(self.sites_enabled, "default")

    def remove_default_site(self):
        self.filesystem_service.remove_file(self.default_site_path)

    def enable_site(self):
        self.filesystem_service.symlink(self.site_path, self.enabled_path)

    def disable_site(self):
        self.filesystem_service.remove_file(self.enabled_path)

    def test_config(self):
        result = self.run_cmd([self.nginx_bin, "-t"], check=False, capture_output=True)
        if result.returncode != 0:
            details = (result.stderr or result.stdout or "no output").strip()
            raise ReverseProxyValidationError(
                actionable_error("nginx_validation_failed", details=details)
            )
        return result

    def reload(self):
        self.run_cmd(["systemctl", "reload", "nginx"])

    def validate_and_reload(self):
        self.test_config()
        self.reload()

    def apply_site(self, content: str, remove_default: bool = False):
        """Install ``content`` as the n8n site, validate it and reload nginx.

        With ``remove_default`` the distribution's default site is disabled in
        the same change, and put back if validation fails.
        """
        previous = self.filesystem_service.read_text(self.site_path)
        was_enabled = os.path.islink(self.enabled_path)

        default_link = None
        default_content = None
        if remove_default:
            if os.path.islink(self.default_site_path):
                default_link = os.readlink(self.default_site_path)
            else:
                default_content = self.filesystem_service.read_text(self.default_site_path)
            self.remove_default_site()

        self.filesystem_service.write_text(self.site_path, content, mode=FILE_MODE)
        self.enable_site()

        try:
            self.test_config()
        except ReverseProxyValidationError:
            self.logger.warning("Rolling back %s after failed validation.", self.site_path)
            if previous is None:
                self.filesystem_service.remove_file(self.site_path)
            else:
                self.filesystem_service.write_text(self.site_path, previous, mode=FILE_MODE)
            if previous is None or not was_enabled:
                self.disable_site()
            self._restore_default_site(default_link, default_content)
            raise

        self.reload()

    def _restore_default_site(self, link_target, content):
        if link_target is not None:
            self.filesystem_service.symlink(link_target, self.default_site_path)
        elif content is not None:
            self.filesystem_service.write_text(self.default_site_path, content, mode=FILE_MODE)

    def is_active(self) -> bool:
        result = self.run_cmd(["systemctl", "is-active", "--quiet", "nginx"], check=False)
        return result.returncode == 0
