"""ufw firewall service for n8n-deployer."""

from typing import Callable, Iterable

from n8ndeployer.constants import FIREWALL_ALLOWED_PROFILES


class FirewallService:
    """Resets ufw to deny-incoming/allow-outgoing and opens named profiles."""

    def __init__(self, logger, run_cmd: Callable, ufw_bin: str = "ufw"):
        self.logger = logger
        self.run_cmd = run_cmd
        self.ufw_bin = ufw_bin

    def configure(self, allowed_profiles: Iterable[str] = FIREWALL_ALLOWED_PROFILES):
        ufw = self.ufw_bin

        self.run_cmd([ufw, "--force", "reset"])
        self.run_cmd([ufw, "default", "deny", "incoming"])
        self.run_cmd([ufw, "default", "allow", "outgoing"])

        for profile in allowed_profiles:
            self.logger.info("Allowing firewall profile: %s", profile)
            self.run_cmd([ufw, "allow", profile])

        self.run_cmd([ufw, "--force", "enable"])
