"""certbot integration for n8n-deployer."""

from typing import Callable, List

from n8ndeployer.errors import CertificateAcquisitionError, ToolInvocationError
from n8ndeployer.errors_catalog import actionable_error


class CertificateService:
    """Requests a Let's Encrypt certificate through the certbot nginx plugin.

    certbot edits the HTTP-only site in place, adding the TLS server block and
    the HTTP to HTTPS redirect.
    """

    def __init__(self, logger, run_cmd: Callable, certbot_bin: str = "certbot"):
        self.logger = logger
        self.run_cmd = run_cmd
        self.certbot_bin = certbot_bin

    def build_command(self, domain: str) -> List[str]:
        return [
            self.certbot_bin,
            "--nginx",
            "-d",
            domain,
            "--non-interactive",
            "--agree-tos",
            "--register-unsafely-without-email",
            "--redirect",
        ]

    def obtain(self, domain: str):
        try:
            self.run_cmd(self.build_command(domain), capture_output=True)
        except ToolInvocationError as exc:
            self.logger.debug("certbot failure details: %s", exc)
            raise CertificateAcquisitionError(
                actionable_error("certificate_failed", domain=domain)
            ) from exc
