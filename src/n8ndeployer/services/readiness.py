"""HTTP readiness polling for n8n-deployer."""

import time

import requests

from n8ndeployer.constants import READINESS_PROBE_TIMEOUT
from n8ndeployer.errors import ReadinessTimeoutError
from n8ndeployer.errors_catalog import actionable_error
from n8ndeployer.models import ReadinessCheck


class ReadinessPoller:
    """Blocks until a URL answers with an accepted status or attempts run out.

    Probes are plain GET requests that do not follow redirects, so a login
    redirect (302) or an authentication challenge (401) both count as a live
    service. The interval between attempts is fixed.
    """

    def __init__(self, logger, console, requests_module=requests, probe_timeout=READINESS_PROBE_TIMEOUT):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.probe_timeout = probe_timeout

    def probe(self, url: str):
        try:
            response = self.requests.get(
                url,
                allow_redirects=False,
                timeout=self.probe_timeout,
                stream=True,
            )
        except self.requests.RequestException as exc:
            self.logger.debug("Readiness probe to %s failed: %s", url, exc)
            return None

        try:
            return response.status_code
        finally:
            response.close()

    def wait(self, check: ReadinessCheck) -> int:
        """Return the number of attempts needed for ``check.url`` to become ready."""
        self.logger.info("Waiting for service at %s to be ready...", check.url)

        for attempt in range(1, check.max_attempts + 1):
            status_code = self.probe(check.url)
            if status_code in check.accepted_status_codes:
                if attempt > 1:
                    self.console.print()
                self.logger.info(
                    "Service at %s answered %s after %s attempt(s).", check.url, status_code, attempt
                )
                return attempt

            self.logger.debug(
                "Attempt %s/%s: %s not ready (status %s).",
                attempt,
                check.max_attempts,
                check.url,
                status_code,
            )
            if attempt < check.max_attempts:
                self.console.print(".", end="")
                time.sleep(check.interval_seconds)

        self.console.print()
        raise ReadinessTimeoutError(
            actionable_error("readiness_timeout", url=check.url, attempts=str(check.max_attempts))
        )
