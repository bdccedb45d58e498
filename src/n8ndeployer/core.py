import logging
import os
import subprocess
from typing import List, Optional

import requests
from rich.console import Console

from .constants import DEFAULT_ADMIN_USER, DEFAULT_DOMAIN, DEFAULT_PROJECT_DIR
from .errors import ConfigurationError, DeployerError
from .errors_catalog import actionable_error
from .models import (
    DESTRUCTIVE_ONCE,
    POLICY_ABORT,
    POLICY_CONTINUE,
    POLICY_WARN,
    DeploymentConfig,
    ProvisioningStep,
    ReadinessCheck,
    RunReport,
)
from .services.artifacts import ArtifactService
from .services.certificates import CertificateService
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.filesystem import FileSystemService
from .services.firewall import FirewallService
from .services.packages import PackageService
from .services.readiness import ReadinessPoller
from .services.resolver import ConfigurationResolver
from .services.reverse_proxy import ReverseProxyService
from .services.status import StatusReporter
from .services.step_runner import StepRunner
from .services.summary import SummaryReporter

console = Console()
logger = logging.getLogger("n8ndeployer")


class N8nDeployer:
    REVERSE_PROXY_STEP = "configure_reverse_proxy"
    CERTIFICATE_STEP = "obtain_certificate"
    ARTIFACTS_STEP = "write_artifacts"

    def __init__(
        self,
        domain: str = DEFAULT_DOMAIN,
        admin_user: str = DEFAULT_ADMIN_USER,
        project_dir: str = DEFAULT_PROJECT_DIR,
        verbose: bool = False,
        lenient_readiness: bool = False,
        dry_run: bool = False,
        require_root: bool = True,
    ):
        self.domain = domain
        self.admin_user = admin_user
        self.project_dir = project_dir
        self.verbose = verbose
        self.lenient_readiness = lenient_readiness
        self.dry_run = dry_run
        self.require_root = require_root

        self.config: Optional[DeploymentConfig] = None
        self.report: Optional[RunReport] = None

        self.status = StatusReporter(logger=logger, console=console)
        self.command_runner = CommandRunner(logger=logger)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.resolver = ConfigurationResolver(status=self.status)
        self.package_service = PackageService(logger=logger, run_cmd=self._run_cmd)
        self.firewall_service = FirewallService(logger=logger, run_cmd=self._run_cmd)
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            package_service=self.package_service,
            filesystem_service=self.filesystem_service,
            subprocess_module=subprocess,
            requests_module=requests,
        )
        self.artifact_service = ArtifactService(
            filesystem_service=self.filesystem_service,
            logger=logger,
        )
        self.readiness_poller = ReadinessPoller(
            logger=logger,
            console=console,
            requests_module=requests,
        )
        self.reverse_proxy_service = ReverseProxyService(
            logger=logger,
            run_cmd=self._run_cmd,
            filesystem_service=self.filesystem_service,
        )
        self.certificate_service = CertificateService(logger=logger, run_cmd=self._run_cmd)
        self.step_runner = StepRunner(status=self.status, logger=logger)
        self.summary_reporter = SummaryReporter(console=console)

    def _run_cmd(self, cmd: List[str], **kwargs) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, **kwargs)

    def resolve_configuration(self) -> DeploymentConfig:
        return self.resolver.resolve(
            domain=self.domain,
            admin_user=self.admin_user,
            project_dir=self.project_dir,
        )

    def check_privileges(self):
        if self.require_root and os.geteuid() != 0:
            raise ConfigurationError(actionable_error("not_root"))

    def update_system(self):
        self.package_service.update_system()

    def configure_firewall(self):
        self.firewall_service.configure()

    def install_container_engine(self):
        self.docker_runtime_service.install_engine()

    def write_artifacts(self):
        self.artifact_service.write_project_files(self.config)

    def start_containers(self):
        self.docker_runtime_service.start_services(self.config.project_dir)

    def wait_for_application(self):
        self.readiness_poller.wait(ReadinessCheck())

    def configure_reverse_proxy(self):
        self.reverse_proxy_service.apply_site(
            self.artifact_service.render_site(self.config),
            remove_default=True,
        )

    def obtain_certificate(self):
        self.status.warning(
            f"Make sure your domain {self.config.domain} points to this server's IP address"
        )
        self.certificate_service.obtain(self.config.domain)

    def reload_reverse_proxy(self):
        self.reverse_proxy_service.validate_and_reload()

    def verify_deployment(self):
        problems = []

        if not self.docker_runtime_service.containers_running(self.config.project_dir):
            ps_output = self.docker_runtime_service.status(self.config.project_dir).stdout or ""
            logger.warning("docker compose ps:\n%s", ps_output.strip())
            problems.append("Some Docker containers may not be running properly.")

        if not self.reverse_proxy_service.is_active():
            problems.append("Nginx is not running properly.")

        if problems:
            raise DeployerError(" ".join(problems))

    def build_steps(self) -> List[ProvisioningStep]:
        readiness_policy = POLICY_CONTINUE if self.lenient_readiness else POLICY_ABORT
        return [
            ProvisioningStep(
                "update_system",
                "Updating system and installing prerequisites",
                self.update_system,
                success_message="System updated and prerequisites installed",
            ),
            ProvisioningStep(
                "configure_firewall",
                "Configuring UFW firewall",
                self.configure_firewall,
                success_message="UFW firewall configured and enabled",
            ),
            ProvisioningStep(
                "install_container_engine",
                "Installing Docker Engine and Docker Compose",
                self.install_container_engine,
                success_message="Docker Engine and Docker Compose installed successfully",
            ),
            ProvisioningStep(
                self.ARTIFACTS_STEP,
                "Writing Docker configuration files",
                self.write_artifacts,
                success_message="Docker configuration files created",
            ),
            ProvisioningStep(
                "start_containers",
                "Starting Docker services",
                self.start_containers,
                idempotency=DESTRUCTIVE_ONCE,
                success_message="Docker services started successfully",
            ),
            ProvisioningStep(
                "wait_for_application",
                "Waiting for n8n to be fully ready",
                self.wait_for_application,
                failure_policy=readiness_policy,
                success_message="Service is ready!",
            ),
            ProvisioningStep(
                self.REVERSE_PROXY_STEP,
                "Configuring Nginx reverse proxy",
                self.configure_reverse_proxy,
                failure_policy=POLICY_CONTINUE,
                success_message="Nginx HTTP configuration applied",
            ),
            ProvisioningStep(
                self.CERTIFICATE_STEP,
                "Setting up SSL certificate with Let's Encrypt",
                self.obtain_certificate,
                idempotency=DESTRUCTIVE_ONCE,
                failure_policy=POLICY_WARN,
                requires=(self.REVERSE_PROXY_STEP,),
                success_message="SSL certificate obtained and Nginx configured for HTTPS",
            ),
            ProvisioningStep(
                "reload_reverse_proxy",
                "Validating and reloading Nginx",
                self.reload_reverse_proxy,
                failure_policy=POLICY_CONTINUE,
                requires=(self.REVERSE_PROXY_STEP,),
                success_message="SSL configuration completed",
            ),
            ProvisioningStep(
                "verify_deployment",
                "Performing final verification",
                self.verify_deployment,
                failure_policy=POLICY_WARN,
                success_message="All Docker containers are running and Nginx is active",
            ),
        ]

    def print_plan(self):
        console.print("[bold blue]Dry run: no changes will be made.[/bold blue]")
        for index, step in enumerate(self.build_steps(), start=1):
            requires = f" (requires {', '.join(step.requires)})" if step.requires else ""
            console.print(
                f"  {index:>2}. {step.name} [dim]{step.idempotency}, on failure: "
                f"{step.failure_policy}{requires}[/dim]"
            )

        console.print(f"\n[bold]{self.artifact_service.compose_path(self.config)}[/bold]")
        console.print(self.artifact_service.render_compose(), markup=False, highlight=False)
        console.print(f"[bold]{self.reverse_proxy_service.site_path}[/bold]")
        console.print(
            self.artifact_service.render_site(self.config), markup=False, highlight=False
        )

    def run(self) -> int:
        exit_code = 1

        try:
            self.status.info(f"Starting n8n deployment for {self.domain}")
            self.status.info(
                "This will set up a production-ready n8n instance with PostgreSQL and HTTPS"
            )

            self.config = self.resolve_configuration()

            if self.dry_run:
                self.print_plan()
                exit_code = 0
                return exit_code

            self.check_privileges()

            self.report = self.step_runner.run(self.build_steps())
            self.summary_reporter.report(
                self.config,
                self.report,
                credentials_written=self.report.succeeded(self.ARTIFACTS_STEP),
                https_enabled=self.report.succeeded(self.CERTIFICATE_STEP),
            )
            exit_code = self.report.exit_code
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return exit_code
        except DeployerError as exc:
            self.status.error(str(exc))
            return exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return exit_code
