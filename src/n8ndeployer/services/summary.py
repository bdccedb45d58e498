"""Final deployment summary."""

import os

from rich.markup import escape

from n8ndeployer.constants import ENV_FILE_NAME
from n8ndeployer.models import DeploymentConfig, RunReport


class SummaryReporter:
    """Prints the closing status block with credentials and management commands."""

    def __init__(self, console):
        self.console = console

    def report(
        self,
        config: DeploymentConfig,
        run_report: RunReport,
        credentials_written: bool,
        https_enabled: bool,
    ):
        console = self.console
        console.print()

        if run_report.aborted:
            console.print(
                f"[bold red]=== n8n deployment failed at step '{run_report.aborted_at}' ===[/bold red]"
            )
        elif run_report.failed_steps:
            failed = ", ".join(run_report.failed_steps)
            console.print(f"[bold red]=== n8n deployment finished with errors ({failed}) ===[/bold red]")
        elif run_report.warnings:
            console.print("[bold yellow]=== n8n deployment completed with warnings ===[/bold yellow]")
        else:
            console.print("[bold green]=== n8n Deployment Complete ===[/bold green]")

        for outcome in run_report.warnings:
            detail = f": {outcome.error}" if outcome.error else ""
            console.print(f"[yellow]- {outcome.name} ({outcome.status}){escape(detail)}[/yellow]")

        if credentials_written:
            self._print_access(config, https_enabled)

        project_dir = escape(config.project_dir)
        console.print()
        console.print("[blue]Management Commands:[/blue]")
        console.print(f"- View logs: cd {project_dir} && docker compose logs -f")
        console.print(f"- Restart services: cd {project_dir} && docker compose restart")
        console.print(
            f"- Update n8n: cd {project_dir} && docker compose pull && docker compose up -d"
        )
        console.print()

        if run_report.exit_code == 0:
            console.print("[green]Deployment completed successfully![/green]")

    def _print_access(self, config: DeploymentConfig, https_enabled: bool):
        console = self.console
        scheme = "https" if https_enabled else "http"
        env_file = os.path.join(config.project_dir, ENV_FILE_NAME)

        console.print()
        console.print("[blue]Access Information:[/blue]")
        console.print(f"URL: [green]{scheme}://{escape(config.domain)}[/green]")
        console.print(f"Username: [green]{escape(config.admin_user)}[/green]")
        console.print(f"Password: [green]{escape(config.app_password)}[/green]")
        console.print()
        console.print("[yellow]Important Notes:[/yellow]")
        console.print(f"- Save your credentials securely - they are also stored in {escape(env_file)}")
        console.print("- Your data is persisted in Docker volumes")
        if https_enabled:
            console.print("- SSL certificate will auto-renew via systemd timer")
        console.print("- Firewall (UFW) is active - only SSH, HTTP, and HTTPS are allowed")

