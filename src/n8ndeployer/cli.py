import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    DEFAULT_ADMIN_USER,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DOMAIN,
    DEFAULT_PROJECT_DIR,
)
from .core import DeployerError, N8nDeployer
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--domain", required=False, help="Public host name n8n will be served on.")
@click.option("--admin-user", required=False, help="n8n basic-auth administrator username.")
@click.option(
    "--project-dir",
    required=False,
    type=click.Path(),
    help=f"Directory for .env and docker-compose.yml (default: {DEFAULT_PROJECT_DIR}).",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--lenient-readiness",
    is_flag=True,
    default=None,
    help="Keep going when n8n does not become ready instead of aborting.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Validate configuration and print the deployment plan without changing the host.",
)
def main(
    config,
    domain,
    admin_user,
    project_dir,
    verbose,
    log_file,
    lenient_readiness,
    dry_run,
):
    """Provision this host with n8n, PostgreSQL, nginx and a Let's Encrypt certificate."""
    logger = logging.getLogger("n8ndeployer")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except DeployerError as exc:
        raise click.ClickException(str(exc)) from exc

    domain = _resolve_option(domain, config_values, "domain", default=DEFAULT_DOMAIN)
    admin_user = _resolve_option(
        admin_user, config_values, "admin_user", default=DEFAULT_ADMIN_USER
    )
    project_dir = _resolve_option(
        project_dir, config_values, "project_dir", default=DEFAULT_PROJECT_DIR
    )
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    lenient_readiness = bool(
        _resolve_option(lenient_readiness, config_values, "lenient_readiness", default=False)
    )
    dry_run = bool(_resolve_option(dry_run, config_values, "dry_run", default=False))

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        deployer = N8nDeployer(
            domain=str(domain),
            admin_user=str(admin_user),
            project_dir=str(project_dir),
            verbose=verbose,
            lenient_readiness=lenient_readiness,
            dry_run=dry_run,
        )
    except DeployerError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(deployer.run())


if __name__ == "__main__":
    main()
