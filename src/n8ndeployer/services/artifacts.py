"""Rendering of the generated deployment artifacts.

Three files are produced from a :class:`DeploymentConfig`:

* ``.env`` - ``KEY=VALUE`` lines consumed by docker compose variable
  substitution. Holds the only secrets and is written with mode 0600.
* ``docker-compose.yml`` - the postgres and n8n services. It only references
  ``${KEY}`` variables, so its content does not depend on the secrets and is
  byte-identical between runs.
* the nginx site file - the HTTP-only virtual host. certbot later rewrites it
  in place to add TLS and the HTTP to HTTPS redirect.

Every file is rendered in full and replaces the previous version.
"""

import os
from typing import Dict, List, Tuple

import yaml

from n8ndeployer.constants import (
    APP_LOOPBACK_URL,
    APP_PORT,
    COMPOSE_FILE_NAME,
    DIR_MODE,
    ENV_FILE_NAME,
    FILE_MODE,
    N8N_IMAGE,
    POSTGRES_DB,
    POSTGRES_IMAGE,
    POSTGRES_PORT,
    POSTGRES_USER,
    SECRET_FILE_MODE,
)
from n8ndeployer.errors import DeployerError
from n8ndeployer.models import DeploymentConfig

NETWORK_NAME = "n8n_network"
DB_SERVICE = "postgres"
APP_SERVICE = "n8n"

APP_ENV_KEYS = (
    "N8N_BASIC_AUTH_ACTIVE",
    "N8N_BASIC_AUTH_USER",
    "N8N_BASIC_AUTH_PASSWORD",
    "N8N_HOST",
    "N8N_PORT",
    "N8N_PROTOCOL",
    "WEBHOOK_URL",
    "DB_TYPE",
    "DB_POSTGRESDB_HOST",
    "DB_POSTGRESDB_PORT",
    "DB_POSTGRESDB_DATABASE",
    "DB_POSTGRESDB_USER",
    "DB_POSTGRESDB_PASSWORD",
    "N8N_USER_MANAGEMENT_DISABLED",
    "N8N_PERSONALIZATION_ENABLED",
)


class ArtifactService:
    """Renders, validates and writes the deployment artifacts."""

    def __init__(self, filesystem_service, logger):
        self.filesystem_service = filesystem_service
        self.logger = logger

    def env_sections(self, config: DeploymentConfig) -> List[Tuple[str, List[Tuple[str, str]]]]:
        return [
            (
                "Database Configuration",
                [
                    ("POSTGRES_DB", POSTGRES_DB),
                    ("POSTGRES_USER", POSTGRES_USER),
                    ("POSTGRES_PASSWORD", config.db_password),
                ],
            ),
            (
                "n8n Configuration",
                [
                    ("N8N_BASIC_AUTH_ACTIVE", "true"),
                    ("N8N_BASIC_AUTH_USER", config.admin_user),
                    ("N8N_BASIC_AUTH_PASSWORD", config.app_password),
                    ("N8N_HOST", config.domain),
                    ("N8N_PORT", str(APP_PORT)),
                    ("N8N_PROTOCOL", "https"),
                    ("WEBHOOK_URL", f"https://{config.domain}/"),
                ],
            ),
            (
                "Database Connection",
                [
                    ("DB_TYPE", "postgresdb"),
                    ("DB_POSTGRESDB_HOST", DB_SERVICE),
                    ("DB_POSTGRESDB_PORT", str(POSTGRES_PORT)),
                    ("DB_POSTGRESDB_DATABASE", POSTGRES_DB),
                    ("DB_POSTGRESDB_USER", POSTGRES_USER),
                    ("DB_POSTGRESDB_PASSWORD", config.db_password),
                ],
            ),
            (
                "Disable user management via email",
                [
                    ("N8N_USER_MANAGEMENT_DISABLED", "true"),
                    ("N8N_PERSONALIZATION_ENABLED", "false"),
                ],
            ),
        ]

    def render_env(self, config: DeploymentConfig) -> str:
        blocks = []
        for title, entries in self.env_sections(config):
            lines = [f"# {title}"]
            for key, value in entries:
                if "\n" in value or "\r" in value:
                    raise DeployerError(f"Value for {key} must be a single line.")
                lines.append(f"{key}={value}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks) + "\n"

    def render_compose(self) -> str:
        app_environment = "\n".join(f"      - {key}=${{{key}}}" for key in APP_ENV_KEYS)
        return f"""services:
  {DB_SERVICE}:
    image: {POSTGRES_IMAGE}
    restart: unless-stopped
    environment:
      - POSTGRES_DB=${{POSTGRES_DB}}
      - POSTGRES_USER=${{POSTGRES_USER}}
      - POSTGRES_PASSWORD=${{POSTGRES_PASSWORD}}
    volumes:
      - postgres_data:/var/lib/postgresql/data
    networks:
      - {NETWORK_NAME}
    healthcheck:
      test: ["CMD-SHELL", "pg_isready -U ${{POSTGRES_USER}} -d ${{POSTGRES_DB}}"]
      interval: 10s
      timeout: 5s
      retries: 5

  {APP_SERVICE}:
    image: {N8N_IMAGE}
    restart: unless-stopped
    ports:
      - "127.0.0.1:{APP_PORT}:{APP_PORT}"
    environment:
{app_environment}
    volumes:
      - n8n_data:/home/node/.n8n
    networks:
      - {NETWORK_NAME}
    depends_on:
      {DB_SERVICE}:
        condition: service_healthy

networks:
  {NETWORK_NAME}:
    driver: bridge

volumes:
  postgres_data:
    driver: local
  n8n_data:
    driver: local
"""

    def validate_compose(self, content: str) -> Dict:
        try:
            document = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise DeployerError(f"Generated compose file is not valid YAML: {exc}") from exc

        if not isinstance(document, dict):
            raise DeployerError("Generated compose file must be a mapping.")

        services = document.get("services") or {}
        for name in (DB_SERVICE, APP_SERVICE):
            if name not in services:
                raise DeployerError(f"Generated compose file is missing the '{name}' service.")

        if "healthcheck" not in services[DB_SERVICE]:
            raise DeployerError("The database service must declare a healthcheck.")

        depends_on = services[APP_SERVICE].get("depends_on") or {}
        condition = (depends_on.get(DB_SERVICE) or {}).get("condition")
        if condition != "service_healthy":
            raise DeployerError("The application must wait for a healthy database.")

        for name, service in services.items():
            for port in service.get("ports") or []:
                if not str(port).startswith("127.0.0.1:"):
                    raise DeployerError(
                        f"Service '{name}' publishes {port} beyond the loopback interface."
                    )

        declared_volumes = set((document.get("volumes") or {}).keys())
        for name, service in services.items():
            for volume in service.get("volumes") or []:
                volume_name = str(volume).split(":", 1)[0]
                if volume_name not in declared_volumes:
                    raise DeployerError(
                        f"Service '{name}' uses undeclared volume '{volume_name}'."
                    )
            if NETWORK_NAME not in (service.get("networks") or []):
                raise DeployerError(f"Service '{name}' is not attached to {NETWORK_NAME}.")

        network = (document.get("networks") or {}).get(NETWORK_NAME) or {}
        if network.get("driver") != "bridge":
            raise DeployerError(f"Network {NETWORK_NAME} must use the bridge driver.")

        return document

    def render_site(self, config: DeploymentConfig) -> str:
        return f"""server {{
    listen 80;
    server_name {config.domain};

    client_max_body_size 50M;

    location / {{
        proxy_pass {APP_LOOPBACK_URL};
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
        proxy_set_header X-Forwarded-Host $host;
        proxy_set_header X-Forwarded-Port $server_port;

        # WebSocket support
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection "upgrade";

        # Timeout settings
        proxy_connect_timeout 60s;
        proxy_send_timeout 60s;
        proxy_read_timeout 60s;
    }}
}}
"""

    def env_path(self, config: DeploymentConfig) -> str:
        return os.path.join(config.project_dir, ENV_FILE_NAME)

    def compose_path(self, config: DeploymentConfig) -> str:
        return os.path.join(config.project_dir, COMPOSE_FILE_NAME)

    def write_project_files(self, config: DeploymentConfig) -> Dict[str, str]:
        env_content = self.render_env(config)
        compose_content = self.render_compose()
        self.validate_compose(compose_content)

        self.filesystem_service.ensure_dir(config.project_dir, mode=DIR_MODE)

        env_path = self.env_path(config)
        compose_path = self.compose_path(config)
        self.filesystem_service.write_text(env_path, env_content, mode=SECRET_FILE_MODE)
        self.filesystem_service.write_text(compose_path, compose_content, mode=FILE_MODE)
        self.logger.info("Docker configuration written to %s", config.project_dir)

        return {"env": env_path, "compose": compose_path}
