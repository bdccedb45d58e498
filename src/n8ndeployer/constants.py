"""Compiled-in defaults for n8n-deployer.

Edit DEFAULT_DOMAIN and DEFAULT_ADMIN_USER before running without a config
file. The deployer refuses to run while the domain is the placeholder.
"""

DEFAULT_DOMAIN = "your-domain.com"
DEFAULT_ADMIN_USER = "admin"
DEFAULT_PROJECT_DIR = "/root/n8n-docker"
DEFAULT_CONFIG_FILE = ".n8n-deployer.yml"

DB_PASSWORD_BYTES = 32
APP_PASSWORD_BYTES = 24

APP_PORT = 5678
APP_LOOPBACK_URL = f"http://127.0.0.1:{APP_PORT}"
N8N_IMAGE = "n8nio/n8n:latest"
POSTGRES_IMAGE = "postgres:15"
POSTGRES_DB = "n8n"
POSTGRES_USER = "n8n"
POSTGRES_PORT = 5432

ENV_FILE_NAME = ".env"
COMPOSE_FILE_NAME = "docker-compose.yml"

READINESS_MAX_ATTEMPTS = 60
READINESS_INTERVAL_SECONDS = 5.0
READINESS_ACCEPTED_STATUS_CODES = (200, 302, 401)
READINESS_PROBE_TIMEOUT = 5.0
CONTAINER_SETTLE_SECONDS = 10.0

NGINX_SITE_NAME = "n8n"
NGINX_SITES_AVAILABLE = "/etc/nginx/sites-available"
NGINX_SITES_ENABLED = "/etc/nginx/sites-enabled"

SYSTEM_PACKAGES = (
    "curl",
    "wget",
    "gnupg",
    "lsb-release",
    "ca-certificates",
    "software-properties-common",
    "ufw",
    "nginx",
    "certbot",
    "python3-certbot-nginx",
    "openssl",
)
LEGACY_DOCKER_PACKAGES = ("docker", "docker-engine", "docker.io", "containerd", "runc")
DOCKER_PACKAGES = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)
DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_APT_REPO = "https://download.docker.com/linux/ubuntu"
DOCKER_KEYRING_DIR = "/etc/apt/keyrings"
DOCKER_KEYRING = "/etc/apt/keyrings/docker.gpg"
DOCKER_SOURCES_LIST = "/etc/apt/sources.list.d/docker.list"

FIREWALL_ALLOWED_PROFILES = ("ssh", "Nginx Full")

DIR_MODE = 0o755
FILE_MODE = 0o644
SECRET_FILE_MODE = 0o600
