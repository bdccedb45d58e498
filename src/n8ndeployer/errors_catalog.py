"""Actionable error catalog for n8n-deployer."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "placeholder_domain": {
        "what": "The target domain is still the placeholder `{domain}`.",
        "next": "Set the domain to your actual host name (e.g. `n8n.yourdomain.com`) and rerun.",
    },
    "invalid_domain": {
        "what": "Invalid domain name: {domain}",
        "next": "Use a fully qualified host name made of letters, digits, hyphens and dots.",
    },
    "invalid_admin_user": {
        "what": "Invalid admin username: {user!r}",
        "next": "Choose a non-empty username without whitespace or `=`.",
    },
    "not_root": {
        "what": "n8n-deployer must run with root privileges.",
        "next": "Rerun the command with `sudo` or as the root user.",
    },
    "containers_not_running": {
        "what": "Docker containers failed to start properly.",
        "next": "Inspect `cd {project_dir} && docker compose logs` and rerun after fixing the cause.",
    },
    "readiness_timeout": {
        "what": "Service at {url} did not become ready after {attempts} attempts.",
        "next": "Check `docker compose logs n8n` in the project directory and rerun.",
    },
    "nginx_validation_failed": {
        "what": "nginx rejected the site configuration: {details}",
        "next": "The previous configuration was kept. Fix the site file and run `nginx -t`.",
    },
    "certificate_failed": {
        "what": "Failed to obtain SSL certificate for {domain}.",
        "next": "Make sure {domain} points to this server, then run `certbot --nginx -d {domain}`.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
