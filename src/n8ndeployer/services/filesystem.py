"""Filesystem helpers for n8n-deployer."""

import logging
import os
import sys
import tempfile
from typing import Optional

from rich.console import Console

from n8ndeployer.errors import DeployerError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def ensure_dir(self, path: str, mode: Optional[int] = None):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise DeployerError(f"Could not create directory '{path}': {exc}") from exc
        if mode is not None:
            self.set_permissions(path, mode)

    def write_text(self, path: str, content: str, mode: Optional[int] = None):
        """Replace ``path`` with ``content`` in a single rename."""
        directory = os.path.dirname(path) or "."
        self.ensure_dir(directory)

        fd, temp_path = tempfile.mkstemp(prefix=".n8n-deployer-", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(content)
            if mode is not None:
                self.set_permissions(temp_path, mode)
            os.replace(temp_path, path)
        except OSError as exc:
            raise DeployerError(f"Could not write '{path}': {exc}") from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
        self.logger.debug("Wrote %s", path)

    def read_text(self, path: str) -> Optional[str]:
        try:
            with open(path, "r", encoding="utf-8") as file_obj:
                return file_obj.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise DeployerError(f"Could not read '{path}': {exc}") from exc

    def remove_file(self, path: str):
        try:
            os.remove(path)
            self.logger.debug("Removed file: %s", path)
        except FileNotFoundError:
            return
        except OSError as exc:
            message = f"Warning: Could not remove {path}: {exc}"
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)

    def symlink(self, source: str, link_path: str):
        """Point ``link_path`` at ``source``, replacing any stale link."""
        self.ensure_dir(os.path.dirname(link_path) or ".")
        if os.path.islink(link_path) and os.path.realpath(link_path) == os.path.realpath(source):
            return
        try:
            if os.path.islink(link_path) or os.path.exists(link_path):
                os.remove(link_path)
            os.symlink(source, link_path)
        except OSError as exc:
            raise DeployerError(f"Could not link '{link_path}' to '{source}': {exc}") from exc
