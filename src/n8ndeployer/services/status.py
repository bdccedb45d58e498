"""Leveled operator status lines."""

from rich.markup import escape


class StatusReporter:
    """Prints [INFO]/[SUCCESS]/[WARNING]/[ERROR] lines and mirrors them to the log."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def info(self, message: str):
        self.console.print(f"[blue]\\[INFO][/blue] {escape(message)}")
        self.logger.debug(message)

    def success(self, message: str):
        self.console.print(f"[green]\\[SUCCESS][/green] {escape(message)}")
        self.logger.debug(message)

    def warning(self, message: str):
        self.console.print(f"[yellow]\\[WARNING][/yellow] {escape(message)}")
        self.logger.warning(message)

    def error(self, message: str):
        self.console.print(f"[red]\\[ERROR][/red] {escape(message)}")
        self.logger.error(message)
