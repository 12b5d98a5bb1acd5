"""
Logging setup.

Modules log through `logging.getLogger(__name__)`; the CLI calls
configure_logging() once to route everything through rich.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


_configured = False


def configure_logging(level: str | int = "INFO") -> None:
    global _configured
    root = logging.getLogger()
    root.setLevel(level if isinstance(level, int) else level.upper())
    if _configured:
        return

    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
    root.addHandler(handler)

    # Flask's dev server logs every request at INFO
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    _configured = True
