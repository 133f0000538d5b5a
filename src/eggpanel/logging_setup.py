"""Logging setup shared by the API server and the command line."""
import logging

from rich.logging import RichHandler


def setup_logging(level: str = "INFO") -> None:
    """Attach a single rich console handler to the root logger.

    Calling it again only updates the level.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
        root_logger.addHandler(handler)
