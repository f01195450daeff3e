# bomservice/logging_config.py
from __future__ import annotations

import logging

from bomservice.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """
    Send all bomservice logs to stderr and to
    <LOG_DIR>/bomservice.log at LOG_LEVEL. Replaces whatever handlers the
    root logger already has, so calling it twice does not double output.
    """
    settings = settings or get_settings()

    level_name = getattr(settings, "log_level", "INFO")
    level = getattr(logging, level_name.upper(), logging.INFO)

    root_logger = logging.getLogger()

    # Remove any handlers uvicorn or previous config attached
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_dir = settings.resolved_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / "bomservice.log", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    root_logger.debug("Logging configured (level=%s)", level_name)
