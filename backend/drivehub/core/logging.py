# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Logging setup for DriveHub.

All loggers live under the "drivehub" namespace. The namespace root gets a
single stdout handler (JSON lines or plain text, per config) the first
time any logger is requested; module loggers simply propagate to it.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "drivehub"

# Keys of a bare LogRecord; everything else was passed through `extra=`
_RECORD_KEYS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, `extra=` fields merged in"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({k: v for k, v in vars(record).items() if k not in _RECORD_KEYS})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", fmt: str = "json", log_file: Optional[Path] = None) -> logging.Logger:
    """
    (Re)install handlers on the drivehub root logger.

    Args:
        level: Level name, e.g. "DEBUG"
        fmt: "json" or "text"
        log_file: Also append to this file when given

    Returns:
        The drivehub root logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; configures the namespace root from config on first use"""
    if not logging.getLogger(ROOT_LOGGER).handlers:
        from drivehub.core.config import get_config
        config = get_config()
        configure_logging(config.log_level, config.log_format)
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def get_service_logger(service_name: str) -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER}.service.{service_name}")
