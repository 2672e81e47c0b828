# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for logging setup
"""

import json
import logging

from drivehub.core.logging import ROOT_LOGGER, JSONFormatter, configure_logging, get_logger, get_service_logger


def test_json_formatter_includes_extra_fields():
    record = logging.makeLogRecord({
        "name": "drivehub.sync", "levelname": "INFO", "msg": "pushed %d files", "args": (2,),
        "file_id": "f1",
    })

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "pushed 2 files"
    assert entry["logger"] == "drivehub.sync"
    assert entry["file_id"] == "f1"
    assert "msg" not in entry


def test_loggers_share_namespace():
    assert get_logger("drivehub.main").name == "drivehub.main"
    assert get_logger("scripts.tool").name == "drivehub.scripts.tool"
    assert get_service_logger("sync").name == "drivehub.service.sync"


def test_configure_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "logs" / "drivehub.log"
    root = configure_logging("debug", "text", log_file)
    try:
        assert root.name == ROOT_LOGGER
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        get_service_logger("test").info("hello file")
        for handler in root.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        configure_logging()

    assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1
