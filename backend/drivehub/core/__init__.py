# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Cross-cutting pieces shared by the API, the executor and sync.
"""

from drivehub.core.cancellation import CancellationToken, OperationCancelled
from drivehub.core.config import get_config, Config
from drivehub.core.errors import DriveHubError, NotFoundError, ValidationError
from drivehub.core.logging import get_logger

__all__ = [
    "CancellationToken",
    "OperationCancelled",
    "get_config",
    "Config",
    "DriveHubError",
    "NotFoundError",
    "ValidationError",
    "get_logger",
]
