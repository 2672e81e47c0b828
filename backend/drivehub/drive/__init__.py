# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Drive file store interface, models and LLM-facing drive tools.
"""

from drivehub.drive.models import DriveFile, FileExplorerData
from drivehub.drive.store import FileStore

__all__ = ["DriveFile", "FileExplorerData", "FileStore"]
