# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync wire models shared by the sync service and its clients.
"""

from enum import Enum
from typing import Optional

from drivehub.settings import CamelModel, RagFileInfo


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    CONFLICT = "conflict"
    ERROR = "error"
    WARNING = "warning"


class ResolveChoice(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class TransferredFile(CamelModel):
    """A file's content as it travels between server and client"""
    file_id: str
    file_name: str
    content: str
    md5_checksum: str = ""
    modified_time: str = ""
    mime_type: str = "text/plain"
    encoding: str = "utf-8"  # "base64" for binary files


class RagUpdate(CamelModel):
    file_name: str
    rag_file_info: RagFileInfo


class RagRegisterResult(CamelModel):
    ok: bool = True
    skipped: bool = False
    reason: Optional[str] = None
    rag_file_info: Optional[RagFileInfo] = None
    store_name: Optional[str] = None
