# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Local Cache - the offline copy of a user's Drive files on one device.

Holds cached file contents, the local sync snapshot, the last remote
snapshot seen, and the local edit history. Optionally persisted as a single
JSON file; writes go through aiofiles under an asyncio.Lock.

Single writer per device: sync operations are serialized by the caller.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
import aiofiles.os
from pydantic import Field

from drivehub.settings import CamelModel
from drivehub.sync.meta import SyncMeta

logger = logging.getLogger(__name__)


class CachedFile(CamelModel):
    file_id: str
    file_name: str
    content: str
    md5_checksum: str = ""
    modified_time: str = ""
    mime_type: str = "text/plain"
    encoding: str = "utf-8"  # "base64" for binary files


class LocalEditEntry(CamelModel):
    id: str
    timestamp: str
    diff: str
    origin: str = "local"
    additions: int = 0
    deletions: int = 0


class FileEditHistory(CamelModel):
    """
    Entries are stored oldest-first. `session_base` is the content at the
    start of the open edit session, or None when no session is open.
    `session_entry_id` is the entry that session keeps rewriting.
    """
    file_id: str
    file_name: str = ""
    entries: List[LocalEditEntry] = Field(default_factory=list)
    session_base: Optional[str] = None
    session_entry_id: Optional[str] = None


class LocalCacheState(CamelModel):
    files: Dict[str, CachedFile] = Field(default_factory=dict)
    local_meta: Optional[SyncMeta] = None
    remote_meta: Optional[SyncMeta] = None
    edit_history: Dict[str, FileEditHistory] = Field(default_factory=dict)


class LocalCache:
    """
    In-memory cache with optional JSON persistence.

    Args:
        path: File to persist to; None keeps everything in memory
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self.state = LocalCacheState()
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        """Load persisted state if the file exists"""
        if not self.path or not self.path.exists():
            return
        async with self._lock:
            async with aiofiles.open(self.path, "r") as f:
                raw = await f.read()
        try:
            self.state = LocalCacheState.model_validate(json.loads(raw))
        except ValueError as e:
            logger.warning(f"Local cache at {self.path} is unreadable, starting empty: {e}")
            self.state = LocalCacheState()

    async def flush(self) -> None:
        """Persist state atomically (write temp file, then rename)"""
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = json.dumps(self.state.model_dump(by_alias=True), ensure_ascii=False)
        async with self._lock:
            async with aiofiles.open(tmp_path, "w") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self.path)

    # -- files --

    def get_file(self, file_id: str) -> Optional[CachedFile]:
        return self.state.files.get(file_id)

    def set_file(self, cached: CachedFile) -> None:
        self.state.files[cached.file_id] = cached

    def delete_file(self, file_id: str) -> None:
        self.state.files.pop(file_id, None)

    def all_files(self) -> List[CachedFile]:
        return list(self.state.files.values())

    # -- snapshots --

    def get_local_meta(self) -> Optional[SyncMeta]:
        return self.state.local_meta

    def set_local_meta(self, meta: Optional[SyncMeta]) -> None:
        self.state.local_meta = meta

    def get_remote_meta(self) -> Optional[SyncMeta]:
        return self.state.remote_meta

    def set_remote_meta(self, meta: Optional[SyncMeta]) -> None:
        self.state.remote_meta = meta
