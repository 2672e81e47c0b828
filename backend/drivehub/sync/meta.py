# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync Metadata

The remote sync meta file (_sync-meta.json in the Drive root) records the
checksum of every tracked file at the last push/pull boundary. It doubles as
the file registry for flat Drive storage.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional
from pydantic import Field

from drivehub.drive.models import DriveFile
from drivehub.drive.store import FileStore
from drivehub.settings import CamelModel
from drivehub.sync.paths import SYNC_META_FILE

logger = logging.getLogger(__name__)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix. Sorts lexicographically."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FileSyncMeta(CamelModel):
    name: str = ""
    mime_type: str = ""
    md5_checksum: str = ""
    modified_time: str = ""
    created_time: Optional[str] = None
    shared: Optional[bool] = None
    web_view_link: Optional[str] = None

    @classmethod
    def from_drive_file(cls, file: DriveFile) -> "FileSyncMeta":
        return cls(
            name=file.name,
            mime_type=file.mime_type,
            md5_checksum=file.md5_checksum or "",
            modified_time=file.modified_time or "",
            created_time=file.created_time,
            shared=file.shared,
            web_view_link=file.web_view_link,
        )


class SyncMeta(CamelModel):
    last_updated_at: str = Field(default_factory=utc_timestamp)
    files: Dict[str, FileSyncMeta] = Field(default_factory=dict)


def backup_file_name(file_name: str, now: Optional[datetime] = None) -> str:
    """
    Name for a conflict backup: path separators flattened, a
    YYYYMMDD_HHMMSS stamp inserted before the extension.
    """
    stamp = utc_timestamp(now).replace("-", "").replace(":", "").replace("T", "_")[:15]
    safe_name = file_name.replace("/", "_")
    dot = safe_name.rfind(".")
    if dot > 0:
        return f"{safe_name[:dot]}_{stamp}{safe_name[dot:]}"
    return f"{safe_name}_{stamp}"


class RemoteSyncMetaStore:
    """
    Reads and writes the remote sync meta file.

    Read-modify-write operations are serialized by an asyncio.Lock, so the
    instance should be shared per root folder.
    """

    def __init__(self, file_store: FileStore, root_folder_id: str):
        self.file_store = file_store
        self.root_folder_id = root_folder_id
        self._lock = asyncio.Lock()

    async def read(self) -> Optional[SyncMeta]:
        """Current remote meta, or None if missing or unreadable"""
        meta_file = await self.file_store.find_by_exact_name(SYNC_META_FILE, self.root_folder_id)
        if not meta_file:
            return None
        try:
            content = await self.file_store.read(meta_file.id)
            return SyncMeta.model_validate(json.loads(content))
        except ValueError as e:
            logger.warning(f"Remote sync meta is unreadable, treating as missing: {e}")
            return None

    async def write(self, meta: SyncMeta) -> None:
        content = json.dumps(meta.to_wire(), indent=2)
        meta_file = await self.file_store.find_by_exact_name(SYNC_META_FILE, self.root_folder_id)
        if meta_file:
            await self.file_store.update(meta_file.id, content, "application/json")
        else:
            await self.file_store.create(SYNC_META_FILE, content, self.root_folder_id, "application/json")

    async def rebuild(self) -> SyncMeta:
        """Full scan of the root folder. Used for first run and refresh."""
        files = await self.file_store.list_files(self.root_folder_id)
        meta = SyncMeta()
        for f in files:
            if f.name == SYNC_META_FILE:
                continue
            meta.files[f.id] = FileSyncMeta.from_drive_file(f)
        await self.write(meta)
        logger.info(f"Rebuilt sync meta with {len(meta.files)} files")
        return meta

    async def get_or_rebuild(self) -> SyncMeta:
        meta = await self.read()
        if meta is None:
            meta = await self.rebuild()
        return meta

    async def upsert_file(self, file: DriveFile) -> SyncMeta:
        """Add or update a single file entry"""
        async with self._lock:
            meta = await self.read() or SyncMeta()
            meta.files[file.id] = FileSyncMeta.from_drive_file(file)
            meta.last_updated_at = utc_timestamp()
            await self.write(meta)
            return meta

    async def remove_file(self, file_id: str) -> SyncMeta:
        async with self._lock:
            meta = await self.read() or SyncMeta()
            meta.files.pop(file_id, None)
            meta.last_updated_at = utc_timestamp()
            await self.write(meta)
            return meta

    async def replace(self, meta: SyncMeta) -> SyncMeta:
        async with self._lock:
            await self.write(meta)
            return meta

    async def save_conflict_backup(
        self,
        conflict_folder_name: str,
        file_name: str,
        content: str,
        now: Optional[datetime] = None,
    ) -> DriveFile:
        """Write `content` as a timestamped copy in the conflict folder"""
        folder_id = await self.file_store.ensure_folder(conflict_folder_name, self.root_folder_id)
        name = backup_file_name(file_name, now)
        backup = await self.file_store.create(name, content, folder_id, "text/plain")
        logger.info(f"Saved conflict backup {name} for {file_name}")
        return backup
