# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
In-Memory File Store

A complete FileStore kept in process memory. Used for local development
(no cloud credentials) and as the file store in tests.
"""

import asyncio
import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from drivehub.core.errors import NotFoundError
from drivehub.drive.models import DriveFile, FOLDER_MIME_TYPE
from drivehub.drive.store import FileStore


@dataclass
class _StoredFile:
    meta: DriveFile
    data: bytes


class InMemoryFileStore(FileStore):
    """
    Flat, folder-aware store. File names may contain "/" (paths are names).
    Soft deletes move files into a trash folder under the root.
    """

    def __init__(self, root_folder_name: str = "DriveHub", trash_folder_name: str = "trash"):
        self._files: Dict[str, _StoredFile] = {}
        self._lock = asyncio.Lock()
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.trash_folder_name = trash_folder_name
        self.root_folder_id = self._insert(root_folder_name, b"", None, FOLDER_MIME_TYPE).id

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _tick(self) -> str:
        # Monotonic fake clock so modified times always increase
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def _insert(self, name: str, data: bytes, parent_id: Optional[str], mime_type: str) -> DriveFile:
        now = self._tick()
        meta = DriveFile(
            id=uuid.uuid4().hex,
            name=name,
            mime_type=mime_type,
            md5_checksum=None if mime_type == FOLDER_MIME_TYPE else hashlib.md5(data).hexdigest(),
            modified_time=now,
            created_time=now,
            parents=[parent_id] if parent_id else [],
            size=len(data),
        )
        self._files[meta.id] = _StoredFile(meta=meta, data=data)
        return meta.model_copy()

    def _get(self, file_id: str) -> _StoredFile:
        stored = self._files.get(file_id)
        if stored is None:
            raise NotFoundError("File", file_id)
        return stored

    def _write(self, file_id: str, data: bytes, mime_type: Optional[str]) -> DriveFile:
        stored = self._get(file_id)
        stored.data = data
        stored.meta.md5_checksum = hashlib.md5(data).hexdigest()
        stored.meta.modified_time = self._tick()
        stored.meta.size = len(data)
        if mime_type:
            stored.meta.mime_type = mime_type
        return stored.meta.model_copy()

    def _children(self, parent_id: Optional[str]) -> List[_StoredFile]:
        return [
            f for f in self._files.values()
            if parent_id is None or parent_id in f.meta.parents
        ]

    def _find_folder(self, name: str, parent_id: str) -> Optional[DriveFile]:
        for f in self._children(parent_id):
            if f.meta.is_folder and f.meta.name == name:
                return f.meta
        return None

    # ------------------------------------------------------------------
    # FileStore
    # ------------------------------------------------------------------

    async def get_file(self, file_id: str) -> DriveFile:
        return self._get(file_id).meta.model_copy()

    async def read(self, file_id: str) -> str:
        return self._get(file_id).data.decode("utf-8")

    async def read_bytes(self, file_id: str) -> bytes:
        return self._get(file_id).data

    async def create(self, name: str, content: str, parent_id: str, mime_type: str = "text/plain") -> DriveFile:
        async with self._lock:
            return self._insert(name, content.encode("utf-8"), parent_id, mime_type)

    async def create_binary(self, name: str, data: bytes, parent_id: str, mime_type: str) -> DriveFile:
        async with self._lock:
            return self._insert(name, data, parent_id, mime_type)

    async def update(self, file_id: str, content: str, mime_type: Optional[str] = None) -> DriveFile:
        async with self._lock:
            return self._write(file_id, content.encode("utf-8"), mime_type)

    async def update_binary(self, file_id: str, data: bytes, mime_type: Optional[str] = None) -> DriveFile:
        async with self._lock:
            return self._write(file_id, data, mime_type)

    async def search(self, parent_id: str, query: str) -> List[DriveFile]:
        needle = query.lower()
        return [
            f.meta.model_copy() for f in self._children(parent_id)
            if not f.meta.is_folder and needle in f.meta.name.lower()
        ]

    async def find_by_exact_name(self, name: str, parent_id: Optional[str] = None) -> Optional[DriveFile]:
        trash = self._find_folder(self.trash_folder_name, self.root_folder_id)
        for f in self._children(parent_id):
            if f.meta.is_folder or f.meta.name != name:
                continue
            if trash is None or trash.id not in f.meta.parents:
                return f.meta.model_copy()
        return None

    async def list_files(self, parent_id: str) -> List[DriveFile]:
        return [f.meta.model_copy() for f in self._children(parent_id) if not f.meta.is_folder]

    async def ensure_folder(self, name: str, parent_id: str) -> str:
        async with self._lock:
            existing = self._find_folder(name, parent_id)
            if existing:
                return existing.id
            return self._insert(name, b"", parent_id, FOLDER_MIME_TYPE).id

    async def move(self, file_id: str, new_parent_id: str) -> DriveFile:
        async with self._lock:
            stored = self._get(file_id)
            stored.meta.parents = [new_parent_id]
            stored.meta.modified_time = self._tick()
            return stored.meta.model_copy()

    async def rename(self, file_id: str, new_name: str) -> DriveFile:
        async with self._lock:
            stored = self._get(file_id)
            stored.meta.name = new_name
            stored.meta.modified_time = self._tick()
            return stored.meta.model_copy()

    async def delete(self, file_id: str, permanent: bool = False) -> None:
        if permanent:
            async with self._lock:
                self._get(file_id)
                del self._files[file_id]
            return
        trash_id = await self.ensure_folder(self.trash_folder_name, self.root_folder_id)
        await self.move(file_id, trash_id)
