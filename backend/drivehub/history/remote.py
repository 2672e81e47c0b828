# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Remote Edit History

Diffs captured on the server (at push time, or by a workflow write) are
stored as one JSON document per file inside the Drive history folder.
All entries carry origin "remote".
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from drivehub.drive.models import DriveFile
from drivehub.drive.store import FileStore
from drivehub.history.diff import create_diff, diff_stats
from drivehub.settings import CamelModel, EditHistorySettings
from drivehub.sync.local_cache import LocalEditEntry
from drivehub.sync.meta import utc_timestamp

logger = logging.getLogger(__name__)

HISTORY_SUFFIX = ".history.json"


def history_file_name(file_name: str) -> str:
    return file_name.replace("/", "_") + HISTORY_SUFFIX


class EditHistoryStats(CamelModel):
    total_files: int = 0
    total_entries: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    oldest_entry: Optional[str] = None
    newest_entry: Optional[str] = None


class EditHistoryRecorder:
    """
    Append-only remote history, newest entry last on disk.

    Args:
        file_store: Drive access
        root_folder_id: User root folder
        history_folder_name: Subfolder holding the history documents
        max_entries: Oldest entries beyond this are dropped
    """

    def __init__(
        self,
        file_store: FileStore,
        root_folder_id: str,
        history_folder_name: str = "history",
        max_entries: int = 50,
    ):
        self.file_store = file_store
        self.root_folder_id = root_folder_id
        self.history_folder_name = history_folder_name
        self.max_entries = max_entries
        self._lock = asyncio.Lock()

    async def _folder_id(self) -> str:
        return await self.file_store.ensure_folder(self.history_folder_name, self.root_folder_id)

    async def _read(self, doc: DriveFile) -> Tuple[Dict[str, Any], List[LocalEditEntry]]:
        try:
            raw = json.loads(await self.file_store.read(doc.id))
            return raw, [LocalEditEntry.model_validate(item) for item in raw.get("entries", [])]
        except (ValueError, AttributeError) as e:
            logger.warning(f"Discarding unreadable history document {doc.name}: {e}")
            return {}, []

    async def _load(self, folder_id: str, name: str) -> Tuple[Optional[DriveFile], List[LocalEditEntry]]:
        doc = await self.file_store.find_by_exact_name(name, folder_id)
        if doc is None:
            return None, []
        _, entries = await self._read(doc)
        return doc, entries

    async def _documents(self, folder_id: str) -> List[DriveFile]:
        return [f for f in await self.file_store.list_files(folder_id) if f.name.endswith(HISTORY_SUFFIX)]

    @staticmethod
    def _payload(file_name: str, source: str, entries: List[LocalEditEntry]) -> str:
        return json.dumps({
            "fileName": file_name,
            "source": source,
            "entries": [e.to_wire() for e in entries],
        }, ensure_ascii=False)

    async def save_edit(
        self,
        file_name: str,
        old_content: str,
        new_content: str,
        source: str = "workflow",
    ) -> Optional[LocalEditEntry]:
        """
        Record `old_content` -> `new_content` for `file_name`.

        Returns:
            The new entry, or None when the contents are identical
        """
        diff = create_diff(old_content, new_content)
        if not diff:
            return None
        additions, deletions = diff_stats(diff)
        entry = LocalEditEntry(
            id=uuid.uuid4().hex,
            timestamp=utc_timestamp(),
            diff=diff,
            origin="remote",
            additions=additions,
            deletions=deletions,
        )

        name = history_file_name(file_name)
        async with self._lock:
            folder_id = await self._folder_id()
            doc, entries = await self._load(folder_id, name)
            entries.append(entry)
            entries = entries[-self.max_entries:]
            payload = self._payload(file_name, source, entries)
            if doc:
                await self.file_store.update(doc.id, payload, "application/json")
            else:
                await self.file_store.create(name, payload, folder_id, "application/json")
        logger.debug(f"Recorded remote edit for {file_name} (+{additions}/-{deletions})")
        return entry

    async def get_history(self, file_name: str) -> List[LocalEditEntry]:
        """Entries newest-first"""
        folder_id = await self._folder_id()
        _, entries = await self._load(folder_id, history_file_name(file_name))
        return list(reversed(entries))

    async def clear(self, file_name: str) -> bool:
        """Delete the history of one file; False when it had none"""
        async with self._lock:
            folder_id = await self._folder_id()
            doc = await self.file_store.find_by_exact_name(history_file_name(file_name), folder_id)
            if doc is None:
                return False
            await self.file_store.delete(doc.id, permanent=True)
        logger.info(f"Cleared remote edit history for {file_name}")
        return True

    async def stats(self) -> EditHistoryStats:
        """Totals across every history document"""
        folder_id = await self._folder_id()
        stats = EditHistoryStats()
        for doc in await self._documents(folder_id):
            _, entries = await self._read(doc)
            if not entries:
                continue
            stats.total_files += 1
            stats.total_entries += len(entries)
            for entry in entries:
                stats.total_additions += entry.additions
                stats.total_deletions += entry.deletions
                if stats.oldest_entry is None or entry.timestamp < stats.oldest_entry:
                    stats.oldest_entry = entry.timestamp
                if stats.newest_entry is None or entry.timestamp > stats.newest_entry:
                    stats.newest_entry = entry.timestamp
        return stats

    async def prune(self, retention: EditHistorySettings, now: Optional[datetime] = None) -> int:
        """
        Apply retention to every history document.

        Entries older than `max_age_in_days` are dropped first, then the
        oldest entries beyond `max_entries_per_file`. A document left with
        no entries is deleted. Unreadable documents are left alone.

        Returns:
            Number of entries removed
        """
        cutoff = None
        if retention.max_age_in_days > 0:
            cutoff = utc_timestamp((now or datetime.now(timezone.utc)) - timedelta(days=retention.max_age_in_days))

        deleted = 0
        async with self._lock:
            folder_id = await self._folder_id()
            for doc in await self._documents(folder_id):
                raw, entries = await self._read(doc)
                kept = [e for e in entries if cutoff is None or e.timestamp >= cutoff]
                if retention.max_entries_per_file > 0:
                    kept = kept[-retention.max_entries_per_file:]
                removed = len(entries) - len(kept)
                if not removed:
                    continue
                deleted += removed
                if kept:
                    payload = self._payload(raw.get("fileName", ""), raw.get("source", ""), kept)
                    await self.file_store.update(doc.id, payload, "application/json")
                else:
                    await self.file_store.delete(doc.id, permanent=True)

        logger.info(f"Pruned {deleted} remote edit history entries")
        return deleted
