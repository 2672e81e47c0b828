# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Local Edit History

Per-file diff history kept in the local cache. Consecutive edits between
two commit boundaries collapse into one entry (a "session"), diffed from
the content at the start of the session. Pulls are committed as
remote-origin snapshots.
"""

import uuid
from typing import List, Optional, Sequence

from drivehub.history.diff import DiffWithOrigin, create_diff, diff_stats, reconstruct_content
from drivehub.sync.local_cache import CachedFile, FileEditHistory, LocalCache, LocalEditEntry
from drivehub.sync.meta import utc_timestamp


def merge_entries(
    local_entries: Sequence[LocalEditEntry],
    remote_entries: Sequence[LocalEditEntry],
) -> List[LocalEditEntry]:
    """Both histories as one newest-first list"""
    merged = list(local_entries) + list(remote_entries)
    merged.sort(key=lambda entry: entry.timestamp, reverse=True)
    return merged


class LocalEditHistory:
    """Edit history over a LocalCache. Does not flush; callers do."""

    def __init__(self, cache: LocalCache, max_entries_per_file: int = 50):
        self.cache = cache
        self.max_entries_per_file = max_entries_per_file

    def _record(self, file_id: str, file_name: str = "") -> FileEditHistory:
        history = self.cache.state.edit_history.get(file_id)
        if history is None:
            history = FileEditHistory(file_id=file_id, file_name=file_name)
            self.cache.state.edit_history[file_id] = history
        elif file_name:
            history.file_name = file_name
        return history

    def _new_entry(self, diff: str, origin: str) -> LocalEditEntry:
        additions, deletions = diff_stats(diff)
        return LocalEditEntry(
            id=uuid.uuid4().hex,
            timestamp=utc_timestamp(),
            diff=diff,
            origin=origin,
            additions=additions,
            deletions=deletions,
        )

    def _prune(self, history: FileEditHistory) -> None:
        overflow = len(history.entries) - self.max_entries_per_file
        if overflow > 0:
            del history.entries[:overflow]

    def save_local_edit(self, file_id: str, new_content: str, file_name: Optional[str] = None) -> CachedFile:
        """
        Record an editor save and update the cached content.

        Returns:
            The updated cached file
        """
        cached = self.cache.get_file(file_id)
        previous = cached.content if cached else ""
        name = file_name or (cached.file_name if cached else file_id)
        history = self._record(file_id, name)

        if history.session_base is None:
            history.session_base = previous
            history.session_entry_id = None
        if history.session_entry_id:
            history.entries = [e for e in history.entries if e.id != history.session_entry_id]
            history.session_entry_id = None

        diff = create_diff(history.session_base, new_content)
        if diff:
            entry = self._new_entry(diff, "local")
            history.entries.append(entry)
            history.session_entry_id = entry.id
            self._prune(history)

        if cached is None:
            cached = CachedFile(file_id=file_id, file_name=name, content=new_content)
        else:
            cached = cached.model_copy(update={"content": new_content})
        self.cache.set_file(cached)
        return cached

    def add_commit_boundary(self, file_id: str) -> None:
        """Close the open session so the next edit starts a new entry"""
        history = self.cache.state.edit_history.get(file_id)
        if history is not None:
            history.session_base = None
            history.session_entry_id = None

    def commit_snapshot(self, file_id: str, file_name: str, new_content: str, origin: str = "remote") -> Optional[LocalEditEntry]:
        """
        Record a wholesale content change (e.g. a pull) against the cached
        content. Does not touch the cache itself.
        """
        cached = self.cache.get_file(file_id)
        previous = cached.content if cached else ""
        history = self._record(file_id, file_name)
        history.session_base = None
        history.session_entry_id = None
        diff = create_diff(previous, new_content)
        if not diff:
            return None
        entry = self._new_entry(diff, origin)
        history.entries.append(entry)
        self._prune(history)
        return entry

    def get_history(self, file_id: str) -> List[LocalEditEntry]:
        """Entries newest-first"""
        history = self.cache.state.edit_history.get(file_id)
        if history is None:
            return []
        return list(reversed(history.entries))

    def restore_version(
        self,
        file_id: str,
        index: int,
        entries: Optional[Sequence[LocalEditEntry]] = None,
    ) -> Optional[str]:
        """
        Content as it was right after the entry at `index` (newest-first).

        Args:
            file_id: File to reconstruct
            index: Position of the target entry; 0 is the current content
            entries: Newest-first entries to walk (defaults to local history)

        Returns:
            Reconstructed content, or None if the chain does not apply
        """
        cached = self.cache.get_file(file_id)
        if cached is None:
            return None
        chain = list(entries) if entries is not None else self.get_history(file_id)
        diffs = [DiffWithOrigin(diff=e.diff, origin=e.origin) for e in chain[:index]]
        return reconstruct_content(cached.content, diffs)

    def locally_modified_file_ids(self) -> List[str]:
        """Files with at least one local-origin entry"""
        return [
            file_id for file_id, history in self.cache.state.edit_history.items()
            if any(entry.origin == "local" for entry in history.entries)
        ]

    def delete_file(self, file_id: str) -> None:
        self.cache.state.edit_history.pop(file_id, None)

    def clear_all(self) -> None:
        self.cache.state.edit_history.clear()
