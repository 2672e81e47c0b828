# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Three-Way Sync Diff

Classifies every file id seen in the local snapshot, the remote snapshot or
the locally-modified set. Pure function, no I/O.
"""

import logging
import re
from typing import Iterable, List, Optional, Pattern

from pydantic import Field

from drivehub.settings import CamelModel
from drivehub.sync.meta import FileSyncMeta, SyncMeta
from drivehub.sync.paths import is_system_file

logger = logging.getLogger(__name__)


class ConflictInfo(CamelModel):
    file_id: str
    file_name: str
    local_checksum: str
    remote_checksum: str
    local_modified_time: str
    remote_modified_time: str


class SyncDiff(CamelModel):
    to_push: List[str] = Field(default_factory=list)
    to_pull: List[str] = Field(default_factory=list)
    conflicts: List[ConflictInfo] = Field(default_factory=list)
    local_only: List[str] = Field(default_factory=list)
    remote_only: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def _compile_patterns(patterns: Iterable[str]) -> List[Pattern]:
    compiled = []
    for pattern in patterns:
        if not pattern.strip():
            continue
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.debug(f"Ignoring invalid sync exclude pattern {pattern!r}: {e}")
    return compiled


def compute_sync_diff(
    local_meta: Optional[SyncMeta],
    remote_meta: Optional[SyncMeta],
    locally_modified_ids: Iterable[str],
    exclude_patterns: Iterable[str] = (),
) -> SyncDiff:
    """
    Partition file ids into push/pull/conflict/local-only/remote-only/unchanged.

    Args:
        local_meta: Client snapshot of the last sync (None = never synced)
        remote_meta: Server snapshot of the last push/pull boundary
        locally_modified_ids: Ids edited on this device since the last sync
        exclude_patterns: Regexes matched against file names

    Returns:
        SyncDiff; each considered id lands in exactly one list
    """
    local_files = local_meta.files if local_meta else {}
    remote_files = remote_meta.files if remote_meta else {}
    modified = set(locally_modified_ids)
    excludes = _compile_patterns(exclude_patterns)

    def skipped(entry: Optional[FileSyncMeta]) -> bool:
        if entry is None or not entry.name:
            return False
        if is_system_file(entry.name):
            return True
        return any(p.search(entry.name) for p in excludes)

    # Stable order: local snapshot, then remote snapshot, then modified-only ids
    all_ids: List[str] = []
    seen = set()
    for file_id in list(local_files) + list(remote_files) + sorted(modified):
        if file_id not in seen:
            seen.add(file_id)
            all_ids.append(file_id)

    diff = SyncDiff()
    for file_id in all_ids:
        local = local_files.get(file_id)
        remote = remote_files.get(file_id)
        if skipped(local) or skipped(remote):
            continue

        has_local = local is not None or file_id in modified
        has_remote = remote is not None
        local_changed = file_id in modified
        remote_changed = has_remote and (local is None or local.md5_checksum != remote.md5_checksum)

        if has_local and not has_remote:
            diff.local_only.append(file_id)
        elif not has_local and has_remote:
            diff.remote_only.append(file_id)
        elif local_changed and remote_changed:
            diff.conflicts.append(ConflictInfo(
                file_id=file_id,
                file_name=(remote.name if remote and remote.name else (local.name if local else "")) or file_id,
                local_checksum=local.md5_checksum if local else "",
                remote_checksum=remote.md5_checksum,
                local_modified_time=local.modified_time if local else "",
                remote_modified_time=remote.modified_time,
            ))
        elif local_changed:
            diff.to_push.append(file_id)
        elif remote_changed:
            diff.to_pull.append(file_id)
        else:
            diff.unchanged.append(file_id)

    return diff
