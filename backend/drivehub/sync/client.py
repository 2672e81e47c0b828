# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync Client - device-side push/pull orchestration.

Sequences the server's sync actions against the local cache:
- push: upload locally modified files, then adopt the remote snapshot
- pull: drop remote deletions, download remote changes as history snapshots
- resolve_conflict: keep local or take remote (local content backed up first)
- full_push / full_pull: bypass the incremental diff

Operations are not reentrant; callers serialize them per device.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from drivehub.core.errors import DriveHubError, SyncError
from drivehub.core.logging import get_service_logger
from drivehub.history.local import LocalEditHistory, merge_entries
from drivehub.rag.eligibility import is_rag_eligible
from drivehub.settings import RagFileInfo
from drivehub.sync.api_client import SyncApi
from drivehub.sync.diff import ConflictInfo
from drivehub.sync.local_cache import CachedFile, LocalCache, LocalEditEntry
from drivehub.sync.meta import FileSyncMeta, SyncMeta, utc_timestamp
from drivehub.sync.models import RagUpdate, ResolveChoice, SyncStatus, TransferredFile
from drivehub.sync.paths import get_sync_completion_status
from drivehub.sync.rag import now_ms

logger = get_service_logger("sync_client")


@dataclass
class _RagBatch:
    """RAG results collected during a push, saved in one request"""
    updates: List[RagUpdate] = field(default_factory=list)
    store_name: str = ""


class SyncClient:
    """
    Push/pull for one device.

    Args:
        api: Transport to the sync service
        cache: The device's local cache
        history: Local edit history over the same cache
    """

    def __init__(self, api: SyncApi, cache: LocalCache, history: LocalEditHistory):
        self.api = api
        self.cache = cache
        self.history = history
        self.status = SyncStatus.IDLE
        self.error: Optional[str] = None
        self.conflicts: List[ConflictInfo] = []
        self.last_sync_time: Optional[str] = None

    def _begin(self) -> None:
        self.status = SyncStatus.SYNCING
        self.error = None

    def _fail(self, e: Exception, fallback: str) -> None:
        self.error = getattr(e, "message", None) or str(e) or fallback
        self.status = SyncStatus.ERROR
        logger.error(f"{fallback}: {self.error}")

    def _finish(self, skipped: int = 0, label: str = "") -> None:
        status, message = get_sync_completion_status(skipped, label)
        self.status = SyncStatus(status)
        self.error = message
        self.last_sync_time = utc_timestamp()

    def _store_pulled(self, file: TransferredFile) -> None:
        """Commit pulled content as a remote snapshot, then cache it"""
        if file.encoding != "base64":
            self.history.commit_snapshot(file.file_id, file.file_name, file.content)
        self.cache.set_file(CachedFile(
            file_id=file.file_id,
            file_name=file.file_name,
            content=file.content,
            md5_checksum=file.md5_checksum,
            modified_time=file.modified_time,
            mime_type=file.mime_type,
            encoding=file.encoding,
        ))

    # ------------------------------------------------------------------
    # RAG bookkeeping (best effort)
    # ------------------------------------------------------------------

    async def _save_rag(self, batch: _RagBatch) -> None:
        if batch.updates:
            await self.api.rag_save(batch.updates, batch.store_name)
            batch.updates = []

    async def _try_save_rag(self, batch: _RagBatch) -> None:
        try:
            await self._save_rag(batch)
        except Exception as e:
            logger.warning(f"Could not save RAG tracking after failed push: {e}")

    async def _try_delete_doc(self, document_id: Optional[str]) -> None:
        if not document_id:
            return
        try:
            await self.api.rag_delete_doc(document_id)
        except Exception as e:
            logger.warning(f"Could not delete orphaned RAG document {document_id}: {e}")

    async def _try_retry_pending(self) -> None:
        try:
            await self.api.rag_retry_pending()
        except Exception as e:
            logger.warning(f"RAG retry failed: {e}")

    # ------------------------------------------------------------------
    # push
    # ------------------------------------------------------------------

    async def _push_file(self, file_id: str, cached: CachedFile, local_meta: SyncMeta, batch: _RagBatch) -> None:
        """
        Upload one file and record its new checksum.

        RAG registration failures become pending entries. If the upload
        fails, the document registered for it is deleted again.
        """
        rag_update: Optional[RagUpdate] = None
        document_id: Optional[str] = None
        if is_rag_eligible(cached.file_name):
            try:
                result = await self.api.rag_register(file_id, cached.content, cached.file_name)
            except Exception as e:
                logger.warning(f"RAG registration of {cached.file_name} failed, marking pending: {e}")
                rag_update = RagUpdate(
                    file_name=cached.file_name,
                    rag_file_info=RagFileInfo(uploaded_at=now_ms(), status="pending"),
                )
            else:
                if not result.skipped and result.rag_file_info is not None:
                    info = result.rag_file_info.model_copy(update={"status": "registered"})
                    rag_update = RagUpdate(file_name=cached.file_name, rag_file_info=info)
                    if result.store_name:
                        batch.store_name = result.store_name
                    document_id = info.file_id

        try:
            written = await self.api.update_file(file_id, cached.content, cached.encoding)
        except Exception:
            await self._try_delete_doc(document_id)
            raise

        entry = local_meta.files.get(file_id) or FileSyncMeta(name=cached.file_name, mime_type=cached.mime_type)
        local_meta.files[file_id] = entry.model_copy(update={
            "md5_checksum": written.md5_checksum or "",
            "modified_time": written.modified_time or "",
        })
        self.cache.set_file(cached.model_copy(update={
            "md5_checksum": written.md5_checksum or "",
            "modified_time": written.modified_time or "",
        }))
        if rag_update is not None:
            batch.updates.append(rag_update)

    async def push(self) -> List[str]:
        """
        Upload locally modified files that the remote tracks.

        Halts with status "conflict" (nothing uploaded) when the diff has
        conflicts.

        Returns:
            Ids of the uploaded files

        Raises:
            SyncError: If the remote moved on and has files to pull first
        """
        self._begin()
        batch = _RagBatch()
        try:
            local_meta = self.cache.get_local_meta()
            modified = self.history.locally_modified_file_ids()
            diff, remote_meta = await self.api.diff(local_meta, modified)
            self.cache.set_remote_meta(remote_meta)

            if diff.has_conflicts:
                self.conflicts = diff.conflicts
                self.status = SyncStatus.CONFLICT
                logger.info(f"Push halted: {len(diff.conflicts)} conflict(s)")
                return []

            local_updated_at = local_meta.last_updated_at if local_meta else ""
            if remote_meta.last_updated_at > local_updated_at and (diff.to_pull or diff.remote_only):
                raise SyncError("Remote has newer changes. Pull before pushing.")

            working_meta = local_meta.model_copy(deep=True) if local_meta else SyncMeta(last_updated_at="")
            pushed: List[str] = []
            skipped = 0
            for file_id in modified:
                if file_id not in remote_meta.files:
                    continue
                cached = self.cache.get_file(file_id)
                if cached is None:
                    skipped += 1
                    continue
                await self._push_file(file_id, cached, working_meta, batch)
                pushed.append(file_id)

            await self._save_rag(batch)
            self.history.clear_all()

            _, remote_meta = await self.api.diff(None, [])
            self.cache.set_remote_meta(remote_meta)
            self.cache.set_local_meta(remote_meta.model_copy(deep=True))
            await self.cache.flush()

            await self._try_retry_pending()
            self._finish(skipped, "Push")
            logger.info(f"Pushed {len(pushed)} file(s)")
            return pushed

        except DriveHubError as e:
            await self._try_save_rag(batch)
            self._fail(e, "Push failed")
            raise
        except Exception as e:
            await self._try_save_rag(batch)
            self._fail(e, "Push failed")
            raise SyncError(f"Push failed: {e}")

    # ------------------------------------------------------------------
    # pull
    # ------------------------------------------------------------------

    async def pull(self) -> List[str]:
        """
        Bring remote changes into the local cache.

        Files deleted remotely (tracked locally, gone from the remote
        snapshot) are dropped with their history. Halts with status
        "conflict" when the diff has conflicts.

        Returns:
            Ids of the downloaded files
        """
        self._begin()
        try:
            local_meta = self.cache.get_local_meta()
            diff, remote_meta = await self.api.diff(local_meta, self.history.locally_modified_file_ids())
            self.cache.set_remote_meta(remote_meta)

            if diff.has_conflicts:
                self.conflicts = diff.conflicts
                self.status = SyncStatus.CONFLICT
                logger.info(f"Pull halted: {len(diff.conflicts)} conflict(s)")
                return []

            updated_meta = local_meta.model_copy(deep=True) if local_meta else SyncMeta()
            for file_id in diff.local_only:
                if file_id not in updated_meta.files:
                    continue
                self.cache.delete_file(file_id)
                self.history.delete_file(file_id)
                del updated_meta.files[file_id]

            to_fetch = diff.to_pull + diff.remote_only
            files: List[TransferredFile] = []
            if to_fetch:
                files, remote_meta = await self.api.pull(to_fetch)
                self.cache.set_remote_meta(remote_meta)

            for file in files:
                self._store_pulled(file)
                entry = remote_meta.files.get(file.file_id) or FileSyncMeta(name=file.file_name, mime_type=file.mime_type)
                updated_meta.files[file.file_id] = entry.model_copy(update={
                    "md5_checksum": file.md5_checksum,
                    "modified_time": file.modified_time,
                })

            updated_meta.last_updated_at = utc_timestamp()
            self.cache.set_local_meta(updated_meta)
            await self.cache.flush()
            self._finish()
            logger.info(f"Pulled {len(files)} file(s), removed {len(diff.local_only)} local-only")
            return [f.file_id for f in files]

        except DriveHubError as e:
            self._fail(e, "Pull failed")
            raise
        except Exception as e:
            self._fail(e, "Pull failed")
            raise SyncError(f"Pull failed: {e}")

    # ------------------------------------------------------------------
    # conflicts
    # ------------------------------------------------------------------

    async def resolve_conflict(self, file_id: str, choice: ResolveChoice) -> None:
        """
        Settle one conflict.

        With "remote", the local content is sent along and backed up on the
        server; local edits of the file are discarded and the remote
        content cached. With either choice the file's local snapshot entry
        adopts the remote one.
        """
        self.error = None
        try:
            cached = self.cache.get_file(file_id)
            local_content = cached.content if choice == ResolveChoice.REMOTE and cached else None
            file, remote_meta = await self.api.resolve(file_id, choice, local_content)
            self.cache.set_remote_meta(remote_meta)

            if choice == ResolveChoice.REMOTE and file is not None:
                self.history.delete_file(file_id)
                self._store_pulled(file)

            entry = remote_meta.files.get(file_id)
            if entry is not None:
                local_meta = self.cache.get_local_meta() or SyncMeta(last_updated_at="")
                local_meta.files[file_id] = entry.model_copy()
                local_meta.last_updated_at = utc_timestamp()
                self.cache.set_local_meta(local_meta)
            await self.cache.flush()

            self.conflicts = [c for c in self.conflicts if c.file_id != file_id]
            if not self.conflicts:
                self.status = SyncStatus.IDLE
            logger.info(f"Resolved conflict on {file_id} with {choice.value}")

        except DriveHubError as e:
            self._fail(e, "Resolve failed")
            raise
        except Exception as e:
            self._fail(e, "Resolve failed")
            raise SyncError(f"Resolve failed: {e}", file_id=file_id)

    # ------------------------------------------------------------------
    # full sync
    # ------------------------------------------------------------------

    async def full_pull(self) -> List[str]:
        """
        Download every remote file whose checksum differs from the cache.

        The local snapshot becomes the full remote snapshot.

        Returns:
            Ids of the downloaded files
        """
        self._begin()
        try:
            skip_hashes = {f.file_id: f.md5_checksum for f in self.cache.all_files() if f.md5_checksum}
            files, remote_meta = await self.api.full_pull(skip_hashes)

            for file in files:
                self._store_pulled(file)

            local_meta = remote_meta.model_copy(deep=True)
            local_meta.last_updated_at = utc_timestamp()
            self.cache.set_remote_meta(remote_meta)
            self.cache.set_local_meta(local_meta)
            await self.cache.flush()
            self._finish()
            logger.info(f"Full pull downloaded {len(files)} file(s), skipped {len(skip_hashes)} cached")
            return [f.file_id for f in files]

        except DriveHubError as e:
            self._fail(e, "Full pull failed")
            raise
        except Exception as e:
            self._fail(e, "Full pull failed")
            raise SyncError(f"Full pull failed: {e}")

    async def full_push(self) -> List[str]:
        """
        Upload every locally modified file, then replace the remote
        snapshot with the local one.

        Returns:
            Ids of the uploaded files
        """
        self._begin()
        batch = _RagBatch()
        try:
            local_meta = self.cache.get_local_meta()
            working_meta = local_meta.model_copy(deep=True) if local_meta else SyncMeta()
            pushed: List[str] = []
            skipped = 0
            for file_id in self.history.locally_modified_file_ids():
                cached = self.cache.get_file(file_id)
                if cached is None:
                    skipped += 1
                    continue
                await self._push_file(file_id, cached, working_meta, batch)
                pushed.append(file_id)

            await self._save_rag(batch)

            working_meta.last_updated_at = utc_timestamp()
            self.cache.set_local_meta(working_meta)
            remote_meta = await self.api.full_push(working_meta)
            self.cache.set_remote_meta(remote_meta)

            self.history.clear_all()
            await self.cache.flush()

            await self._try_retry_pending()
            self._finish(skipped, "Full push")
            logger.info(f"Full push uploaded {len(pushed)} file(s)")
            return pushed

        except DriveHubError as e:
            await self._try_save_rag(batch)
            self._fail(e, "Full push failed")
            raise
        except Exception as e:
            await self._try_save_rag(batch)
            self._fail(e, "Full push failed")
            raise SyncError(f"Full push failed: {e}")

    # ------------------------------------------------------------------
    # edit history
    # ------------------------------------------------------------------

    async def file_history(self, file_id: str) -> List[LocalEditEntry]:
        """
        Local and remote edit history of a cached file, newest first.

        Remote entries are looked up by the cached file name; a file never
        pulled has local entries only.
        """
        local = self.history.get_history(file_id)
        cached = self.cache.get_file(file_id)
        if cached is None:
            return local
        remote = await self.api.edit_history(cached.file_name)
        return merge_entries(local, remote)
