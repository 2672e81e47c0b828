# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync Service - server side of push/pull synchronization.

Single responsibility: answer sync actions against one user's Drive root.
Clients sequence these actions (see drivehub.sync.client); the service
never decides what a device should do with the answers.

Actions:
- diff, pull, resolve, fullPull, fullPush
- listTrash, listConflicts, restoreTrash, restoreConflict, deleteUntracked
- ragRegister, ragSave, ragDeleteDoc, ragRetryPending
"""

import base64
import binascii
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from drivehub.core.config import Config, get_config
from drivehub.core.errors import DriveHubError, NotFoundError, ValidationError
from drivehub.core.logging import get_service_logger
from drivehub.drive.models import DriveFile
from drivehub.drive.settings_store import UserSettingsStore
from drivehub.drive.store import FileStore
from drivehub.history.remote import EditHistoryRecorder
from drivehub.rag.eligibility import matches_exclude_patterns
from drivehub.sync.diff import SyncDiff, compute_sync_diff
from drivehub.sync.meta import FileSyncMeta, RemoteSyncMetaStore, SyncMeta
from drivehub.sync.models import RagRegisterResult, RagUpdate, ResolveChoice, TransferredFile
from drivehub.sync.paths import is_binary_mime_type, is_sync_excluded_path
from drivehub.sync.rag import RagIndexer

logger = get_service_logger("sync")

ActionHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

RAG_NOT_CONFIGURED = "rag-not-configured"


class SyncService:
    """
    Sync actions for one Drive root.

    Args:
        file_store: Drive access
        root_folder_id: User root folder
        meta_store: Remote sync meta (one shared instance per root)
        settings_store: User settings (exclude patterns, RAG tracking)
        history: Remote edit-history recorder used on push
        rag: RAG indexer for the rag* actions; without one they report "skipped"
        config: Folder names; defaults to the global config
    """

    def __init__(
        self,
        file_store: FileStore,
        root_folder_id: str,
        meta_store: Optional[RemoteSyncMetaStore] = None,
        settings_store: Optional[UserSettingsStore] = None,
        history: Optional[EditHistoryRecorder] = None,
        rag: Optional[RagIndexer] = None,
        config: Optional[Config] = None,
    ):
        self.file_store = file_store
        self.root_folder_id = root_folder_id
        self.meta_store = meta_store or RemoteSyncMetaStore(file_store, root_folder_id)
        self.settings_store = settings_store or UserSettingsStore(file_store, root_folder_id)
        self.history = history
        self.rag = rag
        self.config = config or get_config()

        self._actions: Dict[str, ActionHandler] = {
            "diff": self._action_diff,
            "pull": self._action_pull,
            "resolve": self._action_resolve,
            "fullPull": self._action_full_pull,
            "fullPush": self._action_full_push,
            "listTrash": self._action_list_trash,
            "listConflicts": self._action_list_conflicts,
            "restoreTrash": self._action_restore_trash,
            "restoreConflict": self._action_restore_conflict,
            "deleteUntracked": self._action_delete_untracked,
            "ragRegister": self._action_rag_register,
            "ragSave": self._action_rag_save,
            "ragDeleteDoc": self._action_rag_delete_doc,
            "ragRetryPending": self._action_rag_retry_pending,
        }

    async def handle_action(self, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Dispatch one sync request.

        Args:
            action: Action name (camelCase, as sent by clients)
            body: Request body; keys are camelCase

        Returns:
            JSON-ready response body

        Raises:
            ValidationError: Unknown action or malformed body
        """
        handler = self._actions.get(action)
        if handler is None:
            raise ValidationError(f"Unknown action: {action}", field="action")
        try:
            return await handler(body)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {action} request: {e}", field=action)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _exclude_patterns(self) -> List[str]:
        settings = await self.settings_store.load()
        return settings.sync_exclude_patterns

    async def _folder_id(self, name: str) -> str:
        return await self.file_store.ensure_folder(name, self.root_folder_id)

    async def _transfer(self, file: DriveFile) -> TransferredFile:
        """Read a file for transport; binary content travels as base64"""
        if is_binary_mime_type(file.mime_type):
            data = await self.file_store.read_bytes(file.id)
            content = base64.b64encode(data).decode("ascii")
            encoding = "base64"
        else:
            content = await self.file_store.read(file.id)
            encoding = "utf-8"
        return TransferredFile(
            file_id=file.id,
            file_name=file.name,
            content=content,
            md5_checksum=file.md5_checksum or "",
            modified_time=file.modified_time or "",
            mime_type=file.mime_type,
            encoding=encoding,
        )

    # ------------------------------------------------------------------
    # sync
    # ------------------------------------------------------------------

    async def diff(
        self,
        local_meta: Optional[SyncMeta],
        locally_modified_ids: Iterable[str],
    ) -> Tuple[SyncDiff, SyncMeta]:
        """Classify files against the remote snapshot (rebuilt if missing)"""
        remote_meta = await self.meta_store.get_or_rebuild()
        diff = compute_sync_diff(local_meta, remote_meta, locally_modified_ids, await self._exclude_patterns())
        logger.debug(
            f"Sync diff: {len(diff.to_push)} to push, {len(diff.to_pull)} to pull, "
            f"{len(diff.conflicts)} conflicts"
        )
        return diff, remote_meta

    async def pull(self, file_ids: Iterable[str]) -> Tuple[List[TransferredFile], SyncMeta]:
        """
        Contents of the requested files.

        Files that vanished from Drive since the diff are left out.
        """
        files: List[TransferredFile] = []
        for file_id in file_ids:
            try:
                file = await self.file_store.get_file(file_id)
            except NotFoundError:
                logger.warning(f"Pull skipped {file_id}: no longer on Drive")
                continue
            if is_sync_excluded_path(file.name):
                continue
            files.append(await self._transfer(file))
        return files, await self.meta_store.get_or_rebuild()

    async def resolve(
        self,
        file_id: str,
        choice: ResolveChoice,
        local_content: Optional[str] = None,
    ) -> Tuple[Optional[TransferredFile], SyncMeta]:
        """
        Resolve one conflict.

        With "remote", the local content (when sent) is first saved as a
        timestamped backup in the conflict folder, and the remote content is
        returned. With "local", only the remote snapshot is returned: the
        client adopts its entry and the content travels on the next push.
        """
        remote_meta = await self.meta_store.get_or_rebuild()
        if choice == ResolveChoice.LOCAL:
            logger.info(f"Conflict on {file_id} resolved with local content")
            return None, remote_meta

        file = await self.file_store.get_file(file_id)
        if local_content is not None:
            await self.meta_store.save_conflict_backup(self.config.conflict_folder_name, file.name, local_content)
        logger.info(f"Conflict on {file.name} resolved with remote content")
        return await self._transfer(file), remote_meta

    async def full_pull(self, skip_hashes: Dict[str, str]) -> Tuple[List[TransferredFile], SyncMeta]:
        """
        Every tracked file, except those whose checksum the client already has.

        The remote snapshot is rebuilt from a full listing first.
        """
        remote_meta = await self.meta_store.rebuild()
        excludes = await self._exclude_patterns()
        files: List[TransferredFile] = []
        for file_id, entry in remote_meta.files.items():
            if skip_hashes.get(file_id) and skip_hashes[file_id] == entry.md5_checksum:
                continue
            if is_sync_excluded_path(entry.name) or matches_exclude_patterns(entry.name, excludes):
                continue
            try:
                file = await self.file_store.get_file(file_id)
            except NotFoundError:
                continue
            files.append(await self._transfer(file))
        logger.info(f"Full pull: sending {len(files)} of {len(remote_meta.files)} files")
        return files, remote_meta

    async def full_push(self, local_meta: SyncMeta) -> SyncMeta:
        """
        Replace the remote snapshot with the client's file set.

        Entries are refreshed from live Drive metadata; files no longer on
        Drive are dropped.
        """
        meta = SyncMeta(last_updated_at=local_meta.last_updated_at)
        for file_id in local_meta.files:
            try:
                file = await self.file_store.get_file(file_id)
            except NotFoundError:
                logger.warning(f"Full push dropped {file_id}: no longer on Drive")
                continue
            meta.files[file_id] = FileSyncMeta.from_drive_file(file)
        await self.meta_store.replace(meta)
        logger.info(f"Full push: remote snapshot now tracks {len(meta.files)} files")
        return meta

    async def update_file(self, file_id: str, content: str, encoding: str = "utf-8") -> DriveFile:
        """
        Write pushed content to Drive.

        Records a remote edit-history entry for text files (failures are
        logged, never raised) and upserts the remote snapshot.
        """
        current = await self.file_store.get_file(file_id)

        if encoding == "base64":
            try:
                data = base64.b64decode(content, validate=True)
            except binascii.Error:
                raise ValidationError(f"Invalid base64 content for {current.name}", field="content")
            written = await self.file_store.update_binary(file_id, data)
        else:
            old_content = await self.file_store.read(file_id) if self.history else ""
            written = await self.file_store.update(file_id, content)
            if self.history is not None:
                try:
                    await self.history.save_edit(written.name, old_content, content, source="push")
                except DriveHubError as e:
                    logger.warning(f"Edit history for {written.name} not recorded: {e.message}")

        await self.meta_store.upsert_file(written)
        logger.info(f"Updated {written.name} ({written.md5_checksum})")
        return written

    # ------------------------------------------------------------------
    # trash and conflict backups
    # ------------------------------------------------------------------

    async def list_trash(self) -> List[DriveFile]:
        return await self.file_store.list_files(await self._folder_id(self.config.trash_folder_name))

    async def list_conflicts(self) -> List[DriveFile]:
        return await self.file_store.list_files(await self._folder_id(self.config.conflict_folder_name))

    async def restore_trash(self, file_ids: Iterable[str]) -> List[DriveFile]:
        """Move trashed files back to the root and track them again"""
        trash_id = await self._folder_id(self.config.trash_folder_name)
        restored: List[DriveFile] = []
        for file_id in file_ids:
            file = await self.file_store.get_file(file_id)
            if trash_id not in file.parents:
                logger.warning(f"Restore skipped {file.name}: not in trash")
                continue
            moved = await self.file_store.move(file_id, self.root_folder_id)
            await self.meta_store.upsert_file(moved)
            restored.append(moved)
        logger.info(f"Restored {len(restored)} file(s) from trash")
        return restored

    async def restore_conflict(
        self,
        backup_file_id: str,
        target_file_id: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> DriveFile:
        """
        Bring a conflict backup back.

        Overwrites `target_file_id` when given, otherwise creates `file_name`
        in the root. The backup is deleted afterwards.

        Raises:
            ValidationError: If neither a target nor a file name is given
        """
        if not target_file_id and not file_name:
            raise ValidationError("restoreConflict needs targetFileId or fileName", field="fileName")

        conflict_folder_id = await self._folder_id(self.config.conflict_folder_name)
        backup = await self.file_store.get_file(backup_file_id)
        if conflict_folder_id not in backup.parents:
            raise NotFoundError("Conflict backup", backup_file_id)
        content = await self.file_store.read(backup_file_id)

        if target_file_id:
            restored = await self.update_file(target_file_id, content)
        else:
            restored = await self.file_store.create(file_name, content, self.root_folder_id, backup.mime_type)
            await self.meta_store.upsert_file(restored)

        await self.file_store.delete(backup_file_id, permanent=True)
        logger.info(f"Restored conflict backup {backup.name} as {restored.name}")
        return restored

    async def delete_untracked(self, file_ids: Optional[Iterable[str]] = None) -> List[str]:
        """
        Trash root files the remote snapshot does not track.

        Args:
            file_ids: Limit to these ids; None means every untracked file
        """
        meta = await self.meta_store.read() or SyncMeta()
        wanted = set(file_ids) if file_ids is not None else None
        deleted: List[str] = []
        for file in await self.file_store.list_files(self.root_folder_id):
            if file.id in meta.files or is_sync_excluded_path(file.name):
                continue
            if wanted is not None and file.id not in wanted:
                continue
            await self.file_store.delete(file.id)
            deleted.append(file.id)
        logger.info(f"Moved {len(deleted)} untracked file(s) to trash")
        return deleted

    # ------------------------------------------------------------------
    # action adapters
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_meta(raw: Optional[Dict[str, Any]]) -> Optional[SyncMeta]:
        return SyncMeta.model_validate(raw) if raw else None

    @staticmethod
    def _required(body: Dict[str, Any], key: str) -> Any:
        value = body.get(key)
        if value in (None, ""):
            raise ValidationError(f"Missing {key}", field=key)
        return value

    async def _action_diff(self, body: Dict[str, Any]) -> Dict[str, Any]:
        diff, remote_meta = await self.diff(
            self._parse_meta(body.get("localMeta")),
            body.get("locallyModifiedFileIds") or [],
        )
        return {"diff": diff.to_wire(), "remoteMeta": remote_meta.to_wire()}

    async def _action_pull(self, body: Dict[str, Any]) -> Dict[str, Any]:
        files, remote_meta = await self.pull(body.get("fileIds") or [])
        return {"files": [f.to_wire() for f in files], "remoteMeta": remote_meta.to_wire()}

    async def _action_resolve(self, body: Dict[str, Any]) -> Dict[str, Any]:
        file_id = self._required(body, "fileId")
        try:
            choice = ResolveChoice(body.get("choice"))
        except ValueError:
            raise ValidationError(f"Invalid choice: {body.get('choice')}", field="choice")
        file, remote_meta = await self.resolve(file_id, choice, body.get("localContent"))
        return {
            "file": file.to_wire() if file else None,
            "remoteMeta": remote_meta.to_wire(),
        }

    async def _action_full_pull(self, body: Dict[str, Any]) -> Dict[str, Any]:
        files, remote_meta = await self.full_pull(body.get("skipHashes") or {})
        return {"files": [f.to_wire() for f in files], "remoteMeta": remote_meta.to_wire()}

    async def _action_full_push(self, body: Dict[str, Any]) -> Dict[str, Any]:
        local_meta = self._parse_meta(self._required(body, "localMeta"))
        remote_meta = await self.full_push(local_meta)
        return {"remoteMeta": remote_meta.to_wire()}

    async def _action_list_trash(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {"files": [f.to_wire() for f in await self.list_trash()]}

    async def _action_list_conflicts(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {"files": [f.to_wire() for f in await self.list_conflicts()]}

    async def _action_restore_trash(self, body: Dict[str, Any]) -> Dict[str, Any]:
        restored = await self.restore_trash(self._required(body, "fileIds"))
        return {"restored": [f.to_wire() for f in restored]}

    async def _action_restore_conflict(self, body: Dict[str, Any]) -> Dict[str, Any]:
        restored = await self.restore_conflict(
            self._required(body, "backupFileId"),
            body.get("targetFileId"),
            body.get("fileName"),
        )
        return {"file": restored.to_wire()}

    async def _action_delete_untracked(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {"deleted": await self.delete_untracked(body.get("fileIds"))}

    async def _action_rag_register(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if self.rag is None:
            return RagRegisterResult(skipped=True, reason=RAG_NOT_CONFIGURED).to_wire()
        result = await self.rag.register(
            body.get("fileName") or "",
            body.get("content"),
            body.get("fileId"),
        )
        return result.to_wire()

    async def _action_rag_save(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if self.rag is None:
            return {"ok": True, "pendingCount": 0, "skipped": True}
        updates = [RagUpdate.model_validate(item) for item in body.get("updates") or []]
        return await self.rag.save(updates, body.get("storeName") or "")

    async def _action_rag_delete_doc(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if self.rag is None:
            return {"ok": False, "skipped": True, "reason": RAG_NOT_CONFIGURED}
        return await self.rag.delete_document(body.get("documentId") or "")

    async def _action_rag_retry_pending(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if self.rag is None:
            return {"ok": False, "skipped": True, "reason": RAG_NOT_CONFIGURED}
        return await self.rag.retry_pending()
