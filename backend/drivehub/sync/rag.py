# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
RAG Indexer - push-time registration of synced files in the default store.

Registration is auxiliary to sync: callers record failures as "pending"
entries in the store's file table and retry them later. Tracking lives in
the user settings under the default store key.
"""

import time
from typing import Any, Dict, List, Optional

from drivehub.core.config import get_config
from drivehub.core.errors import DriveHubError, ValidationError
from drivehub.core.logging import get_service_logger
from drivehub.drive.settings_store import UserSettingsStore
from drivehub.drive.store import FileStore
from drivehub.rag.eligibility import is_rag_eligible, matches_exclude_patterns
from drivehub.rag.provider import RagProvider, calculate_checksum
from drivehub.settings import RagFileInfo, RagSetting, UserSettings
from drivehub.sync.meta import RemoteSyncMetaStore
from drivehub.sync.models import RagRegisterResult, RagUpdate

logger = get_service_logger("rag_indexer")


def now_ms() -> int:
    return int(time.time() * 1000)


def pending_info(fallback: RagFileInfo, document_id: Optional[str]) -> RagFileInfo:
    """Pending marker that keeps the document id so a retry can clean it up"""
    return RagFileInfo(
        checksum=fallback.checksum or "",
        uploaded_at=now_ms(),
        file_id=document_id,
        status="pending",
    )


class RagIndexer:
    """
    Registers synced files with the RAG provider.

    Args:
        file_store: Drive access (file bytes are read from Drive when possible)
        provider: RAG store client
        settings_store: Where the tracking table is persisted
        meta_store: Remote sync meta, used to map file names back to ids
        api_key: Gemini API key; without it every operation is skipped
        store_key: Name of the tracked RAG setting (defaults to config)
    """

    def __init__(
        self,
        file_store: FileStore,
        provider: RagProvider,
        settings_store: UserSettingsStore,
        meta_store: RemoteSyncMetaStore,
        api_key: Optional[str],
        store_key: Optional[str] = None,
    ):
        self.file_store = file_store
        self.provider = provider
        self.settings_store = settings_store
        self.meta_store = meta_store
        self.api_key = api_key
        self.store_key = store_key or get_config().default_rag_store_key

    def _tracked_setting(self, settings: UserSettings) -> RagSetting:
        rag_setting = settings.rag_settings.get(self.store_key)
        if rag_setting is None:
            rag_setting = RagSetting()
            settings.rag_settings[self.store_key] = rag_setting
        return rag_setting

    def _enable_rag(self, settings: UserSettings) -> None:
        settings.rag_enabled = True
        if not settings.selected_rag_setting:
            settings.selected_rag_setting = self.store_key

    def _ignored(self, file_name: str, rag_setting: RagSetting) -> bool:
        return not is_rag_eligible(file_name) or matches_exclude_patterns(file_name, rag_setting.exclude_patterns)

    async def register(
        self,
        file_name: str,
        content: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> RagRegisterResult:
        """
        Upload one file to the default store.

        Bytes are read from Drive when `file_id` is given, falling back to
        `content` if the read fails.

        Returns:
            RagRegisterResult; `skipped` when disabled, ineligible, excluded
            or unchanged since the last upload

        Raises:
            ValidationError: If neither content nor a readable file id is given
        """
        if not file_name:
            raise ValidationError("Missing fileName", field="fileName")
        if not is_rag_eligible(file_name):
            return RagRegisterResult(skipped=True, reason="ineligible-extension")

        settings = await self.settings_store.load()
        if not self.api_key or not settings.rag_registration_on_push:
            return RagRegisterResult(skipped=True)

        rag_setting = self._tracked_setting(settings)
        if matches_exclude_patterns(file_name, rag_setting.exclude_patterns):
            return RagRegisterResult(skipped=True, reason="excluded")

        if not rag_setting.store_name:
            store_name = await self.provider.get_or_create_store(self.api_key, self.store_key)
            rag_setting.store_name = store_name
            rag_setting.store_id = store_name
            await self.settings_store.save(settings)

        if file_id:
            try:
                upload = await self.file_store.read_bytes(file_id)
            except DriveHubError:
                if content is None:
                    raise
                upload = content.encode("utf-8")
        elif content is not None:
            upload = content.encode("utf-8")
        else:
            raise ValidationError("Missing content or fileId", field="content")

        existing = rag_setting.files.get(file_name)
        if existing and existing.checksum == calculate_checksum(upload):
            return RagRegisterResult(skipped=True, reason="unchanged")

        registration = await self.provider.register_file(
            self.api_key,
            rag_setting.store_name,
            file_name,
            upload,
            existing.file_id if existing else None,
        )
        logger.info(f"Registered {file_name} in RAG store {rag_setting.store_name}")
        return RagRegisterResult(
            rag_file_info=RagFileInfo(
                checksum=registration.checksum,
                uploaded_at=now_ms(),
                file_id=registration.file_id,
            ),
            store_name=rag_setting.store_name,
        )

    async def save(self, updates: List[RagUpdate], store_name: str = "") -> Dict[str, Any]:
        """
        Merge a batch of registration results into the tracking table.

        Ineligible or excluded names are dropped (deleting their documents
        when possible). A pending update without checksum or document id
        never overwrites an entry that already has a document.
        """
        settings = await self.settings_store.load()
        if not settings.rag_registration_on_push:
            return {"ok": True, "pendingCount": 0, "skipped": True}

        if self.store_key not in settings.rag_settings and store_name:
            settings.rag_settings[self.store_key] = RagSetting(store_name=store_name, store_id=store_name)
        rag_setting = self._tracked_setting(settings)

        if any(update.rag_file_info.status == "registered" for update in updates):
            self._enable_rag(settings)

        for update in updates:
            file_name = update.file_name
            info = update.rag_file_info
            existing = rag_setting.files.get(file_name)

            if self._ignored(file_name, rag_setting):
                document_id = (existing.file_id if existing else None) or info.file_id
                if not document_id:
                    rag_setting.files.pop(file_name, None)
                elif self.api_key and await self.provider.delete_document(self.api_key, document_id):
                    rag_setting.files.pop(file_name, None)
                else:
                    rag_setting.files[file_name] = pending_info(existing or info, document_id)
                continue

            if info.status == "pending" and not info.checksum and not info.file_id and existing and existing.file_id:
                continue
            rag_setting.files[file_name] = info

        await self.settings_store.save(settings)
        pending = sum(1 for info in rag_setting.files.values() if info.status == "pending")
        return {"ok": True, "pendingCount": pending}

    async def delete_document(self, document_id: str) -> Dict[str, Any]:
        if not document_id:
            raise ValidationError("Missing documentId", field="documentId")
        if not self.api_key:
            return {"ok": False, "skipped": True, "reason": "no-api-key"}
        return {"ok": await self.provider.delete_document(self.api_key, document_id)}

    async def retry_pending(self) -> Dict[str, Any]:
        """
        Re-register every pending entry from the file's current Drive bytes.

        Entries for files that left Drive are dropped; ineligible or
        excluded entries have their documents deleted.
        """
        if not self.api_key:
            return {"ok": False, "skipped": True, "reason": "no-api-key"}

        settings = await self.settings_store.load()
        rag_setting = settings.rag_settings.get(self.store_key)
        if not settings.rag_registration_on_push or rag_setting is None or not rag_setting.store_name:
            return {"ok": True, "retried": 0, "stillPending": 0}

        pending = [
            (file_name, info) for file_name, info in rag_setting.files.items()
            if self._ignored(file_name, rag_setting) or info.status == "pending"
        ]
        if not pending:
            return {"ok": True, "retried": 0, "stillPending": 0}

        remote_meta = await self.meta_store.rebuild()
        name_to_id = {entry.name: file_id for file_id, entry in remote_meta.files.items()}

        retried = 0
        still_pending = 0
        for file_name, info in pending:
            if self._ignored(file_name, rag_setting):
                if info.file_id and not await self.provider.delete_document(self.api_key, info.file_id):
                    rag_setting.files[file_name] = pending_info(info, info.file_id)
                    still_pending += 1
                    continue
                rag_setting.files.pop(file_name, None)
                continue

            drive_file_id = name_to_id.get(file_name)
            if not drive_file_id:
                rag_setting.files.pop(file_name, None)
                continue

            try:
                content = await self.file_store.read_bytes(drive_file_id)
                registration = await self.provider.register_file(
                    self.api_key, rag_setting.store_name, file_name, content, info.file_id
                )
            except Exception as e:
                logger.warning(f"RAG retry for {file_name} failed, still pending: {e}")
                still_pending += 1
                continue

            rag_setting.files[file_name] = RagFileInfo(
                checksum=registration.checksum,
                uploaded_at=now_ms(),
                file_id=registration.file_id,
                status="registered",
            )
            retried += 1

        if retried:
            self._enable_rag(settings)
        await self.settings_store.save(settings)
        logger.info(f"RAG retry: {retried} registered, {still_pending} still pending")
        return {"ok": True, "retried": retried, "stillPending": still_pending}
