# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync API clients.

SyncApi turns the JSON sync actions into typed calls for SyncClient.
HttpSyncApi talks to a DriveHub server over HTTP; LocalSyncApi calls a
SyncService in the same process (development and tests). Both go through
the same wire shapes.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from drivehub.core.config import get_config
from drivehub.core.errors import SyncError
from drivehub.drive.models import DriveFile
from drivehub.sync.diff import SyncDiff
from drivehub.sync.local_cache import LocalEditEntry
from drivehub.sync.meta import SyncMeta
from drivehub.sync.models import RagRegisterResult, RagUpdate, ResolveChoice, TransferredFile
from drivehub.sync.service import SyncService

logger = logging.getLogger(__name__)


def _meta_wire(meta: Optional[SyncMeta]) -> Optional[Dict[str, Any]]:
    return meta.to_wire() if meta else None


class SyncApi(ABC):
    """Typed sync actions over an action transport"""

    @abstractmethod
    async def call(self, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Send one sync action and return the response body"""

    @abstractmethod
    async def write_file(self, file_id: str, content: str, encoding: str) -> Dict[str, Any]:
        """Write file content on the server; returns {"file": ...}"""

    async def diff(
        self,
        local_meta: Optional[SyncMeta],
        locally_modified_ids: Iterable[str],
    ) -> Tuple[SyncDiff, SyncMeta]:
        data = await self.call("diff", {
            "localMeta": _meta_wire(local_meta),
            "locallyModifiedFileIds": list(locally_modified_ids),
        })
        return SyncDiff.model_validate(data["diff"]), SyncMeta.model_validate(data["remoteMeta"])

    async def pull(self, file_ids: Iterable[str]) -> Tuple[List[TransferredFile], SyncMeta]:
        data = await self.call("pull", {"fileIds": list(file_ids)})
        return (
            [TransferredFile.model_validate(f) for f in data["files"]],
            SyncMeta.model_validate(data["remoteMeta"]),
        )

    async def resolve(
        self,
        file_id: str,
        choice: ResolveChoice,
        local_content: Optional[str],
    ) -> Tuple[Optional[TransferredFile], SyncMeta]:
        data = await self.call("resolve", {
            "fileId": file_id,
            "choice": choice.value,
            "localContent": local_content,
        })
        file = TransferredFile.model_validate(data["file"]) if data.get("file") else None
        return file, SyncMeta.model_validate(data["remoteMeta"])

    async def full_pull(self, skip_hashes: Dict[str, str]) -> Tuple[List[TransferredFile], SyncMeta]:
        data = await self.call("fullPull", {"skipHashes": skip_hashes})
        return (
            [TransferredFile.model_validate(f) for f in data["files"]],
            SyncMeta.model_validate(data["remoteMeta"]),
        )

    async def full_push(self, local_meta: SyncMeta) -> SyncMeta:
        data = await self.call("fullPush", {"localMeta": local_meta.to_wire()})
        return SyncMeta.model_validate(data["remoteMeta"])

    async def update_file(self, file_id: str, content: str, encoding: str = "utf-8") -> DriveFile:
        data = await self.write_file(file_id, content, encoding)
        return DriveFile.model_validate(data["file"])

    async def rag_register(self, file_id: str, content: str, file_name: str) -> RagRegisterResult:
        data = await self.call("ragRegister", {"fileId": file_id, "content": content, "fileName": file_name})
        return RagRegisterResult.model_validate(data)

    async def rag_save(self, updates: List[RagUpdate], store_name: str) -> Dict[str, Any]:
        return await self.call("ragSave", {
            "updates": [u.to_wire() for u in updates],
            "storeName": store_name,
        })

    async def rag_delete_doc(self, document_id: str) -> Dict[str, Any]:
        return await self.call("ragDeleteDoc", {"documentId": document_id})

    async def rag_retry_pending(self) -> Dict[str, Any]:
        return await self.call("ragRetryPending", {})

    @abstractmethod
    async def edit_history(self, file_path: str) -> List[LocalEditEntry]:
        """Remote edit-history entries for a file, newest first"""


class LocalSyncApi(SyncApi):
    """In-process transport straight to a SyncService"""

    def __init__(self, service: SyncService):
        self.service = service

    async def call(self, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.service.handle_action(action, body)

    async def write_file(self, file_id: str, content: str, encoding: str) -> Dict[str, Any]:
        written = await self.service.update_file(file_id, content, encoding)
        return {"file": written.to_wire(), "md5Checksum": written.md5_checksum}

    async def edit_history(self, file_path: str) -> List[LocalEditEntry]:
        if self.service.history is None:
            return []
        return await self.service.history.get_history(file_path)


class HttpSyncApi(SyncApi):
    """
    HTTP transport to a DriveHub server.

    Args:
        base_url: Server root, e.g. "http://localhost:8080"
        headers: Extra headers sent with every request
        transport: Optional httpx transport (tests pass httpx.MockTransport)
        timeout: Request timeout in seconds (config `http.timeouts.default` when omitted)
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.transport = transport
        self.timeout = timeout if timeout is not None else get_config().http_timeout

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            try:
                response = await client.request(method, f"{self.base_url}{path}", headers=self.headers, **kwargs)
            except httpx.HTTPError as e:
                raise SyncError(f"Sync request to {path} failed: {e}")

        if response.status_code >= 400:
            try:
                error_body = response.json()
                message = error_body.get("message") or error_body.get("detail") or response.text
            except ValueError:
                message = response.text
            logger.warning(f"Sync request to {path} returned {response.status_code}: {message}")
            raise SyncError(message or f"Sync request failed with HTTP {response.status_code}")
        return response.json()

    async def call(self, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/sync", json={"action": action, **body})

    async def write_file(self, file_id: str, content: str, encoding: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/drive/files/{file_id}", json={"content": content, "encoding": encoding})

    async def edit_history(self, file_path: str) -> List[LocalEditEntry]:
        data = await self._request("GET", "/api/settings/edit-history", params={"filePath": file_path})
        return [LocalEditEntry.model_validate(e) for e in data.get("entries", [])]
