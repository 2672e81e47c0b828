# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the HTTP sync transport
"""

import json

import httpx
import pytest

from drivehub.core.errors import SyncError
from drivehub.sync.api_client import HttpSyncApi
from drivehub.sync.models import ResolveChoice


def api_with(handler) -> HttpSyncApi:
    return HttpSyncApi(
        "http://drivehub.test/",
        headers={"X-Owner-Key": "device-1"},
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_action_is_posted_with_headers():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"file": None, "remoteMeta": {"lastUpdatedAt": "t", "files": {}}})

    file, remote_meta = await api_with(handler).resolve("f1", ResolveChoice.LOCAL, None)

    assert file is None
    assert remote_meta.last_updated_at == "t"
    assert str(seen[0].url) == "http://drivehub.test/api/sync"
    assert seen[0].headers["X-Owner-Key"] == "device-1"
    assert json.loads(seen[0].content) == {
        "action": "resolve", "fileId": "f1", "choice": "local", "localContent": None,
    }


@pytest.mark.asyncio
async def test_update_file_posts_to_drive_route():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/drive/files/f1"
        assert json.loads(request.content) == {"content": "aGk=", "encoding": "base64"}
        return httpx.Response(200, json={"file": {"id": "f1", "name": "a.png", "md5Checksum": "m"}})

    written = await api_with(handler).update_file("f1", "aGk=", "base64")

    assert written.md5_checksum == "m"


@pytest.mark.asyncio
async def test_error_message_field():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "ValidationError", "message": "Missing fileId"})

    with pytest.raises(SyncError, match="Missing fileId"):
        await api_with(handler).rag_delete_doc("d")


@pytest.mark.asyncio
async def test_error_detail_field():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "Not Found"})

    with pytest.raises(SyncError, match="Not Found"):
        await api_with(handler).rag_retry_pending()


@pytest.mark.asyncio
async def test_plain_text_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(SyncError, match="bad gateway"):
        await api_with(handler).full_pull({})


@pytest.mark.asyncio
async def test_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SyncError, match="Sync request to /api/sync failed"):
        await api_with(handler).diff(None, [])
