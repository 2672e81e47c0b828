# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for push-time RAG registration and tracking
"""

import pytest

from drivehub.core.errors import ValidationError
from drivehub.rag.provider import calculate_checksum
from drivehub.settings import RagFileInfo, RagSetting, UserSettings
from drivehub.sync.models import RagUpdate
from drivehub.sync.rag import RagIndexer
from tests.fakes import FakeRagProvider

STORE = "fileSearchStores/gemihub"


@pytest.fixture
def provider():
    return FakeRagProvider()


@pytest.fixture
def indexer(file_store, provider, settings_store, sync_meta):
    return RagIndexer(file_store, provider, settings_store, sync_meta, api_key="key")


async def enable(settings_store, **rag_settings):
    await settings_store.save(UserSettings(rag_registration_on_push=True, rag_settings=rag_settings))


class TestRegister:
    @pytest.mark.asyncio
    async def test_ineligible_extension(self, indexer):
        result = await indexer.register("photo.png", "x")
        assert result.skipped and result.reason == "ineligible-extension"

    @pytest.mark.asyncio
    async def test_requires_file_name(self, indexer):
        with pytest.raises(ValidationError, match="Missing fileName"):
            await indexer.register("", "x")

    @pytest.mark.asyncio
    async def test_disabled_in_settings(self, indexer, provider):
        result = await indexer.register("a.md", "x")

        assert result.skipped
        assert provider.registered == []

    @pytest.mark.asyncio
    async def test_no_api_key(self, file_store, provider, settings_store, sync_meta):
        await enable(settings_store)
        indexer = RagIndexer(file_store, provider, settings_store, sync_meta, api_key=None)

        assert (await indexer.register("a.md", "x")).skipped

    @pytest.mark.asyncio
    async def test_excluded_name(self, indexer, settings_store):
        await enable(settings_store, gemihub=RagSetting(exclude_patterns=["^drafts/"]))

        result = await indexer.register("drafts/a.md", "x")

        assert result.skipped and result.reason == "excluded"

    @pytest.mark.asyncio
    async def test_creates_store_and_registers_content(self, indexer, settings_store, provider):
        await enable(settings_store)

        result = await indexer.register("a.md", "hello")

        assert provider.registered == [(STORE, "a.md", b"hello", None)]
        assert result.store_name == STORE
        assert result.rag_file_info.checksum == calculate_checksum(b"hello")
        assert result.rag_file_info.file_id == "doc-a.md"
        assert (await settings_store.load()).rag_settings["gemihub"].store_name == STORE

    @pytest.mark.asyncio
    async def test_prefers_drive_bytes(self, indexer, settings_store, provider, put_remote):
        await enable(settings_store)
        a = await put_remote("a.md", "on drive")

        await indexer.register("a.md", "from client", a.id)

        assert provider.registered[0][2] == b"on drive"

    @pytest.mark.asyncio
    async def test_unreadable_drive_file_falls_back_to_content(self, indexer, settings_store, provider):
        await enable(settings_store)

        await indexer.register("a.md", "from client", "missing-id")

        assert provider.registered[0][2] == b"from client"

    @pytest.mark.asyncio
    async def test_needs_content_or_file(self, indexer, settings_store):
        await enable(settings_store)
        with pytest.raises(ValidationError, match="Missing content or fileId"):
            await indexer.register("a.md")

    @pytest.mark.asyncio
    async def test_unchanged_then_replaced(self, indexer, settings_store, provider):
        await enable(settings_store)
        first = await indexer.register("a.md", "hello")
        await indexer.save([RagUpdate(file_name="a.md", rag_file_info=first.rag_file_info)], first.store_name)

        again = await indexer.register("a.md", "hello")
        assert again.skipped and again.reason == "unchanged"

        await indexer.register("a.md", "changed")
        assert provider.registered[-1] == (STORE, "a.md", b"changed", "doc-a.md")


class TestSave:
    @pytest.mark.asyncio
    async def test_disabled(self, indexer):
        assert await indexer.save([]) == {"ok": True, "pendingCount": 0, "skipped": True}

    @pytest.mark.asyncio
    async def test_registered_update_enables_rag(self, indexer, settings_store):
        await enable(settings_store)
        info = RagFileInfo(checksum="c1", uploaded_at=1, file_id="doc-1")

        response = await indexer.save([RagUpdate(file_name="a.md", rag_file_info=info)], STORE)

        assert response == {"ok": True, "pendingCount": 0}
        settings = await settings_store.load()
        assert settings.rag_enabled is True
        assert settings.selected_rag_setting == "gemihub"
        assert settings.rag_settings["gemihub"].store_name == STORE
        assert settings.rag_settings["gemihub"].files["a.md"].file_id == "doc-1"

    @pytest.mark.asyncio
    async def test_bare_pending_keeps_registered_document(self, indexer, settings_store):
        await enable(settings_store, gemihub=RagSetting(
            store_name=STORE,
            files={"a.md": RagFileInfo(checksum="c1", file_id="doc-1")},
        ))

        response = await indexer.save([RagUpdate(file_name="a.md", rag_file_info=RagFileInfo(status="pending"))])

        assert response["pendingCount"] == 0
        tracked = (await settings_store.load()).rag_settings["gemihub"].files["a.md"]
        assert tracked.file_id == "doc-1"
        assert tracked.status == "registered"

    @pytest.mark.asyncio
    async def test_new_pending_is_counted(self, indexer, settings_store):
        await enable(settings_store)
        response = await indexer.save([RagUpdate(file_name="b.md", rag_file_info=RagFileInfo(status="pending"))])
        assert response["pendingCount"] == 1

    @pytest.mark.asyncio
    async def test_ineligible_name_deletes_document(self, indexer, settings_store, provider):
        await enable(settings_store)

        await indexer.save([RagUpdate(file_name="photo.png", rag_file_info=RagFileInfo(file_id="doc-x"))])

        assert provider.deleted == ["doc-x"]
        assert "photo.png" not in (await settings_store.load()).rag_settings["gemihub"].files

    @pytest.mark.asyncio
    async def test_refused_delete_stays_pending(self, indexer, settings_store, provider):
        await enable(settings_store)
        provider.refuse_delete = True

        response = await indexer.save([RagUpdate(file_name="photo.png", rag_file_info=RagFileInfo(file_id="doc-x"))])

        assert response["pendingCount"] == 1
        tracked = (await settings_store.load()).rag_settings["gemihub"].files["photo.png"]
        assert tracked.status == "pending"
        assert tracked.file_id == "doc-x"


class TestRetryPending:
    @pytest.mark.asyncio
    async def test_registers_from_drive_and_drops_missing(self, indexer, settings_store, provider, put_remote):
        await enable(settings_store, gemihub=RagSetting(store_name=STORE, files={
            "a.md": RagFileInfo(status="pending"),
            "gone.md": RagFileInfo(status="pending"),
        }))
        await put_remote("a.md", "drive text")

        response = await indexer.retry_pending()

        assert response == {"ok": True, "retried": 1, "stillPending": 0}
        assert provider.registered == [(STORE, "a.md", b"drive text", None)]
        files = (await settings_store.load()).rag_settings["gemihub"].files
        assert files["a.md"].status == "registered"
        assert files["a.md"].checksum == calculate_checksum(b"drive text")
        assert "gone.md" not in files

    @pytest.mark.asyncio
    async def test_failure_stays_pending(self, indexer, settings_store, provider, put_remote):
        await enable(settings_store, gemihub=RagSetting(store_name=STORE, files={
            "a.md": RagFileInfo(status="pending"),
        }))
        await put_remote("a.md", "drive text")
        provider.fail_register = True

        response = await indexer.retry_pending()

        assert response == {"ok": True, "retried": 0, "stillPending": 1}
        assert (await settings_store.load()).rag_settings["gemihub"].files["a.md"].status == "pending"

    @pytest.mark.asyncio
    async def test_nothing_pending(self, indexer, settings_store):
        await enable(settings_store, gemihub=RagSetting(store_name=STORE))
        assert await indexer.retry_pending() == {"ok": True, "retried": 0, "stillPending": 0}

    @pytest.mark.asyncio
    async def test_no_api_key(self, file_store, provider, settings_store, sync_meta):
        indexer = RagIndexer(file_store, provider, settings_store, sync_meta, api_key=None)
        assert (await indexer.retry_pending())["reason"] == "no-api-key"


class TestDeleteDocument:
    @pytest.mark.asyncio
    async def test_delete(self, indexer, provider):
        assert await indexer.delete_document("doc-1") == {"ok": True}
        assert provider.deleted == ["doc-1"]

    @pytest.mark.asyncio
    async def test_requires_id(self, indexer):
        with pytest.raises(ValidationError, match="Missing documentId"):
            await indexer.delete_document("")
