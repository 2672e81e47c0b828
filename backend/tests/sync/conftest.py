# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync fixtures: one server-side SyncService over the in-memory Drive and a
device-side SyncClient talking to it in-process.
"""

import pytest

from drivehub.drive.settings_store import UserSettingsStore
from drivehub.history.local import LocalEditHistory
from drivehub.history.remote import EditHistoryRecorder
from drivehub.sync.api_client import LocalSyncApi
from drivehub.sync.client import SyncClient
from drivehub.sync.local_cache import LocalCache
from drivehub.sync.service import SyncService


@pytest.fixture
def settings_store(file_store):
    return UserSettingsStore(file_store, file_store.root_folder_id)


@pytest.fixture
def recorder(file_store):
    return EditHistoryRecorder(file_store, file_store.root_folder_id)


@pytest.fixture
def service(file_store, sync_meta, settings_store, recorder):
    """SyncService without a RAG indexer"""
    return SyncService(
        file_store,
        file_store.root_folder_id,
        meta_store=sync_meta,
        settings_store=settings_store,
        history=recorder,
    )


@pytest.fixture
def cache():
    return LocalCache()


@pytest.fixture
def device(service, cache):
    """A device with an empty memory-only cache"""
    return SyncClient(LocalSyncApi(service), cache, LocalEditHistory(cache))


@pytest.fixture
def put_remote(file_store, sync_meta):
    """Creates a root file and tracks it in the remote meta"""

    async def put(name: str, content: str):
        created = await file_store.create(name, content, file_store.root_folder_id)
        await sync_meta.upsert_file(created)
        return created

    return put
