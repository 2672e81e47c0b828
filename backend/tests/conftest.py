# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures: an in-memory Drive and the service context built on it.
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from drivehub.drive.memory import InMemoryFileStore
from drivehub.sync.meta import RemoteSyncMetaStore
from drivehub.workflow.context import ExecutionContext, PromptCallbacks, ServiceContext


@pytest.fixture
def file_store():
    """Fresh in-memory Drive with an empty root folder"""
    return InMemoryFileStore()


@pytest.fixture
def sync_meta(file_store):
    """Remote sync meta over the test Drive"""
    return RemoteSyncMetaStore(file_store, file_store.root_folder_id)


@pytest.fixture
def service_context(file_store, sync_meta):
    """Handler collaborators with no LLM, RAG or API key"""
    return ServiceContext(
        file_store=file_store,
        root_folder_id=file_store.root_folder_id,
        sync_meta=sync_meta,
    )


@pytest.fixture
def context():
    """Empty execution context"""
    return ExecutionContext()


@pytest.fixture
def no_prompts():
    """Prompt callbacks with no UI attached"""
    return PromptCallbacks()
