# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the DriveHub API.

Long-lived objects (file store, execution store, runner, shared sync meta)
are created once in create_app and kept on app.state; per-request objects
are built from them here.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from drivehub.core.config import Config, get_config
from drivehub.core.logging import get_logger
from drivehub.drive.settings_store import UserSettingsStore
from drivehub.history.remote import EditHistoryRecorder
from drivehub.services.workflow_runner import WorkflowRunner
from drivehub.sync.rag import RagIndexer
from drivehub.sync.service import SyncService
from drivehub.workflow.context import ServiceContext

logger = get_logger(__name__)


def get_current_config() -> Config:
    """
    Get current application configuration.

    Returns:
        Config: Application configuration
    """
    return get_config()


def get_owner_key(x_owner_key: Optional[str] = Header(default=None)) -> Optional[str]:
    """Caller identity used for prompt-response ownership checks"""
    return x_owner_key


def get_workflow_runner(request: Request) -> WorkflowRunner:
    """Get the WorkflowRunner initialized at startup."""
    return request.app.state.workflow_runner


def get_settings_store(request: Request) -> UserSettingsStore:
    state = request.app.state
    return UserSettingsStore(state.file_store, state.root_folder_id)


def get_edit_history(
    request: Request,
    config: Config = Depends(get_current_config),
) -> EditHistoryRecorder:
    state = request.app.state
    return EditHistoryRecorder(
        state.file_store,
        state.root_folder_id,
        history_folder_name=config.history_folder_name,
    )


async def get_service_context(
    request: Request,
    settings_store: UserSettingsStore = Depends(get_settings_store),
    edit_history: EditHistoryRecorder = Depends(get_edit_history),
    config: Config = Depends(get_current_config),
) -> ServiceContext:
    """Collaborators for one workflow run, with the user's current settings"""
    state = request.app.state
    return ServiceContext(
        file_store=state.file_store,
        root_folder_id=state.root_folder_id,
        gemini_api_key=config.get_gemini_api_key(),
        settings=await settings_store.load(),
        llm=state.llm,
        rag=state.rag_provider,
        edit_history=edit_history,
        sync_meta=state.sync_meta,
        http_transport=state.http_transport,
    )


def get_sync_service(
    request: Request,
    settings_store: UserSettingsStore = Depends(get_settings_store),
    edit_history: EditHistoryRecorder = Depends(get_edit_history),
    config: Config = Depends(get_current_config),
) -> SyncService:
    """Get SyncService bound to the shared remote sync meta."""
    state = request.app.state
    rag: Optional[RagIndexer] = None
    if state.rag_provider is not None:
        rag = RagIndexer(
            state.file_store,
            state.rag_provider,
            settings_store,
            state.sync_meta,
            api_key=config.get_gemini_api_key(),
            store_key=config.default_rag_store_key,
        )
    return SyncService(
        state.file_store,
        state.root_folder_id,
        meta_store=state.sync_meta,
        settings_store=settings_store,
        history=edit_history,
        rag=rag,
        config=config,
    )
