# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
DriveHub API server.

Builds the FastAPI app: long-lived collaborators are created here and kept
on app.state, routers pull them out through drivehub.core.dependencies.

Run with:
    uvicorn drivehub.main:create_app --factory
"""

from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from drivehub.api import edit_history, sync, workflows
from drivehub.core.config import Config, get_config
from drivehub.core.errors import DriveHubError
from drivehub.core.logging import configure_logging, get_logger
from drivehub.drive.memory import InMemoryFileStore
from drivehub.drive.store import FileStore
from drivehub.execution_store import ExecutionStore
from drivehub.llm.provider import LLMProvider
from drivehub.rag.provider import RagProvider
from drivehub.services.workflow_runner import WorkflowRunner
from drivehub.sync.meta import RemoteSyncMetaStore
from drivehub.workflow.history_store import ExecutionHistoryStore

# Load .env from the repository root before anything reads secrets
_env_path = Path(__file__).parent.parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

logger = get_logger(__name__)


def create_app(
    file_store: Optional[FileStore] = None,
    root_folder_id: Optional[str] = None,
    llm: Optional[LLMProvider] = None,
    rag_provider: Optional[RagProvider] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    history_store: Optional[ExecutionHistoryStore] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """
    Build the DriveHub application.

    Args:
        file_store: Drive backend; an in-memory store when omitted
        root_folder_id: App root folder; required with a custom file_store
        llm: Chat backend for command nodes
        rag_provider: File-search backend for RAG registration
        http_transport: Transport for outbound HTTP (http and mcp nodes)
        history_store: Persistence for finished runs
        config: Overrides the global configuration

    Returns:
        Configured FastAPI app
    """
    config = config or get_config()

    if file_store is None:
        memory_store = InMemoryFileStore(trash_folder_name=config.trash_folder_name)
        file_store = memory_store
        root_folder_id = memory_store.root_folder_id
    elif root_folder_id is None:
        root_folder_id = getattr(file_store, "root_folder_id", None)
    if root_folder_id is None:
        raise ValueError("root_folder_id is required for a custom file store")

    app = FastAPI(
        title="DriveHub",
        description="Drive-backed workflows and file sync",
        version="0.1.0",
    )

    # CORS for the web client
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.file_store = file_store
    app.state.root_folder_id = root_folder_id
    app.state.llm = llm
    app.state.rag_provider = rag_provider
    app.state.http_transport = http_transport
    app.state.sync_meta = RemoteSyncMetaStore(file_store, root_folder_id)
    app.state.workflow_runner = WorkflowRunner(
        ExecutionStore(ttl_seconds=config.execution_ttl_seconds),
        history_store or ExecutionHistoryStore(config.executions_path),
    )

    @app.exception_handler(DriveHubError)
    async def drivehub_error_handler(request: Request, exc: DriveHubError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "drivehub"}

    app.include_router(workflows.router)
    app.include_router(sync.router)
    app.include_router(edit_history.router)

    logger.info(f"DriveHub app created (root folder {root_folder_id})")
    return app


if __name__ == "__main__":
    import uvicorn

    _config = get_config()
    configure_logging(_config.log_level, _config.log_format, Path(_config.logs_path) / "drivehub.log")
    uvicorn.run(create_app(), host=_config.service_host, port=_config.port)
