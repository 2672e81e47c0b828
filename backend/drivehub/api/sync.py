# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync API Routes

- POST /api/sync: one endpoint, the body's "action" picks the operation
- POST /api/drive/files/{file_id}: content writes used by push
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from drivehub.core.dependencies import get_sync_service
from drivehub.core.errors import NotFoundError, ValidationError
from drivehub.sync.service import SyncService

router = APIRouter(prefix="/api", tags=["sync"])


class FileUpdateRequest(BaseModel):
    content: str
    encoding: str = "utf-8"


@router.post("/sync")
async def sync_action(
    body: Dict[str, Any] = Body(...),
    service: SyncService = Depends(get_sync_service),
) -> Dict[str, Any]:
    """Run one sync action"""
    action = body.get("action")
    if not action:
        raise HTTPException(status_code=400, detail="Missing action")
    try:
        return await service.handle_action(action, body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/drive/files/{file_id}")
async def update_file(
    file_id: str,
    request: FileUpdateRequest,
    service: SyncService = Depends(get_sync_service),
) -> Dict[str, Any]:
    """Write pushed content; returns the new metadata and checksum"""
    try:
        written = await service.update_file(file_id, request.content, request.encoding)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return {"file": written.to_wire(), "md5Checksum": written.md5_checksum}
