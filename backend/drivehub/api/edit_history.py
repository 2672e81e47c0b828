# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Edit History API Routes

Remote edit history kept in the Drive history folder:
- GET / DELETE /api/settings/edit-history: one file's entries, or clear them
- GET /api/settings/edit-history-stats: totals across all files
- POST /api/settings/edit-history-prune: apply the user's retention settings
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from drivehub.core.dependencies import get_edit_history, get_settings_store
from drivehub.drive.settings_store import UserSettingsStore
from drivehub.history.remote import EditHistoryRecorder

router = APIRouter(prefix="/api/settings", tags=["edit-history"])


@router.get("/edit-history")
async def read_edit_history(
    file_path: Optional[str] = Query(default=None, alias="filePath"),
    recorder: EditHistoryRecorder = Depends(get_edit_history),
) -> Dict[str, Any]:
    """Remote entries for one file, newest first"""
    if not file_path:
        raise HTTPException(status_code=400, detail="Missing filePath")
    entries = await recorder.get_history(file_path)
    return {"entries": [e.to_wire() for e in entries]}


@router.delete("/edit-history")
async def clear_edit_history(
    body: Dict[str, Any] = Body(...),
    recorder: EditHistoryRecorder = Depends(get_edit_history),
) -> Dict[str, Any]:
    file_path = body.get("filePath")
    if not file_path:
        raise HTTPException(status_code=400, detail="Missing filePath")
    await recorder.clear(file_path)
    return {"success": True}


@router.get("/edit-history-stats")
async def edit_history_stats(recorder: EditHistoryRecorder = Depends(get_edit_history)) -> Dict[str, Any]:
    stats = await recorder.stats()
    return stats.to_wire()


@router.post("/edit-history-prune")
async def prune_edit_history(
    recorder: EditHistoryRecorder = Depends(get_edit_history),
    settings_store: UserSettingsStore = Depends(get_settings_store),
) -> Dict[str, Any]:
    """Drop entries outside the retention configured in settings.json"""
    settings = await settings_store.load()
    deleted = await recorder.prune(settings.edit_history)
    return {"message": f"Pruned {deleted} entries.", "deletedCount": deleted}
