# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Sync path rules: which names never sync, which MIME types travel as base64,
and how skipped files are reported.
"""

from typing import Optional, Tuple

SYNC_META_FILE = "_sync-meta.json"
SETTINGS_FILE = "settings.json"

SYNC_EXCLUDED_FILE_NAMES = frozenset({SYNC_META_FILE, SETTINGS_FILE})
SYNC_EXCLUDED_PREFIXES = (
    "history/",
    "trash/",
    "sync_conflicts/",
    "__TEMP__/",
    "plugins/",
)

BINARY_APPLICATION_TYPES = frozenset({
    "application/pdf",
    "application/zip",
    "application/gzip",
    "application/x-tar",
    "application/x-gzip",
    "application/x-bzip2",
    "application/x-7z-compressed",
    "application/x-rar-compressed",
    "application/octet-stream",
    "application/wasm",
})

BINARY_APPLICATION_PREFIXES = (
    "application/vnd.openxmlformats-",  # docx, xlsx, pptx
    "application/vnd.ms-",  # doc, xls, ppt
    "application/vnd.oasis.opendocument.",  # odt, ods, odp
)

BINARY_MEDIA_PREFIXES = ("image/", "video/", "audio/", "font/")


def is_system_file(file_name: str) -> bool:
    return file_name.lstrip("/") in SYNC_EXCLUDED_FILE_NAMES


def is_sync_excluded_path(file_name: str) -> bool:
    normalized = file_name.lstrip("/")
    if normalized in SYNC_EXCLUDED_FILE_NAMES:
        return True
    return normalized.startswith(SYNC_EXCLUDED_PREFIXES)


def is_binary_mime_type(mime_type: Optional[str]) -> bool:
    if not mime_type:
        return False
    if mime_type.startswith(BINARY_MEDIA_PREFIXES):
        return True
    if mime_type in BINARY_APPLICATION_TYPES:
        return True
    return mime_type.startswith(BINARY_APPLICATION_PREFIXES)


def get_sync_completion_status(skipped_count: int, label: str) -> Tuple[str, Optional[str]]:
    """
    Final status for a push.

    Returns:
        ("warning", message) when files were skipped, else ("idle", None)
    """
    if skipped_count > 0:
        return "warning", f"{label} completed with warning: skipped {skipped_count} file(s)."
    return "idle", None
