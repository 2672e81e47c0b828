# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Drive Models

File metadata as returned by the file store, and the file-explorer payload
that workflow variables use to carry whole files between nodes.
"""

import base64
import json
from typing import List, Optional
from pydantic import Field

from drivehub.settings import CamelModel

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class DriveFile(CamelModel):
    """File (or folder) metadata"""
    id: str
    name: str
    mime_type: str = "text/plain"
    md5_checksum: Optional[str] = None
    modified_time: Optional[str] = None
    created_time: Optional[str] = None
    parents: List[str] = Field(default_factory=list)
    size: Optional[int] = None
    web_view_link: Optional[str] = None
    shared: Optional[bool] = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


class FileExplorerData(CamelModel):
    """
    A file held in a workflow variable as JSON.

    content_type "binary" means `data` is base64; "text" means plain text.
    """
    id: Optional[str] = None
    path: str
    basename: str
    name: str
    extension: str = ""
    mime_type: str = "text/plain"
    content_type: str = "text"
    data: str = ""

    @classmethod
    def from_variable(cls, raw: str) -> "FileExplorerData":
        """Parse a variable value; raises ValueError on malformed JSON"""
        return cls.model_validate(json.loads(raw))

    def to_variable(self) -> str:
        return json.dumps(self.to_wire())

    def content_bytes(self) -> bytes:
        if self.content_type == "binary":
            return base64.b64decode(self.data)
        return self.data.encode("utf-8")
