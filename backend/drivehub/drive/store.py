# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
File Store Interface

Narrow async interface over the cloud file store. Concrete clients carry
their own credentials; callers only deal in file ids and names.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from drivehub.drive.models import DriveFile


class FileStore(ABC):
    """Abstract file store. All methods raise NotFoundError for unknown ids."""

    @abstractmethod
    async def get_file(self, file_id: str) -> DriveFile:
        """Metadata for a single file"""

    @abstractmethod
    async def read(self, file_id: str) -> str:
        """Text content of a file"""

    @abstractmethod
    async def read_bytes(self, file_id: str) -> bytes:
        """Raw content of a file"""

    @abstractmethod
    async def create(self, name: str, content: str, parent_id: str, mime_type: str = "text/plain") -> DriveFile:
        """Create a text file under `parent_id`"""

    @abstractmethod
    async def create_binary(self, name: str, data: bytes, parent_id: str, mime_type: str) -> DriveFile:
        """Create a binary file under `parent_id`"""

    @abstractmethod
    async def update(self, file_id: str, content: str, mime_type: Optional[str] = None) -> DriveFile:
        """Replace text content, returning fresh metadata (new checksum)"""

    @abstractmethod
    async def update_binary(self, file_id: str, data: bytes, mime_type: Optional[str] = None) -> DriveFile:
        """Replace binary content"""

    @abstractmethod
    async def search(self, parent_id: str, query: str) -> List[DriveFile]:
        """Fuzzy name search among the direct children of `parent_id`"""

    @abstractmethod
    async def find_by_exact_name(self, name: str, parent_id: Optional[str] = None) -> Optional[DriveFile]:
        """First non-trashed file named `name`, in `parent_id` or anywhere when None"""

    @abstractmethod
    async def list_files(self, parent_id: str) -> List[DriveFile]:
        """Direct children of `parent_id` that are not folders"""

    @abstractmethod
    async def ensure_folder(self, name: str, parent_id: str) -> str:
        """Id of the named subfolder, creating it if missing"""

    @abstractmethod
    async def move(self, file_id: str, new_parent_id: str) -> DriveFile:
        """Move a file to another folder"""

    @abstractmethod
    async def rename(self, file_id: str, new_name: str) -> DriveFile:
        """Rename a file in place"""

    @abstractmethod
    async def delete(self, file_id: str, permanent: bool = False) -> None:
        """Move a file to the trash container, or remove it for good"""
