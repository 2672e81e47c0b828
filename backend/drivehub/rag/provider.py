# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
RAG Provider Interface

File-search store operations used by the rag-sync node and by push-time
registration. Concrete vector-store clients live outside this package.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional, Union
from pydantic import BaseModel


class RagRegistration(BaseModel):
    checksum: str
    file_id: Optional[str] = None


class RagProvider(ABC):

    @abstractmethod
    async def get_or_create_store(self, api_key: str, display_name: str) -> str:
        """Return the store name for `display_name`, creating the store if needed"""

    @abstractmethod
    async def upload_file(self, api_key: str, store_name: str, file_name: str, content: bytes) -> Optional[str]:
        """Upload a document; returns the document id when the store reports one"""

    @abstractmethod
    async def register_file(
        self,
        api_key: str,
        store_name: str,
        file_name: str,
        content: bytes,
        existing_document_id: Optional[str] = None,
    ) -> RagRegistration:
        """Replace (or create) the document for `file_name`"""

    @abstractmethod
    async def delete_document(self, api_key: str, document_id: str) -> bool:
        """Delete a document; False when the store refused"""


def calculate_checksum(content: Union[str, bytes]) -> str:
    """SHA-256 of the content, used to skip unchanged uploads"""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()
