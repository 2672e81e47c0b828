# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
User Settings

Per-user settings stored as settings.json in the Drive root folder.
Field names are camelCase on disk and snake_case in Python.
"""

import json
import logging
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.json"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RagFileInfo(CamelModel):
    checksum: str = ""
    uploaded_at: int = 0
    file_id: Optional[str] = None
    status: str = "registered"  # "registered" | "pending"


class RagSetting(CamelModel):
    store_id: Optional[str] = None
    store_ids: List[str] = Field(default_factory=list)
    store_name: Optional[str] = None
    is_external: bool = False
    target_folders: List[str] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list)
    files: Dict[str, RagFileInfo] = Field(default_factory=dict)

    def effective_store_ids(self) -> List[str]:
        """Store ids used for grounding, external stores first"""
        if self.is_external and self.store_ids:
            return list(self.store_ids)
        if self.store_id:
            return [self.store_id]
        return list(self.store_ids)


class McpServerConfig(CamelModel):
    id: Optional[str] = None
    name: str
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    enabled: bool = True


class EditHistorySettings(CamelModel):
    """Retention for remote edit history; 0 disables a limit"""
    enabled: bool = True
    max_entries_per_file: int = 50
    max_age_in_days: int = 30


class UserSettings(CamelModel):
    api_plan: str = "free"
    selected_model: Optional[str] = None
    rag_enabled: bool = False
    rag_registration_on_push: bool = False
    selected_rag_setting: Optional[str] = None
    rag_settings: Dict[str, RagSetting] = Field(default_factory=dict)
    mcp_servers: List[McpServerConfig] = Field(default_factory=list)
    edit_history: EditHistorySettings = Field(default_factory=EditHistorySettings)
    sync_exclude_patterns: List[str] = Field(default_factory=list)
    max_function_calls: Optional[int] = None

    @classmethod
    def from_json(cls, raw: str) -> "UserSettings":
        """Parse settings.json; unreadable content yields defaults"""
        try:
            return cls.model_validate(json.loads(raw))
        except ValueError as e:
            logger.warning(f"Ignoring malformed settings file: {e}")
            return cls()


def normalize_selected_mcp_server_ids(
    selected: Optional[str],
    servers: List[McpServerConfig]
) -> List[str]:
    """
    Resolve a comma-separated list of MCP server names or ids to ids.

    Unknown entries and disabled servers are dropped; order follows the input.
    """
    if not selected:
        return []
    ids: List[str] = []
    for raw in selected.split(","):
        key = raw.strip()
        if not key:
            continue
        for server in servers:
            if not server.enabled:
                continue
            server_id = server.id or server.name
            if key in (server_id, server.name) and server_id not in ids:
                ids.append(server_id)
                break
    return ids


def select_mcp_servers(selected: Optional[str], servers: List[McpServerConfig]) -> List[McpServerConfig]:
    """Servers named by a comma-separated selection, in selection order"""
    wanted = normalize_selected_mcp_server_ids(selected, servers)
    by_id = {(s.id or s.name): s for s in servers}
    return [by_id[server_id] for server_id in wanted]
