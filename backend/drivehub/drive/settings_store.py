# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Settings Store - reads and writes settings.json in the Drive root folder.
"""

import json
import logging

from drivehub.drive.store import FileStore
from drivehub.settings import SETTINGS_FILE_NAME, UserSettings

logger = logging.getLogger(__name__)


class UserSettingsStore:
    """
    Per-user settings persisted next to the user's files.

    Args:
        file_store: Drive access
        root_folder_id: Folder holding settings.json
    """

    def __init__(self, file_store: FileStore, root_folder_id: str):
        self.file_store = file_store
        self.root_folder_id = root_folder_id

    async def load(self) -> UserSettings:
        """Stored settings, or defaults when the file is missing"""
        settings_file = await self.file_store.find_by_exact_name(SETTINGS_FILE_NAME, self.root_folder_id)
        if settings_file is None:
            return UserSettings()
        return UserSettings.from_json(await self.file_store.read(settings_file.id))

    async def save(self, settings: UserSettings) -> None:
        content = json.dumps(settings.to_wire(), indent=2, ensure_ascii=False)
        settings_file = await self.file_store.find_by_exact_name(SETTINGS_FILE_NAME, self.root_folder_id)
        if settings_file:
            await self.file_store.update(settings_file.id, content, "application/json")
        else:
            await self.file_store.create(SETTINGS_FILE_NAME, content, self.root_folder_id, "application/json")
        logger.debug("Saved user settings")
