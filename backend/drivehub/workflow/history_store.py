# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Durable storage for finished workflow runs: one JSON file per run, grouped
by the day the run started. Writes to the same file are serialized with a
per-path asyncio.Lock.
"""
import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from pydantic import ValidationError

from drivehub.core.config import get_config
from drivehub.workflow.models import ExecutionRecord

logger = logging.getLogger(__name__)


class ExecutionHistoryStore:
    """
    Store and query execution records under `<base_dir>/<YYYY-MM-DD>/<id>.json`.
    """

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or get_config().executions_path)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._locks: Dict[Path, asyncio.Lock] = {}

    def _lock(self, path: Path) -> asyncio.Lock:
        return self._locks.setdefault(path, asyncio.Lock())

    async def save(self, record: ExecutionRecord) -> str:
        """
        Write a record, replacing any earlier copy.

        Returns:
            Path of the written file
        """
        day_dir = self.base_dir / record.start_time[:10]
        day_dir.mkdir(parents=True, exist_ok=True)
        execution_file = day_dir / f"{record.id}.json"

        async with self._lock(execution_file):
            async with aiofiles.open(execution_file, 'w') as f:
                await f.write(record.model_dump_json(indent=2))

        return str(execution_file)

    async def _load(self, execution_file: Path) -> Optional[ExecutionRecord]:
        try:
            async with aiofiles.open(execution_file, 'r') as f:
                return ExecutionRecord.model_validate_json(await f.read())
        except (OSError, ValidationError) as e:
            logger.warning(f"Failed to load execution {execution_file}: {e}")
            return None

    async def get(self, execution_id: str) -> Optional[ExecutionRecord]:
        """Find a record by id across all date directories"""
        for date_dir in sorted(self.base_dir.glob("*"), reverse=True):
            if not date_dir.is_dir():
                continue
            execution_file = date_dir / f"{execution_id}.json"
            if execution_file.exists():
                return await self._load(execution_file)
        return None

    async def list(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[ExecutionRecord]:
        """
        List records, newest first, with optional filters.

        Args:
            workflow_id: Filter by workflow
            status: Filter by status (completed/error/cancelled)
            limit: Page size
            offset: Records to skip
        """
        records: List[ExecutionRecord] = []

        for date_dir in sorted(self.base_dir.glob("*"), reverse=True):
            if not date_dir.is_dir():
                continue

            day: List[ExecutionRecord] = []
            for execution_file in date_dir.glob("*.json"):
                record = await self._load(execution_file)
                if record is None:
                    continue
                if workflow_id and record.workflow_id != workflow_id:
                    continue
                if status and record.status.value != status:
                    continue
                day.append(record)

            records.extend(sorted(day, key=lambda r: r.start_time, reverse=True))
            if len(records) >= limit + offset:
                break

        return records[offset:offset + limit]

    async def delete(self, execution_id: str) -> bool:
        for execution_file in self.base_dir.glob(f"*/{execution_id}.json"):
            async with self._lock(execution_file):
                execution_file.unlink()
            return True
        return False
