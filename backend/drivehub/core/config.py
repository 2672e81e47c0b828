# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
DriveHub configuration.

Tunables for the executor, the execution store, sync and logging come from
configs/drivehub.yaml; only secrets (GEMINI_API_KEY) and LOG_LEVEL are read
from the environment.
"""

import logging
import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration, defaults matching configs/drivehub.yaml.
    """

    # -- Server --
    service_host: str = "0.0.0.0"
    port: int = 8080

    # -- Paths --
    executions_path: str = "volumes/executions"
    logs_path: str = "logs"

    # -- HTTP --
    http_timeout: float = 30.0
    mcp_init_timeout: float = 30.0
    mcp_call_timeout: float = 60.0

    # -- Executor --
    max_node_visits: int = 1000
    execution_ttl_seconds: float = 300.0

    # -- LLM --
    default_models: Dict[str, str] = field(default_factory=lambda: {
        "free": "gemini-2.5-flash",
        "paid": "gemini-2.5-pro",
    })
    max_function_calls: int = 20

    # -- Sync --
    conflict_folder_name: str = "sync_conflicts"
    trash_folder_name: str = "trash"
    history_folder_name: str = "history"
    default_rag_store_key: str = "gemihub"

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    def get_default_model(self, plan: Optional[str] = None) -> str:
        """Default model for an API plan, falling back to the free plan."""
        return self.default_models.get(plan or "free") or self.default_models["free"]

    def get_gemini_api_key(self) -> Optional[str]:
        """Get Gemini API key from environment"""
        return get_gemini_api_key()


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_gemini_api_key() -> Optional[str]:
    """GEMINI_API_KEY; the command and rag-sync nodes fail without it."""
    return os.getenv("GEMINI_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = "configs/drivehub.yaml") -> Config:
    """
    Build a Config from a YAML file.

    Missing keys (or a missing file) fall back to the dataclass defaults.
    """
    if not Path(path).exists():
        logger.info(f"Config not found at {path}, using defaults")
        return Config()

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()
    return Config(
        # Server
        service_host=get(y, "server", "host") or defaults.service_host,
        port=get(y, "server", "port") or defaults.port,

        # Paths
        executions_path=get(y, "paths", "executions") or defaults.executions_path,
        logs_path=get(y, "paths", "logs") or defaults.logs_path,

        # HTTP
        http_timeout=get(y, "http", "timeouts", "default") or defaults.http_timeout,
        mcp_init_timeout=get(y, "http", "timeouts", "mcp_init") or defaults.mcp_init_timeout,
        mcp_call_timeout=get(y, "http", "timeouts", "mcp_call") or defaults.mcp_call_timeout,

        # Executor
        max_node_visits=get(y, "executor", "max_node_visits") or defaults.max_node_visits,
        execution_ttl_seconds=get(y, "executor", "execution_ttl_seconds") or defaults.execution_ttl_seconds,

        # LLM
        default_models=get(y, "llm", "default_models") or dict(defaults.default_models),
        max_function_calls=get(y, "llm", "max_function_calls") or defaults.max_function_calls,

        # Sync
        conflict_folder_name=get(y, "sync", "conflict_folder") or defaults.conflict_folder_name,
        trash_folder_name=get(y, "sync", "trash_folder") or defaults.trash_folder_name,
        history_folder_name=get(y, "sync", "history_folder") or defaults.history_folder_name,
        default_rag_store_key=get(y, "rag", "default_store_key") or defaults.default_rag_store_key,

        # Logging
        log_level=os.getenv("LOG_LEVEL", get(y, "logging", "level") or defaults.log_level),
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide Config, loaded on first call."""
    global _config
    if _config is None:
        config_path = os.getenv("DRIVEHUB_CONFIG_PATH", "configs/drivehub.yaml")
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Drop the cached Config and load it again (DRIVEHUB_CONFIG_PATH is re-read)."""
    global _config
    _config = None
    return get_config()
