"""Memory manager settings and configuration schema."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class MemoryLimits(BaseModel):
    """Per-category capacity limits and expiry windows."""
    short_term_limit: int = Field(50, ge=1)
    long_term_limit: int = Field(1000, ge=1)
    working_limit: int = Field(20, ge=1)
    fact_limit: Optional[int] = Field(None, ge=1, description="None keeps every fact")
    short_term_ttl_seconds: int = Field(24 * 60 * 60, ge=0)
    working_ttl_seconds: Optional[int] = Field(None, ge=0, description="None means working entries never expire")


class Paths(BaseModel):
    """File and directory paths configuration."""
    workspace_root: str = "workspace"
    memory_subdir: str = "memory"

    @property
    def memory_dir(self) -> Path:
        """Directory holding the per-user append-only logs."""
        return Path(self.workspace_root) / self.memory_subdir


class Settings(BaseModel):
    """Main application settings."""
    limits: MemoryLimits = Field(default_factory=MemoryLimits)
    paths: Paths = Field(default_factory=Paths)
    fsync: bool = True
    log_level: str = "INFO"
    default_relevant_limit: int = 10

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings, letting TIERED_MEMORY_* environment variables override defaults."""
        settings = cls()
        workspace = os.environ.get("TIERED_MEMORY_WORKSPACE")
        if workspace:
            settings.paths.workspace_root = workspace
        level = os.environ.get("TIERED_MEMORY_LOG_LEVEL")
        if level:
            settings.log_level = level.upper()
        fsync = os.environ.get("TIERED_MEMORY_FSYNC")
        if fsync is not None:
            settings.fsync = fsync.strip().lower() not in ("0", "false", "no", "off")
        return settings
