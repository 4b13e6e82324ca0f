"""On-disk manifest of downloaded summary models."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ModelRecord(BaseModel):
    spec: str = Field(..., description="Model name, optionally suffixed with ':<variant>'.")
    version: str = ""
    file: str
    size: int = Field(default=0, ge=0)
    sha256: str = ""
    downloaded_at: Optional[datetime] = None
    last_used: Optional[datetime] = None
    hf_repo: str = ""
    hf_commit: str = ""


class ManifestData(BaseModel):
    models: dict[str, ModelRecord] = Field(default_factory=dict)
