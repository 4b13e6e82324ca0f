"""
Model manifest: which summary models are on disk.

A missing manifest file is an empty manifest. A manifest that does not
parse is an error; it is never silently replaced.
"""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Union

from pydantic import ValidationError as PydanticValidationError

from bujo.core.config import settings
from bujo.core.errors import NotFoundError, StoreError, ValidationError
from bujo.db.types import utcnow
from bujo.schemas.manifest import ManifestData, ModelRecord

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"


class ModelManifest:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def in_dir(cls, models_dir: Union[str, Path, None] = None) -> "ModelManifest":
        return cls(Path(models_dir or settings.MODELS_DIR) / MANIFEST_FILE)

    def _read(self) -> ManifestData:
        if not self.path.exists():
            return ManifestData()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError("Cannot read model manifest.", details={"path": str(self.path)}) from exc
        try:
            return ManifestData.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Model manifest is corrupt.",
                details={"path": str(self.path), "errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

    def _write(self, data: ManifestData) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise StoreError("Cannot write model manifest.", details={"path": str(self.path)}) from exc

    def load(self) -> list[ModelRecord]:
        return list(self._read().models.values())

    def get_model(self, spec: str) -> ModelRecord:
        record = self._read().models.get(spec)
        if record is None:
            raise NotFoundError("model", spec)
        return record

    def add_model(self, record: ModelRecord) -> None:
        data = self._read()
        data.models[record.spec] = record
        self._write(data)
        logger.info("recorded model %s in manifest", record.spec)

    def remove_model(self, spec: str) -> None:
        data = self._read()
        if data.models.pop(spec, None) is None:
            raise NotFoundError("model", spec)
        self._write(data)

    def update_last_used(self, spec: str, when: datetime | None = None) -> None:
        data = self._read()
        record = data.models.get(spec)
        if record is None:
            raise NotFoundError("model", spec)
        record.last_used = when or utcnow()
        self._write(data)
