"""
Database backups.

`VACUUM INTO` cannot run inside a transaction, so backups use their own
autocommit connection and never a request session.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from bujo.core.config import settings
from bujo.core.errors import IntegrityError, NotFoundError, StoreError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

BACKUP_PATTERN = "bujo-*.db"


def backup_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(tz=timezone.utc)
    return f"bujo-{now:%Y%m%d-%H%M%S}.db"


def create_backup(engine: Engine, directory: Optional[PathLike] = None) -> Path:
    target_dir = Path(directory or settings.BACKUP_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / backup_name()
    if target.exists():
        raise StoreError(f"Backup {target.name} already exists.", details={"path": str(target)})
    try:
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            conn.execute(text("VACUUM INTO :path"), {"path": str(target)})
    except sa_exc.SQLAlchemyError as exc:
        raise StoreError("Backup failed.", details={"reason": str(exc)}) from exc
    logger.info("wrote backup %s", target)
    return target


def list_backups(directory: Optional[PathLike] = None) -> list[Path]:
    """Backups in `directory`, newest first."""
    target_dir = Path(directory or settings.BACKUP_DIR)
    if not target_dir.is_dir():
        return []
    return sorted(target_dir.glob(BACKUP_PATTERN), key=lambda p: p.name, reverse=True)


def verify_backup(path: PathLike) -> None:
    path = Path(path)
    if not path.is_file():
        raise NotFoundError("backup", str(path))
    engine = create_engine(f"sqlite:///{path}", poolclass=NullPool)
    try:
        with engine.connect() as conn:
            rows = [r[0] for r in conn.execute(text("PRAGMA integrity_check")).fetchall()]
    except sa_exc.DatabaseError as exc:
        logger.warning("backup %s is unreadable: %s", path, exc)
        raise IntegrityError(f"Backup {path.name} is corrupt.", details={"reason": str(exc)}) from exc
    finally:
        engine.dispose()
    if rows != ["ok"]:
        logger.warning("backup %s failed integrity check: %s", path, rows)
        raise IntegrityError(f"Backup {path.name} is corrupt.", details={"problems": rows})
