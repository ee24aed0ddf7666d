"""Filesystem upload store.

Writes each upload's bytes to ``<upload_dir>/<key>`` and its media type to
a ``<key>.type`` sidecar.  File I/O runs in a worker thread so large PDFs
do not block the event loop.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

import structlog

from studylens.interfaces.upload_store import IUploadStore
from studylens.utils.errors import NotFoundError, ValidationError

logger = structlog.get_logger(logger_name=__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


class LocalUploadStore(IUploadStore):
    """Stores raw upload bytes under a local directory."""

    def __init__(self, upload_dir: str | Path = "data/uploads") -> None:
        self._root = Path(upload_dir)

    def _paths(self, key: str) -> tuple[Path, Path]:
        if not _SAFE_KEY.match(key):
            raise ValidationError(message=f"Invalid upload key: {key!r}")
        data_path = self._root / key
        return data_path, data_path.with_suffix(".type")

    async def save(self, key: str, data: bytes, media_type: str) -> None:
        data_path, type_path = self._paths(key)

        def _write() -> None:
            self._root.mkdir(parents=True, exist_ok=True)
            data_path.write_bytes(data)
            type_path.write_text(media_type, encoding="utf-8")

        await asyncio.to_thread(_write)
        logger.debug("upload_saved", key=key, size=len(data))

    async def read(self, key: str) -> tuple[bytes, str]:
        data_path, type_path = self._paths(key)
        if not data_path.exists():
            raise NotFoundError(message=f"No upload stored under {key}")

        def _read() -> tuple[bytes, str]:
            media_type = (
                type_path.read_text(encoding="utf-8").strip()
                if type_path.exists()
                else "application/octet-stream"
            )
            return data_path.read_bytes(), media_type

        return await asyncio.to_thread(_read)

    async def delete(self, key: str) -> bool:
        data_path, type_path = self._paths(key)

        def _delete() -> bool:
            existed = data_path.exists()
            data_path.unlink(missing_ok=True)
            type_path.unlink(missing_ok=True)
            return existed

        removed = await asyncio.to_thread(_delete)
        logger.debug("upload_deleted", key=key, removed=removed)
        return removed
