"""File backed storage, one JSON file per key."""
import asyncio
import os
import re
from pathlib import Path
from typing import Optional, Union

import structlog

from monitoring.persistence_metrics import track_storage_operation

logger = structlog.get_logger()

# Addresses and network ids are safe already, anything else gets replaced
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileStorage:
    """
    Stores each record in ``<directory>/<key>.json``.

    Writes go to a temporary file first and are moved into place, so a
    reader never sees a half written record.
    """

    backend = "file"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def _remove(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    @track_storage_operation("get", backend="file")
    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self._path(key))

    @track_storage_operation("set")
    async def set(self, key: str, value: str) -> bool:
        await asyncio.to_thread(self._write, self._path(key), value)
        logger.debug("file_record_written", key=key)
        return True

    @track_storage_operation("delete")
    async def delete(self, key: str) -> bool:
        return await asyncio.to_thread(self._remove, self._path(key))
