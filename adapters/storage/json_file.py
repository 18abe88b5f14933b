"""
Single-file JSON key-value store.

All keys live in one JSON object on disk. File I/O runs in a worker thread so
the event loop never blocks, and every write goes to a temporary file that is
atomically renamed over the original, so a crash mid-write leaves the previous
contents intact.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore:
    """File-backed store implementing the gateway's KeyValueStore protocol."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self.logger = logger.bind(component="json_file_store", path=str(self.path))
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        """
        Value stored under ``key``, or None.

        Raises:
            ValueError: if the file exists but is not a JSON object.
        """
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        # One file holds every key, so writers must not interleave.
        async with self._lock:
            await asyncio.to_thread(self._write_key, key, value)
        self.logger.debug("key_written", key=key, size=len(value))

    def _read_all(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write_key(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
