"""Key-value persistence for sync results, the item cache and quota usage.

The orchestrator only needs ``get``/``set``/``remove``. ``MemoryStore`` backs
tests and one-shot runs; ``JsonFileStore`` keeps state between server
restarts in a single JSON document. The server gives the quota counter its
own file so counting a call never rewrites the cached video index.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, keys: list[str]) -> dict[str, Any]: ...

    async def set(self, values: dict[str, Any]) -> None: ...

    async def remove(self, keys: list[str]) -> None: ...


class MemoryStore:
    """In-process store. Values are kept as given, not copied."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(initial or {})

    async def get(self, keys: list[str]) -> dict[str, Any]:
        return {k: self.data[k] for k in keys if k in self.data}

    async def set(self, values: dict[str, Any]) -> None:
        self.data.update(values)

    async def remove(self, keys: list[str]) -> None:
        for key in keys:
            self.data.pop(key, None)


class JsonFileStore:
    """Store backed by one JSON file.

    The document is read once and kept in memory; ``set`` and ``remove``
    rewrite the file atomically. Disk I/O runs in a worker thread so the
    event loop is not blocked.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp, self.path)

    async def _document(self) -> dict[str, Any]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._load)
        return self._data

    async def get(self, keys: list[str]) -> dict[str, Any]:
        data = await self._document()
        return {k: data[k] for k in keys if k in data}

    async def set(self, values: dict[str, Any]) -> None:
        data = dict(await self._document())
        data.update(values)
        await asyncio.to_thread(self._write, data)
        self._data = data

    async def remove(self, keys: list[str]) -> None:
        data = dict(await self._document())
        for key in keys:
            data.pop(key, None)
        await asyncio.to_thread(self._write, data)
        self._data = data
