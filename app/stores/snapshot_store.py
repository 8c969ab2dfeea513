"""Snapshot stores receiving published play count results."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from app.errors import PublishError

logger = logging.getLogger(__name__)


class SnapshotStore(ABC):
    """Named-blob sink; `put` raises `PublishError` when the write fails."""

    @abstractmethod
    async def put(self, name: str, content: bytes) -> None:
        """Create or replace the blob `name`."""

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> "SnapshotStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class GistSnapshotStore(SnapshotStore):
    """Writes snapshots as files of a single GitHub gist."""

    def __init__(self, github_client: Any, *, gist_id: str) -> None:
        self._github_client = github_client
        self._gist_id = gist_id

    async def put(self, name: str, content: bytes) -> None:
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PublishError(f"Snapshot {name} is not valid UTF-8: {exc}") from exc

        response = await self._github_client.update_gist_file(self._gist_id, name, text)
        if not response.is_ok:
            raise PublishError(
                f"Failed to update gist {self._gist_id} file {name}: "
                f"{response.error or 'unknown'} (status {response.status_code})"
            )
        logger.info(f"Updated gist {self._gist_id} file {name}")

    async def aclose(self) -> None:
        await self._github_client.aclose()


class FilesystemSnapshotStore(SnapshotStore):
    """Writes snapshots into a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _write(self, name: str, content: bytes) -> Path:
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._root / Path(name).name
        path.write_bytes(content)
        return path

    async def put(self, name: str, content: bytes) -> None:
        try:
            path = await asyncio.to_thread(self._write, name, content)
        except OSError as exc:
            raise PublishError(f"Failed to write snapshot {name}: {exc}") from exc
        logger.info(f"Wrote snapshot to {path}")
