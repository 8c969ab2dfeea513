"""Document stores holding one listening-history document per day."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any

from app.errors import AuthError, DayDecodeError, DayNotFound, StoreIOError, TransportError
from app.stores.contracts import FetchState

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Fetch-by-key source of raw day documents.

    `get` raises `DayUnavailable` subclasses for problems scoped to one key and
    `DocumentStoreError` subclasses for failures that affect every key.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the raw bytes stored under `key`."""

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> "DocumentStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class GitHubContentDocumentStore(DocumentStore):
    """Reads day documents from a repository through the contents API."""

    def __init__(self, github_client: Any, *, owner: str, repo: str, data_path: str = "") -> None:
        self._github_client = github_client
        self._owner = owner
        self._repo = repo
        self._data_path = data_path.strip("/")

    def content_path(self, key: str) -> str:
        return f"{self._data_path}/{key}" if self._data_path else key

    async def get(self, key: str) -> bytes:
        path = self.content_path(key)
        logger.info(f"Getting play history from {self._owner}/{self._repo}:{path}")
        response = await self._github_client.get_content(self._owner, self._repo, path)

        if response.state == FetchState.OK:
            return response.data
        if response.state == FetchState.EMPTY:
            raise DayDecodeError(key, "no content")

        status_code = response.status_code
        error = response.error or "unknown"
        if status_code == 404:
            raise DayNotFound(key, "not found")
        if status_code in (401, 403) and not response.rate_limited:
            raise AuthError(f"GitHub rejected credentials for {self._owner}/{self._repo}", status_code=status_code)
        if status_code is not None and 200 <= status_code < 300:
            # 2xx with an undecodable body (bad base64 or non-JSON)
            raise DayDecodeError(key, error)
        raise TransportError(f"GitHub request for {path} failed: {error}", status_code=status_code)

    async def aclose(self) -> None:
        await self._github_client.aclose()


class FilesystemDocumentStore(DocumentStore):
    """Reads day documents from a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def resolve(self, key: str) -> Path:
        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Document key escapes the store root: {key}")
        return self._root.joinpath(*relative.parts)

    async def get(self, key: str) -> bytes:
        path = self.resolve(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise DayNotFound(key, "not found") from exc
        except IsADirectoryError as exc:
            raise DayDecodeError(key, "path is a directory") from exc
        except OSError as exc:
            raise StoreIOError(f"Failed to read {path}: {exc}") from exc
