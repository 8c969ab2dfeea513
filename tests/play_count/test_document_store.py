from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from app.errors import AuthError, DayDecodeError, DayNotFound, StoreIOError, TransportError
from app.stores.contracts import FetchResult, FetchState
from app.stores.document_store import FilesystemDocumentStore, GitHubContentDocumentStore


class FakeClient:
    def __init__(self, results: dict[str, FetchResult[bytes]]) -> None:
        self.results = results
        self.calls: list[tuple[str, str, str]] = []
        self.closed = False

    async def get_content(self, owner: str, repo: str, path: str) -> FetchResult[bytes]:
        self.calls.append((owner, repo, path))
        return self.results.get(path, FetchResult(state=FetchState.FAILED, status_code=404, error="not found"))

    async def aclose(self) -> None:
        self.closed = True


def _store(client: Any) -> GitHubContentDocumentStore:
    return GitHubContentDocumentStore(client, owner="octo", repo="history", data_path="/data/")


@pytest.mark.asyncio
async def test_github_store_reads_document_under_data_path() -> None:
    client = FakeClient({"data/2024-03-07.json": FetchResult(state=FetchState.OK, data=b'{"items": []}')})

    raw = await _store(client).get("2024-03-07.json")

    assert raw == b'{"items": []}'
    assert client.calls == [("octo", "history", "data/2024-03-07.json")]


@pytest.mark.asyncio
async def test_github_store_maps_missing_file_to_day_not_found() -> None:
    with pytest.raises(DayNotFound) as exc_info:
        await _store(FakeClient({})).get("2024-03-07.json")

    assert exc_info.value.key == "2024-03-07.json"


@pytest.mark.asyncio
async def test_github_store_maps_empty_content_to_decode_error() -> None:
    client = FakeClient({"data/2024-03-07.json": FetchResult(state=FetchState.EMPTY, data=b"", status_code=200)})

    with pytest.raises(DayDecodeError):
        await _store(client).get("2024-03-07.json")


@pytest.mark.asyncio
async def test_github_store_maps_undecodable_payload_to_decode_error() -> None:
    client = FakeClient(
        {"data/2024-03-07.json": FetchResult(state=FetchState.FAILED, status_code=200, error="bad base64")}
    )

    with pytest.raises(DayDecodeError):
        await _store(client).get("2024-03-07.json")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_github_store_treats_rejected_credentials_as_fatal(status_code: int) -> None:
    client = FakeClient(
        {"data/2024-03-07.json": FetchResult(state=FetchState.FAILED, status_code=status_code, error="denied")}
    )

    with pytest.raises(AuthError) as exc_info:
        await _store(client).get("2024-03-07.json")

    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result",
    [
        FetchResult(state=FetchState.FAILED, status_code=502, error="bad gateway"),
        FetchResult(state=FetchState.FAILED, status_code=None, error="connection reset"),
        FetchResult(state=FetchState.FAILED, status_code=429, error="rate limited", rate_limited=True),
    ],
)
async def test_github_store_treats_transport_failures_as_fatal(result: FetchResult[bytes]) -> None:
    client = FakeClient({"data/2024-03-07.json": result})

    with pytest.raises(TransportError):
        await _store(client).get("2024-03-07.json")


@pytest.mark.asyncio
async def test_github_store_closes_its_client() -> None:
    client = FakeClient({})

    async with _store(client):
        pass

    assert client.closed is True


@pytest.mark.asyncio
async def test_filesystem_store_reads_and_reports_missing_files(tmp_path: Path) -> None:
    (tmp_path / "2024-03-07.json").write_bytes(b'{"items": []}')
    store = FilesystemDocumentStore(tmp_path)

    assert await store.get("2024-03-07.json") == b'{"items": []}'
    with pytest.raises(DayNotFound):
        await store.get("2024-03-06.json")


@pytest.mark.asyncio
async def test_filesystem_store_reports_directory_as_undecodable_day(tmp_path: Path) -> None:
    (tmp_path / "2024-03-07.json").mkdir()

    with pytest.raises(DayDecodeError):
        await FilesystemDocumentStore(tmp_path).get("2024-03-07.json")


@pytest.mark.asyncio
async def test_filesystem_store_wraps_other_os_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "2024-03-07.json").write_bytes(b"{}")

    def deny(self: Path) -> bytes:
        raise PermissionError("permission denied")

    monkeypatch.setattr(Path, "read_bytes", deny)

    with pytest.raises(StoreIOError):
        await FilesystemDocumentStore(tmp_path).get("2024-03-07.json")


@pytest.mark.parametrize("key", ["../secrets.json", "/etc/passwd"])
def test_filesystem_store_rejects_keys_outside_root(tmp_path: Path, key: str) -> None:
    with pytest.raises(ValueError):
        FilesystemDocumentStore(tmp_path).resolve(key)
