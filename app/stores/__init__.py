"""Document and snapshot store backends selected from configuration."""

from app.config.settings import Settings, gist_config, github_repo_config
from app.errors import ConfigurationError
from app.stores.document_store import DocumentStore, FilesystemDocumentStore, GitHubContentDocumentStore
from app.stores.github_client import GitHubClient
from app.stores.snapshot_store import FilesystemSnapshotStore, GistSnapshotStore, SnapshotStore

DOCUMENT_BACKENDS = ("github", "filesystem")
SNAPSHOT_BACKENDS = ("gist", "filesystem")


def _unknown_backend(name: str, value: str, choices: tuple[str, ...]) -> ConfigurationError:
    return ConfigurationError(invalid={name: f"unknown backend {value!r}, expected one of {', '.join(choices)}"})


def _github_client(config: Settings, token: str) -> GitHubClient:
    return GitHubClient(
        token=token,
        user_agent=config.USER_AGENT,
        timeout_seconds=config.GITHUB_TIMEOUT_SECONDS,
        max_retries=config.GITHUB_MAX_RETRIES,
        backoff_base_seconds=config.GITHUB_BACKOFF_BASE_SECONDS,
        backoff_max_seconds=config.GITHUB_BACKOFF_MAX_SECONDS,
        rate_limit_buffer_seconds=config.GITHUB_RATE_LIMIT_BUFFER_SECONDS,
    )


def build_document_store(config: Settings) -> DocumentStore:
    """Build the configured document store; raises ConfigurationError if incomplete."""
    backend = config.DOCUMENT_STORE_BACKEND.lower()
    if backend == "filesystem":
        return FilesystemDocumentStore(config.LOCAL_DATA_DIR)
    if backend == "github":
        repo_config = github_repo_config(config)
        return GitHubContentDocumentStore(
            _github_client(config, repo_config.token),
            owner=repo_config.user,
            repo=repo_config.repo,
            data_path=repo_config.data_path,
        )
    raise _unknown_backend("DOCUMENT_STORE_BACKEND", config.DOCUMENT_STORE_BACKEND, DOCUMENT_BACKENDS)


def build_snapshot_store(config: Settings) -> SnapshotStore:
    backend = config.SNAPSHOT_STORE_BACKEND.lower()
    if backend == "filesystem":
        return FilesystemSnapshotStore(config.LOCAL_SNAPSHOT_DIR)
    if backend == "gist":
        target = gist_config(config)
        return GistSnapshotStore(_github_client(config, target.token), gist_id=target.gist_id)
    raise _unknown_backend("SNAPSHOT_STORE_BACKEND", config.SNAPSHOT_STORE_BACKEND, SNAPSHOT_BACKENDS)


__all__ = [
    "DOCUMENT_BACKENDS",
    "SNAPSHOT_BACKENDS",
    "DocumentStore",
    "FilesystemDocumentStore",
    "GitHubContentDocumentStore",
    "GitHubClient",
    "SnapshotStore",
    "GistSnapshotStore",
    "FilesystemSnapshotStore",
    "build_document_store",
    "build_snapshot_store",
]
