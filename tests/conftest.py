import asyncio
import hashlib
import logging
import os
import tempfile

# logging_setup writes app.log at import time of the server module
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="vault-index-logs-"))

import pytest

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.local.StoreClientLocal import StoreClientLocal
from shared.clients.corpus.filesystem.CorpusClientFilesystem import CorpusClientFilesystem
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from services.vault_index.IndexService import IndexService
from services.vault_index.SchemaGuard import PROBE_TEXT


class FakeEmbedClient(EmbedClientInterface):
    """Embedding client that computes deterministic vectors locally.

    ``failures`` maps a substring of the text to the exception raised when
    a text containing it is embedded.
    """

    def __init__(self, helper_config: HelperConfig, dimension: int = 8):
        super().__init__(helper_config=helper_config)
        self.dimension = dimension
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.booted = False
        self.closed = False

    def _get_engine_name(self) -> str:
        return "Fake"

    def _get_default_base_url(self) -> str:
        return "http://fake-embed"

    def get_endpoint_embedding(self) -> str:
        return "/embed"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        return response_data["embeddings"]

    async def boot(self, transport=None) -> None:
        self.booted = True

    async def close(self) -> None:
        self.closed = True

    def vector_for(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(digest[i % len(digest)] + 1) / 256.0 for i in range(self.dimension)]

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else texts
        vectors = []
        for text in texts:
            self.calls.append(text)
            for marker, error in self.failures.items():
                if marker in text:
                    raise error
            vectors.append(self.vector_for(text))
        return vectors

    def document_calls(self) -> list[str]:
        """Embedded texts except probe calls."""
        return [c for c in self.calls if c != PROBE_TEXT]


@pytest.fixture
def logger() -> ColorLogger:
    return ColorLogger(logging.getLogger("vault_index.tests"))


@pytest.fixture
def vault_dir(tmp_path) -> str:
    path = tmp_path / "vault"
    path.mkdir()
    return str(path)


@pytest.fixture
def data_dir(tmp_path) -> str:
    return str(tmp_path / "data")


@pytest.fixture
def env(monkeypatch, vault_dir, data_dir):
    monkeypatch.setenv("EMBED_MODEL", "fake-embed")
    monkeypatch.setenv("EMBED_REQUESTS_PER_MINUTE", "0")
    monkeypatch.setenv("STORE_ENGINE", "local")
    monkeypatch.setenv("STORE_LOCAL_DATA_DIR", data_dir)
    monkeypatch.setenv("CORPUS_ENGINE", "filesystem")
    monkeypatch.setenv("CORPUS_FILESYSTEM_ROOT_PATH", vault_dir)
    monkeypatch.setenv("CORPUS_FILESYSTEM_NAME", "test-vault")
    monkeypatch.setenv("INDEX_ENABLED", "true")
    monkeypatch.setenv("INDEX_DEBOUNCE_SECONDS", "0.05")
    monkeypatch.setenv("INDEX_PAUSE_POLL_SECONDS", "0.01")
    monkeypatch.setenv("INDEX_FINALIZE_DELAY_SECONDS", "0")
    monkeypatch.setenv("INDEX_AUTOSAVE_SECONDS", "3600")
    for key in ("INDEX_INCLUSIONS", "INDEX_EXCLUSIONS", "INDEX_ON_STARTUP"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def helper_config(env, logger) -> HelperConfig:
    return HelperConfig(logger=logger)


@pytest.fixture
def embed_client(helper_config) -> FakeEmbedClient:
    return FakeEmbedClient(helper_config=helper_config)


def write_doc(root: str, path: str, text: str, mtime_ms: int | None = None) -> str:
    """Write a corpus document, optionally pinning its mtime (epoch milliseconds)."""
    absolute = os.path.join(root, *path.split("/"))
    os.makedirs(os.path.dirname(absolute), exist_ok=True)
    with open(absolute, "w", encoding="utf-8") as f:
        f.write(text)
    if mtime_ms is not None:
        ns = mtime_ms * 1_000_000
        os.utime(absolute, ns=(ns, ns))
    return absolute


def remove_doc(root: str, path: str) -> None:
    os.remove(os.path.join(root, *path.split("/")))


@pytest.fixture
async def make_service(helper_config, embed_client):
    """Build IndexService instances over the test vault. Closed at teardown."""
    services: list[IndexService] = []

    def _make(client: EmbedClientInterface | None = None) -> IndexService:
        service = IndexService(
            helper_config=helper_config,
            embed_client=client or embed_client,
            store_client=StoreClientLocal(helper_config=helper_config),
            corpus_client=CorpusClientFilesystem(helper_config=helper_config),
        )
        services.append(service)
        return service

    yield _make

    for service in services:
        await service.close()


async def wait_until(predicate, timeout: float = 3.0, interval: float = 0.01) -> None:
    """Poll ``predicate`` on the event loop until it holds or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(interval)
