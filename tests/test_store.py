import hashlib
import os

import pytest

from shared.clients.store.StoreClientManager import StoreClientManager
from shared.clients.store.StoreErrors import StoreDimensionError, StorePersistError
from shared.clients.store.VectorStore import VectorStore
from shared.clients.store.local.StoreClientLocal import StoreClientLocal
from shared.clients.store.models.IndexedDocumentRecord import IndexedDocumentRecord, record_id_for_path
from shared.clients.store.models.StoreSchema import StoreSchema


def make_record(path: str, vector: list[float], mtime: int = 1000, content: str = "text", model: str = "fake-embed|fake") -> IndexedDocumentRecord:
    return IndexedDocumentRecord(
        id=record_id_for_path(path),
        path=path,
        title=os.path.splitext(os.path.basename(path))[0],
        content=content,
        embedding=vector,
        embedding_model=model,
        created_at=0,
        ctime=mtime,
        mtime=mtime,
        tags=["project"],
        extension="md",
    )


class TestVectorStore:
    @pytest.fixture
    def store(self):
        return VectorStore(StoreSchema(vector_length=3), corpus_name="vault")

    def test_upsert_keeps_one_record_per_path(self, store):
        store.upsert(make_record("a.md", [1, 0, 0], content="first"))
        store.upsert(make_record("a.md", [0, 1, 0], content="second"))
        matches = store.query(lambda r: r.path == "a.md")
        assert len(matches) == 1
        assert matches[0].content == "second"
        assert len(store) == 1

    def test_dimension_is_enforced(self, store):
        with pytest.raises(StoreDimensionError):
            store.upsert(make_record("a.md", [1, 0]))
        assert len(store) == 0

    def test_latest_mtime_and_sample(self, store):
        assert store.latest_mtime() is None
        assert store.sample() is None
        store.upsert(make_record("a.md", [1, 0, 0], mtime=100))
        store.upsert(make_record("b.md", [0, 1, 0], mtime=250))
        assert store.latest_mtime() == 250
        assert store.sample() is not None

    def test_remove_by_id_and_path(self, store):
        store.upsert(make_record("a.md", [1, 0, 0]))
        store.upsert(make_record("b.md", [0, 1, 0]))
        assert store.remove([record_id_for_path("a.md"), "missing"]) == 1
        assert store.remove_path("b.md") is True
        assert store.remove_path("b.md") is False
        assert store.paths() == set()

    def test_search_by_vector_ranks_by_cosine(self, store):
        store.upsert(make_record("x.md", [1, 0, 0]))
        store.upsert(make_record("y.md", [0, 1, 0]))
        store.upsert(make_record("xy.md", [1, 1, 0]))
        hits = store.search_by_vector([1, 0.1, 0], limit=2)
        assert [record.path for record, _ in hits] == ["x.md", "xy.md"]
        assert hits[0][1] > hits[1][1]

    def test_search_by_term(self, store):
        store.upsert(make_record("recipes/pasta.md", [1, 0, 0], content="Boil the water, add salt"))
        store.upsert(make_record("notes/meeting.md", [0, 1, 0], content="Discussed budget"))
        hits = store.search_by_term("pasta salt", limit=5)
        assert [record.path for record, _ in hits] == ["recipes/pasta.md"]
        assert hits[0][1] == 1.0


class TestStoreClientLocal:
    @pytest.fixture
    def client(self, helper_config):
        return StoreClientLocal(helper_config=helper_config)

    def test_path_is_hashed_corpus_name(self, client, data_dir):
        path = client.get_store_path("My Vault")
        digest = hashlib.md5("My Vault".encode("utf-8")).hexdigest()
        assert path == os.path.join(data_dir, f"vault-index-{digest}.json")
        assert client.get_store_path("Other Vault") != path

    def test_fallback_dir_when_unconfigured(self, helper_config, monkeypatch, tmp_path):
        monkeypatch.delenv("STORE_LOCAL_DATA_DIR")
        client = StoreClientLocal(helper_config=helper_config)
        assert client.get_store_path("v", fallback_dir=str(tmp_path)).startswith(str(tmp_path))

    @pytest.mark.asyncio
    async def test_persist_then_open(self, client, data_dir):
        store = client.do_create_empty(StoreSchema(vector_length=3), corpus_name="vault")
        store.upsert(make_record("a.md", [0.5, 0.25, 0.125], mtime=42))
        path = client.get_store_path("vault")

        await client.do_persist(store, path)
        assert os.path.isdir(data_dir)

        loaded = await client.do_open(path)
        assert loaded is not None
        assert loaded.vector_length == 3
        assert loaded.schema.fields == store.schema.fields
        record = loaded.get_by_path("a.md")
        assert record.embedding == [0.5, 0.25, 0.125]
        assert record.mtime == 42

    @pytest.mark.asyncio
    async def test_open_missing_or_corrupt_returns_none(self, client, data_dir):
        path = client.get_store_path("vault")
        assert await client.do_open(path) is None
        os.makedirs(data_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")
        assert await client.do_open(path) is None
        with open(path, "wb") as f:
            f.write(b"\xff\xfe\x00garbage\x80")
        assert await client.do_open(path) is None

    @pytest.mark.asyncio
    async def test_persist_failure_raises_store_error(self, client, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = client.do_create_empty(StoreSchema(vector_length=3))
        with pytest.raises(StorePersistError):
            await client.do_persist(store, str(blocker / "index.json"))

    def test_query_and_remove_through_client(self, client):
        store = client.do_create_empty(StoreSchema(vector_length=3))
        store.upsert(make_record("a.md", [1, 0, 0], mtime=1))
        store.upsert(make_record("b.md", [0, 1, 0], mtime=2))
        newer = client.do_query(store, lambda r: r.mtime > 1)
        assert [r.path for r in newer] == ["b.md"]
        assert client.do_remove(store, [r.id for r in newer]) == 1
        assert len(client.do_query(store, limit=10)) == 1

    def test_manager_defaults_to_local(self, helper_config, monkeypatch):
        monkeypatch.delenv("STORE_ENGINE", raising=False)
        assert isinstance(StoreClientManager(helper_config=helper_config).get_client(), StoreClientLocal)
