"""State shared by the components of one corpus index."""

import asyncio

from shared.clients.corpus.CorpusClientInterface import CorpusClientInterface
from shared.clients.embed.EmbedGate import EmbedGate
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.StoreErrors import StorePersistError
from shared.clients.store.VectorStore import VectorStore
from shared.clients.store.models.StoreSchema import StoreSchema
from shared.helper.FilterPolicy import FilterPolicy
from shared.helper.HelperConfig import HelperConfig


class IndexContext:
    """Owns the store handle of one corpus and the locks around it.

    ``run_lock`` is held by a bulk run and by every operation that replaces
    the whole store. ``store_generation`` changes with each replacement, so a
    live edit that started against an older store can detect it and drop its
    write.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        corpus: CorpusClientInterface,
        store_client: StoreClientInterface,
        gate: EmbedGate,
    ) -> None:
        self.logging = helper_config.get_logger()
        self.helper_config = helper_config
        self.corpus = corpus
        self.store_client = store_client
        self.gate = gate
        self.filter_policy = FilterPolicy(helper_config)

        self.debounce_seconds = float(helper_config.get_number_val("INDEX_DEBOUNCE_SECONDS", default=5))
        self.pause_poll_seconds = float(helper_config.get_number_val("INDEX_PAUSE_POLL_SECONDS", default=0.1))
        self.finalize_delay_seconds = float(helper_config.get_number_val("INDEX_FINALIZE_DELAY_SECONDS", default=0.1))
        self.autosave_seconds = float(helper_config.get_number_val("INDEX_AUTOSAVE_SECONDS", default=120))

        self.store: VectorStore | None = None
        self.store_path: str = ""
        self.store_generation = 0
        self.dirty = False
        self.run_lock = asyncio.Lock()
        # paths whose embedding failed, retried by the next incremental run
        self.files_missing_embeddings: set[str] = set()
        # paths of empty documents with the mtime they were seen at, not selected again until edited
        self.skipped_empty: dict[str, int] = {}

    def get_corpus_name(self) -> str:
        return self.corpus.get_corpus_name()

    def attach_store(self, store: VectorStore) -> None:
        self.store = store
        self.store_generation += 1

    def replace_store(self, schema: StoreSchema) -> VectorStore:
        """Discard the current store and install an empty one. Caller holds ``run_lock``."""
        store = self.store_client.do_create_empty(schema, corpus_name=self.get_corpus_name())
        self.attach_store(store)
        self.files_missing_embeddings.clear()
        self.skipped_empty.clear()
        self.dirty = True
        return store

    def mark_dirty(self) -> None:
        self.dirty = True

    async def do_persist(self) -> bool:
        """Write the store to disk.

        Persistence errors are logged and not retried. The in-memory store stays
        authoritative until the next successful write.

        Returns:
            bool: True if the snapshot was written.
        """
        if self.store is None:
            return False
        self.dirty = False
        try:
            await self.store_client.do_persist(self.store, self.store_path)
        except StorePersistError as e:
            self.dirty = True
            self.logging.error("Saving the index failed: %s", e)
            return False
        return True
