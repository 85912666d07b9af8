"""Vault index service.

Owns one corpus index: bootstraps the store in the background, exposes the
public indexing operations and wires the live-edit reactor to corpus events.
Every public operation first waits for initialization. When indexing is
disabled or no embedding provider is usable the service ends up
"unavailable" and operations become no-ops.
"""

import asyncio

from shared.clients.corpus.CorpusClientInterface import CorpusClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedGate import EmbedGate
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.IndexedDocumentRecord import IndexedDocumentRecord
from shared.clients.store.models.StoreSchema import StoreSchema
from shared.helper.HelperConfig import HelperConfig
from shared.models.index import IndexingProgress, IndexRunResult, IndexRunStatus
from shared.models.search import SearchHit, SearchResult
from services.vault_index.IndexContext import IndexContext
from services.vault_index.IndexDriver import IndexDriver, ProgressSink
from services.vault_index.IndexErrors import SchemaProbeError
from services.vault_index.LiveEditReactor import LiveEditReactor
from services.vault_index.SchemaGuard import SchemaGuard

UNAVAILABLE_MESSAGE = "Indexing unavailable: no usable embedding provider is configured or indexing is disabled."


class IndexService:
    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        store_client: StoreClientInterface,
        corpus_client: CorpusClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._embed_client = embed_client
        self._store_client = store_client
        self._corpus_client = corpus_client

        self.context = IndexContext(
            helper_config=helper_config,
            corpus=corpus_client,
            store_client=store_client,
            gate=EmbedGate(helper_config, embed_client),
        )
        self.guard = SchemaGuard(self.context)
        self.driver = IndexDriver(self.context, self.guard)
        self.reactor = LiveEditReactor(self.context, self.driver, self.guard, on_model_change=self._do_full_reindex)

        self._initialized = False
        self._available = False
        self._closed = False
        self._watching = False
        self._autosave_task: asyncio.Task | None = None
        self._startup_task: asyncio.Task | None = None
        self._init_task: asyncio.Task | None = None
        try:
            self._init_task = asyncio.get_running_loop().create_task(self._initialize())
        except RuntimeError:
            # no running loop yet, initialization starts with the first operation
            pass

    ##########################################
    ############## LIFECYCLE #################
    ##########################################

    async def wait_for_initialization(self) -> None:
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        await self._init_task

    async def _initialize(self) -> None:
        try:
            if not self._helper_config.get_bool_val("INDEX_ENABLED", default=True):
                self.logging.warning("Indexing is disabled (INDEX_ENABLED=false).")
                return
            if not self._embed_client.is_available():
                self.logging.warning("No usable embedding provider configured. Indexing is unavailable.")
                return

            await self._embed_client.boot()
            await self._store_client.boot()
            await self._corpus_client.boot()

            self.context.store_path = self._store_client.get_store_path(
                self._corpus_client.get_corpus_name(),
                fallback_dir=self._corpus_client.get_data_dir(),
            )
            store = await self._store_client.do_open(self.context.store_path)
            if store is None:
                store = await self._create_initial_store()
            if store is not None:
                self.context.attach_store(store)
            self._available = True
            self.logging.info(
                "Index for corpus '%s' ready (%d records).",
                self._corpus_client.get_corpus_name(), len(store) if store is not None else 0,
                color="green",
            )
        except Exception as e:
            self.logging.error("Index initialization failed, indexing is unavailable: %s", e)
            self._available = False
        finally:
            self._initialized = True

        if self._available:
            self._autosave_task = asyncio.ensure_future(self._autosave_loop())
            if self._helper_config.get_bool_val("INDEX_ON_STARTUP", default=False):
                self._startup_task = asyncio.ensure_future(self.do_index_all())

    async def _create_initial_store(self):
        """Create an empty store sized by a probe. None if the provider cannot be probed yet."""
        try:
            vector_length = await self.guard.do_probe_vector_length()
        except SchemaProbeError as e:
            self.logging.warning("Could not probe the embedding provider, the index is created on the first run: %s", e)
            return None
        except Exception as e:
            self.logging.warning("Could not probe the embedding provider: %s", e)
            return None
        return self._store_client.do_create_empty(StoreSchema(vector_length=vector_length), corpus_name=self._corpus_client.get_corpus_name())

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.context.autosave_seconds)
            if self.context.dirty and not self.context.run_lock.locked():
                self.logging.debug("Autosaving index changes.")
                await self.context.do_persist()

    def is_initialized(self) -> bool:
        return self._initialized

    def is_available(self) -> bool:
        return self._available

    def is_ready(self) -> bool:
        """True once initialization finished and indexing is usable."""
        return self._initialized and self._available

    async def start_live_updates(self) -> None:
        """Subscribe the reactor to corpus events and start the corpus watcher."""
        await self.wait_for_initialization()
        if not self._available or self._watching:
            return
        self._corpus_client.subscribe(self.reactor.on_modify, self.reactor.on_delete)
        await self._corpus_client.start_watching()
        self._watching = True

    async def close(self) -> None:
        """Stop background work, persist unsaved changes and release the clients."""
        if self._closed:
            return
        self._closed = True
        if self._init_task is not None:
            await self._init_task
        for task in (self._autosave_task, self._startup_task):
            if task is not None and not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        self.driver.cancel()
        await self.reactor.close()
        if self._watching:
            self._corpus_client.unsubscribe_all()
            self._watching = False
        if self._available:
            async with self.context.run_lock:
                if self.context.dirty:
                    await self.context.do_persist()
        await self._corpus_client.close()
        await self._store_client.close()
        await self._embed_client.close()
        self.logging.info("Index service closed.")

    ##########################################
    ############### INDEXING #################
    ##########################################

    async def do_index_all(self, overwrite: bool = False) -> int:
        """Index new and changed documents, or everything with ``overwrite``.

        Returns:
            int: Documents considered. 0 for up to date, busy and unavailable alike;
                check is_ready() and get_last_result() to tell them apart.
        """
        await self.wait_for_initialization()
        if not self._available:
            self.driver.last_result = IndexRunResult(status=IndexRunStatus.UNAVAILABLE, message=UNAVAILABLE_MESSAGE, overwrite=overwrite)
            return 0
        try:
            return await self.driver.do_index_all(overwrite=overwrite)
        except Exception as e:
            self.logging.exception("Indexing run failed: %s", e)
            self.driver.last_result = IndexRunResult(status=IndexRunStatus.ERROR, message=str(e), overwrite=overwrite)
            return 0

    async def _do_full_reindex(self) -> int:
        if self.driver.is_running():
            self.logging.info("Full reindex already in progress.")
            return 0
        return await self.do_index_all(overwrite=True)

    async def do_clear(self) -> None:
        """Discard all records, cancelling an active run first, and persist the empty store."""
        await self.wait_for_initialization()
        if not self._available:
            return
        self.driver.cancel()
        async with self.context.run_lock:
            store = self.context.store
            if store is not None:
                vector_length = store.vector_length
            else:
                try:
                    vector_length = await self.guard.do_probe_vector_length()
                except Exception as e:
                    self.logging.error("Cannot clear the index: %s", e)
                    return
            self.context.replace_store(StoreSchema(vector_length=vector_length))
            await self.context.do_persist()
        self.logging.info("Index cleared.", color="cyan")

    async def do_garbage_collect(self) -> int:
        """Remove records whose document no longer exists.

        Returns:
            int: Number of records removed.
        """
        await self.wait_for_initialization()
        if not self._available or self.context.store is None:
            return 0
        removed = await self.driver.do_garbage_collect()
        if removed and not self.context.run_lock.locked():
            await self.context.do_persist()
        return removed

    async def do_remove_document(self, path: str) -> bool:
        """Remove the record of one document and cancel its pending re-index.

        Returns:
            bool: True if a record was removed.
        """
        await self.wait_for_initialization()
        if not self._available or self.context.store is None:
            return False
        existed = self.context.store.get_by_path(path) is not None
        self.reactor.on_delete(path)
        return existed

    async def ensure_correct_schema(self) -> bool:
        """Probe the provider and rebuild the store on a dimension change.

        Returns:
            bool: True if the store was rebuilt.
        """
        await self.wait_for_initialization()
        if not self._available:
            return False
        async with self.context.run_lock:
            vector_length = await self.guard.do_probe_vector_length()
            rebuilt = self.guard.ensure_correct_schema(vector_length)
            if rebuilt:
                await self.context.do_persist()
            return rebuilt

    async def check_and_handle_embedding_model_change(self) -> bool:
        await self.wait_for_initialization()
        if not self._available or self.context.store is None:
            return False
        async with self.context.run_lock:
            return await self.guard.check_and_handle_embedding_model_change()

    ##########################################
    ############### CONTROL ##################
    ##########################################

    def pause(self) -> None:
        self.driver.pause()

    def resume(self) -> None:
        self.driver.resume()

    def cancel(self) -> None:
        self.driver.cancel()

    def add_progress_sink(self, sink: ProgressSink) -> None:
        self.driver.add_progress_sink(sink)

    def get_progress(self) -> IndexingProgress:
        return self.driver.progress.model_copy()

    def get_last_result(self) -> IndexRunResult | None:
        return self.driver.last_result

    ##########################################
    ################ QUERIES #################
    ##########################################

    async def do_get_record_by_id(self, record_id: str) -> IndexedDocumentRecord | None:
        await self.wait_for_initialization()
        if self.context.store is None:
            return None
        return self.context.store.get(record_id)

    async def do_get_indexed_files(self) -> list[str]:
        await self.wait_for_initialization()
        if self.context.store is None:
            return []
        return sorted(self.context.store.paths())

    async def do_is_index_empty(self) -> bool:
        await self.wait_for_initialization()
        return self.context.store is None or len(self.context.store) == 0

    async def do_search(self, query: str, limit: int = 5) -> SearchResult:
        """Semantic search, falling back to a lexical search when the query cannot be embedded."""
        await self.wait_for_initialization()
        store = self.context.store
        if not self._available or store is None:
            return SearchResult(query=query, mode="unavailable", hits=[], total=0)

        mode = "semantic"
        try:
            vector = await self.context.gate.embed_query(query)
            scored = store.search_by_vector(vector, limit=limit)
        except Exception as e:
            self.logging.warning("Query embedding failed, using lexical search: %s", e)
            mode = "lexical"
            scored = store.search_by_term(query, limit=limit)

        hits = [
            SearchHit(
                id=record.id,
                path=record.path,
                title=record.title,
                score=score,
                tags=record.tags,
                mtime=record.mtime,
                content=record.content,
            )
            for record, score in scored
        ]
        return SearchResult(query=query, mode=mode, hits=hits, total=len(hits))
