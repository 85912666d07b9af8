"""Keeps the index in step with live corpus edits.

Modify events remove the stale record at once and schedule a debounced
re-index of that one document. Timers are keyed per path, so edits to
different documents never wait on each other. Delete events remove the
record immediately. With tag patterns configured the filter decision needs the
document's metadata, so an edit that turns out to be filtered puts the removed
record back.
"""

import asyncio
from typing import Awaitable, Callable

from shared.clients.embed.EmbedErrors import is_rate_limit_error, rate_limit_message
from shared.clients.store.models.IndexedDocumentRecord import IndexedDocumentRecord
from services.vault_index.IndexContext import IndexContext
from services.vault_index.IndexDriver import IndexDriver
from services.vault_index.SchemaGuard import SchemaGuard


class LiveEditReactor:
    def __init__(
        self,
        context: IndexContext,
        driver: IndexDriver,
        guard: SchemaGuard,
        on_model_change: Callable[[], Awaitable[object]] | None = None,
    ) -> None:
        self.logging = context.helper_config.get_logger()
        self._context = context
        self._driver = driver
        self._guard = guard
        self._on_model_change = on_model_change

        self._timers: dict[str, asyncio.TimerHandle] = {}
        # bumped on every event of a path; a re-index only writes if it is still current
        self._generations: dict[str, int] = {}
        self._path_locks: dict[str, asyncio.Lock] = {}
        # records taken out by an edit whose tag filters are still being evaluated
        self._held_records: dict[str, IndexedDocumentRecord] = {}
        self._tasks: set[asyncio.Task] = set()
        self.reindex_count = 0

    ##########################################
    ################ EVENTS ##################
    ##########################################

    def on_modify(self, path: str) -> None:
        """Handle a document edit. Must be called on the event loop thread."""
        if self._context.store is None:
            return
        if not self._context.corpus.is_indexable(path):
            return
        policy = self._context.filter_policy
        inclusions = policy.get_inclusions()
        exclusions = policy.get_exclusions()
        if inclusions.tags or exclusions.tags:
            # tag patterns need the document's metadata; the stale record goes now
            # and is put back if the edit turns out to be filtered
            generation = self._bump(path)
            self._cancel_timer(path)
            record = self._take_record(path)
            if record is not None:
                self._held_records[path] = record
            self._spawn(self._filter_then_schedule(path, generation, self._context.store_generation))
            return
        if not policy.evaluate_path(path, inclusions, exclusions):
            self.logging.debug("Ignoring edit of filtered document %s", path)
            return
        self._accept_modify(path)

    def on_delete(self, path: str) -> None:
        """Handle a document deletion: cancel pending work and drop the record now."""
        self._bump(path)
        self._cancel_timer(path)
        self._held_records.pop(path, None)
        store = self._context.store
        if store is not None and store.remove_path(path):
            self._context.mark_dirty()
            self.logging.info("Removed %s from the index.", path)
        self._context.files_missing_embeddings.discard(path)
        self._context.skipped_empty.pop(path, None)

    ##########################################
    ################ HELPER ##################
    ##########################################

    async def _filter_then_schedule(self, path: str, generation: int, store_generation: int) -> None:
        try:
            allowed = await self._context.filter_policy.do_should_index_path(self._context.corpus, path)
        except OSError as e:
            self.logging.warning("Could not evaluate filters for %s: %s", path, e)
            allowed = False
        if not self._is_current(path, generation):
            return
        held = self._held_records.pop(path, None)
        if allowed:
            self._schedule(path, generation)
            return
        self.logging.debug("Ignoring edit of filtered document %s", path)
        store = self._context.store
        if held is None or store is None or store_generation != self._context.store_generation:
            return
        if store.get_by_path(path) is None:
            store.upsert(held)
            self._context.mark_dirty()

    def _take_record(self, path: str) -> IndexedDocumentRecord | None:
        store = self._context.store
        record = store.get_by_path(path) if store is not None else None
        if record is not None:
            store.remove_path(path)
            self._context.mark_dirty()
        return record

    def _accept_modify(self, path: str) -> None:
        generation = self._bump(path)
        self._take_record(path)
        self._held_records.pop(path, None)
        self._cancel_timer(path)
        self._schedule(path, generation)

    def _schedule(self, path: str, generation: int) -> None:
        loop = asyncio.get_running_loop()
        self._timers[path] = loop.call_later(self._context.debounce_seconds, self._fire, path, generation)
        self.logging.debug("Scheduled re-index of %s in %.1fs", path, self._context.debounce_seconds)

    def _bump(self, path: str) -> int:
        generation = self._generations.get(path, 0) + 1
        self._generations[path] = generation
        return generation

    def _cancel_timer(self, path: str) -> None:
        timer = self._timers.pop(path, None)
        if timer is not None:
            timer.cancel()

    def _fire(self, path: str, generation: int) -> None:
        self._timers.pop(path, None)
        self._spawn(self._reindex(path, generation))

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_current(self, path: str, generation: int) -> bool:
        return self._generations.get(path) == generation

    ##########################################
    ############### RE-INDEX #################
    ##########################################

    async def _reindex(self, path: str, generation: int) -> None:
        lock = self._path_locks.setdefault(path, asyncio.Lock())
        async with lock:
            if not self._is_current(path, generation) or self._context.store is None:
                return

            if self._guard.has_model_changed():
                self.logging.info("Embedding model changed. Scheduling a full reindex instead of updating %s.", path, color="cyan")
                if self._on_model_change is not None:
                    self._spawn(self._on_model_change())
                return

            store_generation = self._context.store_generation
            document = await self._context.corpus.do_get_document(path)
            if document is None:
                return
            try:
                record = await self._driver.do_embed_document(document)
            except Exception as e:
                self._context.files_missing_embeddings.add(path)
                if is_rate_limit_error(e):
                    self.logging.error("Re-index of %s stopped: %s", path, rate_limit_message(e))
                else:
                    self.logging.error("Error re-indexing %s: %s", path, e)
                return

            # drop the write if a newer event or a store rebuild happened meanwhile
            if not self._is_current(path, generation) or store_generation != self._context.store_generation:
                self.logging.debug("Discarding stale re-index of %s", path)
                return
            if record is None:
                return
            self._context.store.upsert(record)
            self._context.files_missing_embeddings.discard(path)
            self._context.mark_dirty()
            self.reindex_count += 1
            self.logging.info("Re-indexed %s", path)

    async def close(self) -> None:
        for path in list(self._timers):
            self._cancel_timer(path)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
