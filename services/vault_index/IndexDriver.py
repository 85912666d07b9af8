"""Incremental index driver.

A run goes Scanning -> Embedding -> Finalizing. Scanning selects documents
newer than the watermark (the highest indexed mtime), Embedding feeds them
one by one through the embedding gate into the store, Finalizing writes the
store to disk once.
"""

import asyncio
import time
from typing import Callable

from shared.clients.corpus.models.CorpusDocument import CorpusDocument
from shared.clients.embed.EmbedErrors import is_rate_limit_error, rate_limit_message
from shared.clients.store.models.IndexedDocumentRecord import (
    IndexedDocumentRecord,
    record_id_for_path,
    title_for_path,
)
from shared.clients.store.models.StoreSchema import StoreSchema
from shared.models.index import IndexingProgress, IndexRunResult, IndexRunStatus
from services.vault_index.IndexContext import IndexContext
from services.vault_index.IndexErrors import SchemaProbeError
from services.vault_index.SchemaGuard import SchemaGuard

ProgressSink = Callable[[IndexingProgress], None]


def build_embedding_text(title: str, content: str) -> str:
    return f"NOTE TITLE: [[{title}]]\n\nNOTE BLOCK CONTENT:\n\n{content}"


class IndexDriver:
    def __init__(self, context: IndexContext, guard: SchemaGuard) -> None:
        self.logging = context.helper_config.get_logger()
        self._context = context
        self._guard = guard

        self._paused = False
        self._cancelled = False
        self.progress = IndexingProgress()
        self.last_result: IndexRunResult | None = None
        self._sinks: list[ProgressSink] = []

    ##########################################
    ############### CONTROL ##################
    ##########################################

    def is_running(self) -> bool:
        return self._context.run_lock.locked()

    def pause(self) -> None:
        if self.is_running() and not self._paused:
            self._paused = True
            self.logging.info("Indexing paused.", color="cyan")
            self._notify()

    def resume(self) -> None:
        if self._paused:
            self._paused = False
            self.logging.info("Indexing resumed.", color="cyan")
            self._notify()

    def cancel(self) -> None:
        """Stop the active run at the next document boundary. Records written so far stay."""
        if self.is_running():
            self._cancelled = True
            self._paused = False
            self.logging.info("Indexing cancellation requested.")

    ##########################################
    ############### PROGRESS #################
    ##########################################

    def add_progress_sink(self, sink: ProgressSink) -> None:
        self._sinks.append(sink)

    def remove_progress_sink(self, sink: ProgressSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def _notify(self) -> None:
        self.progress.paused = self._paused
        snapshot = self.progress.model_copy()
        for sink in list(self._sinks):
            try:
                sink(snapshot)
            except Exception as e:
                self.logging.error("Progress sink failed: %s", e)

    ##########################################
    ########### DOCUMENT INDEXING ############
    ##########################################

    async def do_embed_document(self, document: CorpusDocument) -> IndexedDocumentRecord | None:
        """Read a document and embed it into a record. Does not touch the store.

        Returns:
            IndexedDocumentRecord | None: The record, or None if the document has no content.
                Empty documents are remembered in ``skipped_empty`` until their mtime changes.

        Raises:
            OSError: If the document cannot be read.
            EmbedClientError: If embedding fails (EmbedRateLimitError on rate limits).
        """
        content = await self._context.corpus.do_read(document.path)
        if not content.strip():
            self.logging.debug("Skipping %s: no content.", document.path)
            self._context.skipped_empty[document.path] = document.mtime
            return None
        self._context.skipped_empty.pop(document.path, None)
        metadata = await self._context.corpus.do_read_metadata(document.path)
        title = title_for_path(document.path)
        embedding = await self._context.gate.embed(build_embedding_text(title, content))
        return IndexedDocumentRecord(
            id=record_id_for_path(document.path),
            path=document.path,
            title=title,
            content=content,
            embedding=embedding,
            embedding_model=self._context.gate.get_model_identity().to_key(),
            created_at=int(time.time() * 1000),
            ctime=document.ctime,
            mtime=document.mtime,
            tags=metadata.tags,
            extension=document.extension,
            metadata=metadata.frontmatter,
        )

    ##########################################
    ########## GARBAGE COLLECTION ############
    ##########################################

    def collect_garbage(self, documents: list[CorpusDocument]) -> int:
        """Remove records whose path is not among ``documents``.

        Returns:
            int: Number of records removed.
        """
        store = self._context.store
        if store is None:
            return 0
        live_paths = {d.path for d in documents}
        for path in set(self._context.skipped_empty) - live_paths:
            del self._context.skipped_empty[path]
        stale = store.query(lambda r: r.path not in live_paths)
        if not stale:
            return 0
        removed = self._context.store_client.do_remove(store, [r.id for r in stale])
        self._context.files_missing_embeddings.difference_update(r.path for r in stale)
        self._context.mark_dirty()
        self.logging.info("Garbage collection removed %d stale record(s).", removed)
        return removed

    async def do_garbage_collect(self) -> int:
        documents = await self._context.corpus.do_list_documents()
        return self.collect_garbage(documents)

    ##########################################
    ############### CORE RUN #################
    ##########################################

    async def do_index_all(self, overwrite: bool = False) -> int:
        """Index every new or changed document of the corpus.

        Args:
            overwrite (bool): Discard the store and reindex everything.

        Returns:
            int: Documents considered in this run, failures included. 0 means up to
                date, busy or failed before scanning; see ``last_result``.
        """
        if self.is_running():
            self.logging.warning("An indexing run is already active. Ignoring the new request.")
            self.last_result = IndexRunResult(status=IndexRunStatus.BUSY, message="Indexing is already in progress.", overwrite=overwrite)
            return 0

        async with self._context.run_lock:
            self._cancelled = False
            self._paused = False
            try:
                return await self._run(overwrite)
            finally:
                self._paused = False
                self.progress.running = False
                self._notify()

    async def _run(self, overwrite: bool) -> int:
        context = self._context

        # schema and model checks
        try:
            vector_length = await self._guard.do_probe_vector_length()
        except SchemaProbeError as e:
            self.logging.error("Indexing aborted: %s", e)
            self.last_result = IndexRunResult(status=IndexRunStatus.ERROR, message=str(e), overwrite=overwrite)
            return 0
        except Exception as e:
            if not is_rate_limit_error(e):
                raise
            message = rate_limit_message(e)
            self.logging.error(message)
            self.last_result = IndexRunResult(status=IndexRunStatus.RATE_LIMITED, message=message, overwrite=overwrite)
            return 0

        rebuilt = self._guard.ensure_correct_schema(vector_length)
        model_changed = await self._guard.check_and_handle_embedding_model_change()
        if overwrite and not (rebuilt or model_changed):
            self.logging.info("Overwrite requested. Clearing the index before reindexing.", color="cyan")
            context.replace_store(StoreSchema(vector_length=vector_length))
        full = overwrite or rebuilt or model_changed

        # scanning
        watermark = None if full else context.store.latest_mtime()
        documents = await context.corpus.do_list_documents()
        removed = 0 if full else self.collect_garbage(documents)
        missing = set(context.files_missing_embeddings)
        skipped = context.skipped_empty
        selected = [
            d for d in documents
            if (watermark is None or d.mtime > watermark or d.path in missing)
            and skipped.get(d.path) != d.mtime
        ]
        allowed = set(await context.filter_policy.do_filter(context.corpus, [d.path for d in selected]))
        candidates = [d for d in selected if d.path in allowed]
        self.logging.info(
            "Index scan: %d document(s) in corpus, %d candidate(s), watermark=%s, full=%s",
            len(documents), len(candidates), watermark, full,
        )

        if not candidates:
            if removed or context.dirty:
                await asyncio.sleep(context.finalize_delay_seconds)
                await context.do_persist()
            self.logging.info("Index is already up to date.", color="green")
            self.last_result = IndexRunResult(
                status=IndexRunStatus.UP_TO_DATE,
                removed_count=removed,
                message="Index is already up to date.",
                overwrite=overwrite,
            )
            return 0

        # embedding
        self.progress = IndexingProgress(total_files_to_index=len(candidates), running=True)
        self._notify()
        errors: list[str] = []
        written = 0
        attempted = 0
        rate_limited_message: str | None = None

        for document in candidates:
            if self._cancelled:
                break
            while self._paused and not self._cancelled:
                await asyncio.sleep(context.pause_poll_seconds)
            if self._cancelled:
                break

            attempted += 1
            try:
                record = await self.do_embed_document(document)
                if record is not None:
                    context.store.upsert(record)
                    written += 1
                context.files_missing_embeddings.discard(document.path)
            except Exception as e:
                context.files_missing_embeddings.add(document.path)
                if is_rate_limit_error(e):
                    # no further embedding calls in this run
                    rate_limited_message = rate_limit_message(e)
                    self.logging.error("Indexing stopped: %s", rate_limited_message)
                else:
                    self.logging.error("Error indexing %s: %s", document.path, e)
                    errors.append(f"{document.path}: {e}")
            finally:
                self.progress.indexed_count += 1
                self._notify()
            if rate_limited_message:
                break

        # finalizing
        await asyncio.sleep(context.finalize_delay_seconds)
        if attempted or removed:
            context.mark_dirty()
            await context.do_persist()

        self.last_result = self._build_result(len(candidates), written, removed, errors, rate_limited_message, overwrite)
        self.logging.info(
            "Indexing finished (%s): %d considered, %d indexed, %d error(s).",
            self.last_result.status.value, len(candidates), written, len(errors),
            color="green" if self.last_result.status == IndexRunStatus.SUCCESS else None,
        )
        return len(candidates)

    def _build_result(
        self,
        considered: int,
        written: int,
        removed: int,
        errors: list[str],
        rate_limited_message: str | None,
        overwrite: bool,
    ) -> IndexRunResult:
        if rate_limited_message:
            status, message = IndexRunStatus.RATE_LIMITED, rate_limited_message
        elif self._cancelled:
            status, message = IndexRunStatus.CANCELLED, f"Indexing cancelled after {self.progress.indexed_count} of {considered} document(s)."
        elif errors:
            status, message = IndexRunStatus.COMPLETED_WITH_ERRORS, f"Indexing completed with {len(errors)} error(s)."
        else:
            status, message = IndexRunStatus.SUCCESS, f"Indexed {written} document(s)."
        return IndexRunResult(
            status=status,
            documents_considered=considered,
            indexed_count=written,
            removed_count=removed,
            errors=errors,
            message=message,
            overwrite=overwrite,
        )
