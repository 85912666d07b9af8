"""Index runner entry point.

Builds or updates the vector index of the configured corpus once, and with
--watch keeps it in step with live edits until interrupted.

Usage:
    python -m services.vault_index.vault_index_runner [--overwrite] [--watch]
"""

import argparse
import asyncio

from shared.clients.corpus.CorpusClientManager import CorpusClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.index import IndexingProgress, IndexRunStatus
from services.vault_index.IndexService import IndexService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build or update the vault vector index.")
    parser.add_argument("--overwrite", action="store_true", help="discard the index and reindex every document")
    parser.add_argument("--watch", action="store_true", help="keep running and apply live edits after the run")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run one indexing pass.

    Returns:
        int: Process exit code. 0 on success or up to date, 1 otherwise.
    """
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    store_client = StoreClientManager(helper_config=config).get_client()
    corpus_client = CorpusClientManager(helper_config=config).get_client()

    service = IndexService(
        helper_config=config,
        embed_client=embed_client,
        store_client=store_client,
        corpus_client=corpus_client,
    )

    def log_progress(progress: IndexingProgress) -> None:
        if progress.paused:
            logger.info("Indexing paused at %d/%d.", progress.indexed_count, progress.total_files_to_index)
        elif progress.indexed_count and progress.indexed_count % 50 == 0:
            logger.info("Indexed %d/%d documents.", progress.indexed_count, progress.total_files_to_index)

    service.add_progress_sink(log_progress)

    try:
        await service.wait_for_initialization()
        if not service.is_ready():
            logger.error("Indexing unavailable. Check EMBED_* settings and INDEX_ENABLED.")
            return 1

        considered = await service.do_index_all(overwrite=args.overwrite)
        result = service.get_last_result()
        logger.info("Run finished: %s (%d considered). %s", result.status.value, considered, result.message)

        if args.watch:
            await service.start_live_updates()
            logger.info("Watching for changes. Press Ctrl+C to stop.", color="cyan")
            await asyncio.Event().wait()

        return 0 if result.status in (IndexRunStatus.SUCCESS, IndexRunStatus.UP_TO_DATE) else 1
    finally:
        await service.close()


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
