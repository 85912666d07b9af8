from abc import abstractmethod
from typing import Callable

from shared.clients.ClientInterface import ClientInterface
from shared.clients.store.VectorStore import VectorStore
from shared.clients.store.models.IndexedDocumentRecord import IndexedDocumentRecord
from shared.clients.store.models.StoreSchema import StoreSchema
from shared.helper.HelperConfig import HelperConfig


class StoreClientInterface(ClientInterface):
    """Store adapter: opens, creates and persists VectorStore handles for one corpus.

    Engines differ only in where and how the serialized blob lives. Reads and
    writes against a handle are the same for every engine.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    @abstractmethod
    def get_store_path(self, corpus_name: str, fallback_dir: str | None = None) -> str:
        """
        Returns the deterministic location of the blob for a corpus.

        Args:
            corpus_name (str): Identity of the corpus. Hashed so corpora never collide.
            fallback_dir (str | None): Directory to use when the engine has none configured.

        Returns:
            str: The blob location.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_open(self, path: str) -> VectorStore | None:
        """
        Load a store from its blob.

        Returns:
            VectorStore | None: The loaded store, or None if the blob is missing or
                unreadable. The caller falls back to do_create_empty().
        """
        pass

    @abstractmethod
    async def do_persist(self, store: VectorStore, path: str) -> None:
        """
        Serialize the store to its blob.

        Raises:
            StorePersistError: If the blob cannot be written.
        """
        pass

    def do_create_empty(self, schema: StoreSchema, corpus_name: str = "") -> VectorStore:
        """Create a fresh, empty store with ``schema``."""
        self.logging.info("Creating empty store for '%s' with vector length %d.", corpus_name, schema.vector_length)
        return VectorStore(schema=schema, corpus_name=corpus_name)

    def do_query(self, store: VectorStore, predicate: Callable[[IndexedDocumentRecord], bool] | None = None, limit: int | None = None) -> list[IndexedDocumentRecord]:
        return store.query(predicate=predicate, limit=limit)

    def do_remove(self, store: VectorStore, ids: list[str]) -> int:
        return store.remove(ids)
