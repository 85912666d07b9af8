from abc import abstractmethod
import os
from typing import Callable

from shared.clients.ClientInterface import ClientInterface
from shared.clients.corpus.models.CorpusDocument import CorpusDocument, DocumentMetadata
from shared.helper.HelperConfig import HelperConfig

CorpusListener = Callable[[str], None]


class CorpusClientInterface(ClientInterface):
    """Access to the document corpus: enumeration, reading and change events.

    Listeners registered through subscribe() are always invoked on the event
    loop thread, whatever thread the backend observes changes on.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._modify_listeners: list[CorpusListener] = []
        self._delete_listeners: list[CorpusListener] = []

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "corpus"

    @abstractmethod
    def get_corpus_name(self) -> str:
        """
        Returns the identity of the corpus. Used to derive the store location.
        """
        pass

    @abstractmethod
    def get_data_dir(self) -> str:
        """
        Returns the directory where index data for this corpus lives unless configured otherwise.
        """
        pass

    @abstractmethod
    def get_indexable_extensions(self) -> list[str]:
        """
        Returns the content types that are indexed, as lowercase extensions without dot.
        """
        pass

    def is_indexable(self, path: str) -> bool:
        extension = os.path.splitext(path)[1].lstrip(".").lower()
        return extension in self.get_indexable_extensions()

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_list_documents(self) -> list[CorpusDocument]:
        """
        Enumerate all indexable documents.

        Returns:
            list[CorpusDocument]: The documents, in backend order.
        """
        pass

    @abstractmethod
    async def do_get_document(self, path: str) -> CorpusDocument | None:
        """
        Return the listing entry of one document, or None if it no longer exists.
        """
        pass

    @abstractmethod
    async def do_read(self, path: str) -> str:
        """
        Read the text of a document.

        Raises:
            OSError: If the document cannot be read.
        """
        pass

    @abstractmethod
    async def do_read_metadata(self, path: str) -> DocumentMetadata:
        """
        Read tags and frontmatter of a document.

        Raises:
            OSError: If the document cannot be read.
        """
        pass

    ##########################################
    ################ EVENTS ##################
    ##########################################

    def subscribe(self, on_modify: CorpusListener, on_delete: CorpusListener) -> None:
        self._modify_listeners.append(on_modify)
        self._delete_listeners.append(on_delete)

    def unsubscribe_all(self) -> None:
        self._modify_listeners.clear()
        self._delete_listeners.clear()

    def emit_modify(self, path: str) -> None:
        for listener in list(self._modify_listeners):
            try:
                listener(path)
            except Exception as e:
                self.logging.error("Modify listener failed for %s: %s", path, e)

    def emit_delete(self, path: str) -> None:
        for listener in list(self._delete_listeners):
            try:
                listener(path)
            except Exception as e:
                self.logging.error("Delete listener failed for %s: %s", path, e)

    def emit_move(self, old_path: str, new_path: str) -> None:
        """A move is a delete of the old path followed by a modify of the new one."""
        self.emit_delete(old_path)
        self.emit_modify(new_path)

    @abstractmethod
    async def start_watching(self) -> None:
        """Start delivering backend change events to the subscribed listeners."""
        pass

    @abstractmethod
    async def stop_watching(self) -> None:
        pass

    async def close(self) -> None:
        await self.stop_watching()
