from shared.clients.ClientManager import ClientManager
from shared.clients.corpus.CorpusClientInterface import CorpusClientInterface


class CorpusClientManager(ClientManager):
    """
    Manager class to handle the Corpus client based on CORPUS_ENGINE (default "filesystem").
    """

    def _get_client_type(self) -> str:
        return "Corpus"

    def _get_default_engine(self) -> str | None:
        return "filesystem"

    def get_client(self) -> CorpusClientInterface:
        return self.client
