from shared.clients.ClientManager import ClientManager
from shared.clients.store.StoreClientInterface import StoreClientInterface


class StoreClientManager(ClientManager):
    """
    Manager class to handle the Store client based on STORE_ENGINE (default "local").
    """

    def _get_client_type(self) -> str:
        return "Store"

    def _get_default_engine(self) -> str | None:
        return "local"

    def get_client(self) -> StoreClientInterface:
        return self.client
