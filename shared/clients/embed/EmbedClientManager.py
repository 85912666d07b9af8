from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """
    Manager class to handle the Embed client based on EMBED_ENGINE.
    """

    def _get_client_type(self) -> str:
        return "Embed"

    def get_client(self) -> EmbedClientInterface:
        return self.client
