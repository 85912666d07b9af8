from abc import abstractmethod

import httpx
from httpx._types import QueryParamTypes

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class HttpClientInterface(ClientInterface):
    """Client of a remote backend reached over HTTP.

    Reads ``<TYPE>_<ENGINE>_BASE_URL`` and an optional ``<TYPE>_<ENGINE>_API_KEY``
    (sent as a bearer token) plus ``<TYPE>_TIMEOUT`` in seconds. One
    httpx.AsyncClient lives between boot() and close().
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self.base_url: str = self.get_config_val("BASE_URL", default=self._get_default_base_url())
        self.api_key: str = self.get_config_val("API_KEY", default="")
        self._client: httpx.AsyncClient | None = None

    @abstractmethod
    def _get_default_base_url(self) -> str:
        pass

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=self._get_default_base_url()),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    def _get_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    ##########################################
    ############## LIFECYCLE #################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client. ``transport`` replaces the network, e.g. an httpx.MockTransport."""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url.rstrip("/"), timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_request(
        self,
        method: str,
        endpoint: str,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
    ) -> httpx.Response:
        """Send one request relative to the base URL and hand back the raw response.

        Raises:
            RuntimeError: If boot() has not been called.
            httpx.HTTPError: On transport failures such as refused connections or timeouts.
        """
        if self._client is None:
            raise RuntimeError(f"{self.get_engine_name()} client used before boot().")
        return await self._client.request(method, "/" + endpoint.lstrip("/"), headers=self._get_headers(), params=params, json=json)
