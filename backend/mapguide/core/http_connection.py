import httpx
import logging
from mapguide.core.config import settings
from mapguide.core.logger import logs

class AsyncHttpConnection:
    """
    Manages the shared asynchronous HTTP client used by every collaborator repo.
    Opened by the application lifespan and closed on shutdown.
    """
    _client: httpx.AsyncClient | None = None

    def open(self) -> httpx.AsyncClient:
        if AsyncHttpConnection._client is None or AsyncHttpConnection._client.is_closed:
            AsyncHttpConnection._client = httpx.AsyncClient(
                timeout=settings.HTTP_TIMEOUT,
                headers={"User-Agent": settings.USER_AGENT, "Accept-Language": "es"},
            )
            logs.log(logging.INFO, "HTTP client initialized")
        return AsyncHttpConnection._client

    def get_client(self) -> httpx.AsyncClient:
        """
        Returns the shared client, opening it lazily when the lifespan
        has not run (scripts, tests).
        """
        return self.open()

    async def close(self):
        if AsyncHttpConnection._client is not None and not AsyncHttpConnection._client.is_closed:
            await AsyncHttpConnection._client.aclose()
            logs.log(logging.INFO, "HTTP client closed")
        AsyncHttpConnection._client = None

# Instantiate the connection manager
http_connection = AsyncHttpConnection()
