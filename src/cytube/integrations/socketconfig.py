"""
CyTube Socket Configuration Lookup

Resolves a channel name to a Socket.IO server URL, either from an explicit
endpoint or from CyTube's ``/socketconfig/<channel>.json`` document.
"""

from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from cytube.config import get_settings
from cytube.core.models import ConnectionSettings, Endpoint, SocketConfig
from cytube.exceptions import ResolutionError

logger = structlog.get_logger()


class EndpointResolver:
    """
    Looks up the socket server for a channel.

    Usage:
        async with EndpointResolver() as resolver:
            endpoint = await resolver.resolve(settings)
    """

    def __init__(
        self,
        config_url: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.config_url = config_url or settings.config_url
        self.timeout = timeout or settings.http_timeout_s
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "EndpointResolver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def url_for(self, channel: str) -> str:
        """Build the configuration URL for a channel."""
        return self.config_url.format(channel=quote(channel, safe=""))

    async def fetch_config(self, channel: str) -> SocketConfig:
        """Fetch and parse the socket configuration for a channel.

        Raises:
            ResolutionError: If the request fails or the body is malformed.
        """
        url = self.url_for(channel)
        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
            return SocketConfig.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.error("Socket config request failed", channel=channel, url=url, error=str(e))
            raise ResolutionError(f"Could not fetch socket config for {channel!r}: {e}") from e
        except (ValueError, PydanticValidationError) as e:
            # ValueError covers a body that is not JSON at all
            logger.error("Malformed socket config", channel=channel, url=url, error=str(e))
            raise ResolutionError(f"Malformed socket config for {channel!r}") from e

    async def resolve(self, settings: ConnectionSettings) -> Endpoint:
        """Resolve the socket server to connect to.

        An explicit ``settings.endpoint`` is used verbatim without any
        network request. Otherwise a single lookup is made and the first
        server whose security flag matches ``settings.secure`` wins.

        Raises:
            ResolutionError: If the lookup fails or no server matches.
        """
        if settings.endpoint:
            return Endpoint(url=settings.endpoint, secure=settings.secure)

        config = await self.fetch_config(settings.channel)
        endpoint = config.select(settings.secure)
        if endpoint is None:
            logger.warning(
                "No matching socket server",
                channel=settings.channel,
                secure=settings.secure,
                candidates=len(config.servers),
            )
            raise ResolutionError(
                "CyTube did not respond with valid connection info "
                f"for channel {settings.channel!r}"
            )

        logger.debug("Resolved socket server", channel=settings.channel, url=endpoint.url)
        return endpoint
