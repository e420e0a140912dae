"""Authenticated HTTP transport for a Bitbucket Server instance."""
import asyncio
import base64
import logging
from typing import Optional
import aiohttp
from bbs_analyzer.domain.exceptions import ResponseDecodeError, TransportError


logger = logging.getLogger(__name__)

API_PATH = "/rest/api/1.0"


def basic_auth_header(username: str, password: str) -> str:
    """Value of the Authorization header for HTTP basic authentication."""
    credentials = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


class BitbucketTransport:
    """Issues single authenticated GET requests and returns the raw body.

    No retries and no pagination awareness: a non-200 status, a network
    fault or a timeout all surface as ``TransportError``.
    """

    def __init__(
        self,
        server_url: str,
        username: str,
        password: str,
        verify_ssl: bool = True,
        timeout: Optional[float] = None
    ):
        """Initialize the transport.

        Args:
            server_url: Base URL of the server, e.g. http://bitbucket.contoso.com:7990
            username: User for HTTP basic authentication
            password: Password for HTTP basic authentication
            verify_ssl: Set False to accept self-signed certificates
            timeout: Seconds allowed per request; None waits indefinitely
        """
        self._server_url = server_url.rstrip("/")
        self._headers = {"Authorization": basic_auth_header(username, password)}
        self._verify_ssl = verify_ssl
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def server_url(self) -> str:
        return self._server_url

    def _init_session(self) -> aiohttp.ClientSession:
        """Initialize the HTTP session (lazy initialization)."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=self._verify_ssl)
            self._session = aiohttp.ClientSession(
                headers=self._headers,
                connector=connector,
                # total=None disables aiohttp's default five minute limit
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
        return self._session

    async def request(self, path: str, endpoint: str) -> str:
        """Perform one GET against ``<server_url><path><endpoint>``.

        Args:
            path: Either "" for raw server endpoints or the REST API prefix
            endpoint: Endpoint including any query string

        Returns:
            Response body text

        Raises:
            TransportError: On non-200 status, network fault or timeout
            ResponseDecodeError: When a 200 body is not valid text
        """
        url = f"{self._server_url}{path}{endpoint}"
        logger.debug(f"Requesting URI: {url}")
        session = self._init_session()

        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise TransportError(
                        f"Request to {url} failed with HTTP {response.status}",
                        url=url,
                        status=response.status
                    )
                body = await response.text()
        except UnicodeDecodeError as e:
            raise ResponseDecodeError(f"Response from {url} is not valid text: {e}") from e
        except asyncio.TimeoutError as e:
            # aiohttp's timeout errors are also ClientErrors, so check first
            raise TransportError(
                f"Request to {url} timed out after {self._timeout} seconds",
                url=url
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e

        logger.debug(f"Response: {body}")
        return body

    async def api_get(self, endpoint: str) -> str:
        """GET a versioned REST API endpoint."""
        return await self.request(API_PATH, endpoint)

    async def raw_get(self, endpoint: str) -> str:
        """GET a raw server endpoint (no REST API prefix)."""
        return await self.request("", endpoint)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
