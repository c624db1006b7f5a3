import logging
from typing import Any, Dict, Optional

import httpx

from .cache import TTLMap
from .settings import settings

logger = logging.getLogger(__name__)


class CachedJSONClient:
    """Thin async JSON client whose GET responses are memoised in a `TTLMap`.

    Parameters
    ----------
    base_url : str
        Prefix joined to every request path. May be empty when full URLs are used.
    cache : Optional[TTLMap]
        Store to memoise into. When omitted the client creates (and owns) one.
    cache_ttl : Optional[float]
        TTL in seconds for cached responses. Defaults to `settings.http_cache_ttl`.
    timeout : Optional[float]
        Per-request timeout in seconds. Defaults to `settings.http_timeout`.
    headers, params : Optional[Dict[str, str]]
        Default headers and query parameters sent with every request.
    transport : Optional[httpx.AsyncBaseTransport]
        Custom transport, mainly for tests (`httpx.MockTransport`).

    Notes
    -----
    - Only successful GET payloads are cached; errors propagate uncached.
    - Cache keys are the full URL with query parameters in sorted order.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        cache: Optional[TTLMap] = None,
        cache_ttl: Optional[float] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cache_ttl = settings.http_cache_ttl if cache_ttl is None else cache_ttl
        self.timeout = settings.http_timeout if timeout is None else timeout
        self.headers: Dict[str, str] = dict(headers or {})
        self.params: Dict[str, str] = dict(params or {})
        self._auth: Optional[httpx.BasicAuth] = None
        self._transport = transport
        self._owns_cache = cache is None
        self.cache: TTLMap = cache if cache is not None else TTLMap.from_settings(settings)

    def set_headers(self, headers: Dict[str, str]) -> "CachedJSONClient":
        """Merge `headers` into the defaults sent with every request; returns `self`."""

        self.headers.update(headers)
        return self

    def set_query_params(self, params: Dict[str, str]) -> "CachedJSONClient":
        """Merge `params` into the default query parameters; returns `self`.

        Default parameters are part of every cache key.
        """

        self.params.update(params)
        return self

    def set_basic_auth(self, username: str, password: str) -> "CachedJSONClient":
        """Send HTTP basic auth credentials with every request; returns `self`."""

        self._auth = httpx.BasicAuth(username, password)
        return self

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")) or not self.base_url:
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def cache_key(self, path: str, params: Optional[Dict[str, str]] = None) -> str:
        merged = {**self.params, **(params or {})}
        url = httpx.URL(self._url(path))
        if merged:
            url = url.copy_merge_params(sorted(merged.items()))
        return str(url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            auth=self._auth,
            transport=self._transport,
        )

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        ttl: float = 0,
        use_cache: bool = True,
    ) -> Any:
        """Perform a GET request and return the parsed JSON payload.

        Parameters
        ----------
        path : str
            Path relative to `base_url`, or a fully qualified URL.
        params : Optional[Dict[str, str]]
            Extra query parameters, merged over the defaults.
        ttl : float
            Cache TTL for this response; zero uses `cache_ttl`.
        use_cache : bool
            When false, always hit the network (the fresh payload is still stored).

        Returns
        -------
        Any
            Parsed JSON as Python types.

        Raises
        ------
        httpx.HTTPStatusError
            If the response has a 4xx/5xx status code.
        httpx.RequestError
            For transport-level errors (DNS, timeouts, etc.).
        """

        key = self.cache_key(path, params)
        if use_cache:
            cached, found = self.cache.get(key)
            if found:
                return cached

        async with self._client() as client:
            r = await client.get(key)
            r.raise_for_status()
            data = r.json()
        self.cache.put(key, data, ttl if ttl > 0 else self.cache_ttl)
        logger.debug("cached %s", key)
        return data

    async def post_json(self, path: str, body: Any) -> Any:
        """POST `body` as JSON and return the parsed response. Never cached."""

        url = self._url(path)
        async with self._client() as client:
            r = await client.post(url, json=body, params=self.params)
            r.raise_for_status()
            return r.json()

    def invalidate(self, path: str, params: Optional[Dict[str, str]] = None) -> None:
        """Drop the cached response for `path` (and `params`), if any.

        Parameters
        ----------
        path : str
            Same path or URL passed to `get_json`.
        params : Optional[Dict[str, str]]
            Same extra query parameters passed to `get_json`.
        """

        self.cache.delete(self.cache_key(path, params))

    async def aclose(self) -> None:
        """Release resources owned by the client.

        Stops the sweep of a store the client created itself. A store passed
        in through `cache` is left running for its owner to stop.
        """

        if self._owns_cache:
            self.cache.stop()

    async def __aenter__(self) -> "CachedJSONClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
