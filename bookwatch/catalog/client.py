"""Google Books volumes search client."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx
import pydantic

from bookwatch.catalog.models import Volume, VolumesResponse
from bookwatch.shared.constants import (
    API_KEY_ENV,
    DEFAULT_LANG_RESTRICT,
    DEFAULT_PRINT_TYPE,
    GOOGLE_BOOKS_API_URL,
    GOOGLE_BOOKS_PAGE_CAP,
    GOOGLE_BOOKS_SOURCE,
    HTTP_RETRIES,
    HTTP_TIMEOUT_SECONDS,
)
from bookwatch.shared.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class SearchOptions:
    """
    Upstream search filters.

    Args:
        print_type: Google Books printType filter.
        lang_restrict: Google Books langRestrict filter.
    """

    print_type: str = DEFAULT_PRINT_TYPE
    lang_restrict: str = DEFAULT_LANG_RESTRICT


@dataclass(frozen=True)
class SearchPage:
    """
    One page of search hits.

    Args:
        volumes: Hits in upstream order.
        total_items: Upstream estimate of the total result count.
        returned: Number of hits actually returned, valid or not.
        invalid: Hits that did not match the volume schema.
    """

    volumes: list[Volume]
    total_items: int
    returned: int
    invalid: int = 0


class GoogleBooksClient:
    """
    Async client for the volumes search endpoint.

    The API key is resolved lazily so a client can be built before the
    environment is checked; a missing key surfaces as ConfigurationError on
    the first search, before any request is sent.

    Retries of transport errors and 429/5xx responses happen inside one
    search call and are not gated by the quota individually; the quota is
    checked once before the call and counted once after it succeeds. Pass
    ``retries=0`` to make every upstream request a separately gated call.

    Args:
        api_key: Google Books API key; read from the environment when None.
        timeout: HTTP request timeout in seconds.
        retries: Retries for transport errors and retryable status codes.
        retry_delay: Base delay between retries in seconds.
        transport: Optional httpx transport, used by tests.
    """

    source = GOOGLE_BOOKS_SOURCE

    def __init__(
        self,
        api_key: str | None = None,
        timeout: int = HTTP_TIMEOUT_SECONDS,
        retries: int = HTTP_RETRIES,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.retries = retries
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _resolve_api_key(self) -> str:
        key = self._api_key or os.environ.get(API_KEY_ENV, "").strip()
        if not key:
            raise ConfigurationError(
                f"{API_KEY_ENV} environment variable is not set"
            )
        return key

    async def _get_json(self, params: dict[str, Any]) -> Any:
        """
        Perform a GET request with retries and decode the JSON body.

        Args:
            params: Query parameters.

        Returns:
            Decoded JSON payload.

        Raises:
            UpstreamError: The request failed or the body is not JSON.
        """
        for attempt in range(self.retries + 1):
            try:
                response = await self._client.get(GOOGLE_BOOKS_API_URL, params=params)
            except httpx.RequestError as exc:
                if attempt < self.retries:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
                    continue
                raise UpstreamError(
                    f"Failed to fetch from Google Books API: {exc}", self.source
                ) from exc

            if response.status_code in RETRYABLE_STATUS and attempt < self.retries:
                logger.warning(
                    "Google Books API returned %d, retrying", response.status_code
                )
                await asyncio.sleep(self.retry_delay * (attempt + 1))
                continue

            if response.status_code != 200:
                raise UpstreamError(
                    f"Google Books API error: {response.status_code} "
                    f"{response.reason_phrase} - {response.text[:200]}",
                    self.source,
                )

            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamError(
                    f"Google Books API returned a non-JSON body: {exc}", self.source
                ) from exc

        raise UpstreamError("Google Books API retries exhausted", self.source)

    async def search(
        self,
        query: str,
        start_index: int,
        max_results: int,
        options: SearchOptions | None = None,
    ) -> SearchPage:
        """
        Fetch one page of volumes.

        Args:
            query: Search expression.
            start_index: Zero-based upstream offset.
            max_results: Requested page size; capped at the API maximum.
            options: Search filters.

        Returns:
            Parsed page.

        Raises:
            ConfigurationError: No API key is configured.
            UpstreamError: The call failed or the payload is malformed.
        """
        api_key = self._resolve_api_key()
        options = options or SearchOptions()
        params = {
            "q": query,
            "key": api_key,
            "maxResults": max(1, min(max_results, GOOGLE_BOOKS_PAGE_CAP)),
            "startIndex": max(0, start_index),
            "printType": options.print_type,
            "langRestrict": options.lang_restrict,
        }
        payload = await self._get_json(params)
        try:
            parsed = VolumesResponse.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise UpstreamError(
                f"Google Books API returned an unexpected payload: {exc}",
                self.source,
            ) from exc
        volumes: list[Volume] = []
        invalid = 0
        for item in parsed.items:
            try:
                volumes.append(Volume.model_validate(item))
            except pydantic.ValidationError as exc:
                invalid += 1
                logger.debug("Ignoring malformed volume: %s", exc)
        return SearchPage(
            volumes=volumes,
            total_items=parsed.total_items,
            returned=len(parsed.items),
            invalid=invalid,
        )

    async def close(self) -> None:
        """
        Close the underlying HTTP client.

        Returns:
            None.
        """
        await self._client.aclose()

    async def __aenter__(self) -> GoogleBooksClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
