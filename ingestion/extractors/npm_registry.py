"""
npm registry client.

Consumes the two registry operations the pipeline needs:
- paginated identity-scoped search (``/-/v1/search``)
- package creation date (``time.created`` from the packument)

There are no retries and no backoff: any transport or HTTP error is
wrapped in a registry exception and propagates to the caller.
"""

import httpx
from typing import List, Optional, Dict, Any
from datetime import datetime
from urllib.parse import quote
from pydantic import ValidationError
from core.config import settings
from core.exceptions import SearchQueryError, MetadataFetchError
from schemas.registry import PackageDescriptor, SearchResponse
import logging

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("author", "maintainer", "publisher")


class NPMRegistryClient:
    """
    Async client for the npm registry REST endpoint.

    Usage:
        async with NPMRegistryClient() as client:
            packages = await client.search("author", "pyramation")
            created = await client.creation_date(packages[0].name)

    Attributes:
        rest_endpoint: Base URL of the registry
        page_size: Number of search results requested per page
        timeout: Per-request timeout in seconds, None for no timeout
    """

    def __init__(
        self,
        rest_endpoint: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.rest_endpoint = (rest_endpoint or settings.NPM_REGISTRY_URL).rstrip("/")
        self.page_size = page_size or settings.NPM_SEARCH_PAGE_SIZE
        self.timeout = timeout if timeout is not None else settings.NPM_REQUEST_TIMEOUT
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "NPMRegistryClient":
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.rest_endpoint,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"}
            )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("NPMRegistryClient must be used as an async context manager")
        return self._client

    async def search(self, search_type: str, identity: str) -> List[PackageDescriptor]:
        """
        Fetch every search result for ``<search_type>:<identity>``.

        Args:
            search_type: One of author, maintainer, publisher
            identity: Registry user name

        Returns:
            Package descriptors in registry order

        Raises:
            ValueError: For an unknown search type
            SearchQueryError: On transport, HTTP or payload errors
        """
        if search_type not in SEARCH_TYPES:
            raise ValueError(f"Unknown search type {search_type!r}, expected one of {SEARCH_TYPES}")

        text = f"{search_type}:{identity}"
        packages: List[PackageDescriptor] = []
        offset = 0

        while True:
            context = {"search_type": search_type, "identity": identity, "offset": offset}
            params = {"text": text, "size": self.page_size, "from": offset}

            data = await self._get_json("/-/v1/search", params, SearchQueryError, context)

            try:
                page = SearchResponse.model_validate(data)
            except ValidationError as e:
                raise SearchQueryError(
                    "Malformed search response",
                    context=context,
                    original_exception=e
                )

            if not page.objects:
                break

            packages.extend(obj.package for obj in page.objects)
            offset += len(page.objects)

            logger.debug(f"Search {text}: {offset}/{page.total} results")

            if offset >= page.total:
                break

        logger.info(f"Search {text} returned {len(packages)} packages")
        return packages

    async def creation_date(self, package_name: str) -> datetime:
        """
        Return the creation timestamp recorded in the package's ``time`` map.

        Raises:
            MetadataFetchError: On transport or HTTP errors, or when the
                packument has no parsable ``time.created``
        """
        context = {"package_name": package_name}
        data = await self._get_json(
            f"/{quote(package_name, safe='@')}", None, MetadataFetchError, context
        )

        created = (data.get("time") or {}).get("created") if isinstance(data, dict) else None
        if not created:
            raise MetadataFetchError(
                f"No creation date in registry metadata for {package_name}",
                context=context
            )

        try:
            return datetime.fromisoformat(str(created).replace("Z", "+00:00"))
        except ValueError as e:
            raise MetadataFetchError(
                f"Unparsable creation date for {package_name}",
                context={**context, "created": created},
                original_exception=e
            )

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]],
        error_cls,
        context: Dict[str, Any]
    ) -> Any:
        """GET ``path`` and decode JSON, wrapping every failure in ``error_cls``"""
        try:
            response = await self.client.get(path, params=params)
        except httpx.HTTPError as e:
            raise error_cls(
                f"Request to {path} failed",
                context=dict(context),
                original_exception=e
            )

        if response.status_code >= 400:
            raise error_cls(
                f"Registry returned HTTP {response.status_code} for {path}",
                context={
                    **context,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]  # Truncate
                }
            )

        try:
            return response.json()
        except ValueError as e:
            raise error_cls(
                f"Failed to parse JSON response from {path}",
                context={**context, "response_body": response.text[:500]},
                original_exception=e
            )
