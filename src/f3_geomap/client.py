"""
Paginated F3 Nation API client (aiohttp).

The three listing endpoints take ``pageIndex``/``pageSize`` plus filters.
There is no total-count header: a page shorter than ``pageSize`` (including
an empty one) ends the listing.  The three collections are fetched
concurrently; the first failure aborts the whole load with
``DataLoadError`` and nothing is retried.

Array filters are sent as indexed keys: ``statuses[0]=active``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

import aiohttp

from .config import Settings
from .models import Collections, Event, LEVELS, Location, Organization
from .parser import parse_records

logger = logging.getLogger(__name__)

ParamValue = Union[str, int, float, bool, list]

ORG_PATH = "/v1/org"
LOCATION_PATH = "/v1/location"
EVENT_PATH = "/v1/event"

# Wrapping keys seen in listing responses, checked in order
ARRAY_KEYS = ("orgs", "locations", "events", "items", "data")


class DataLoadError(RuntimeError):
    """A listing request failed; the session cannot start."""


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_params(params: dict[str, ParamValue]) -> list[tuple[str, str]]:
    """Flatten params to query pairs, expanding lists to ``key[i]``."""
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                pairs.append((f"{key}[{index}]", _format_value(item)))
        else:
            pairs.append((key, _format_value(value)))
    return pairs


def extract_items(payload: Any) -> list:
    """Find the record list in a listing response.

    Accepts a bare list, a mapping with one of the known wrapping keys, or
    any mapping whose first list value holds the records.
    """
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    for key in ARRAY_KEYS:
        if isinstance(payload.get(key), list):
            return payload[key]

    for value in payload.values():
        if isinstance(value, list):
            return value

    return []


class F3ApiClient:
    """Read-only client for the listing endpoints.

    Use as an async context manager, or pass an existing
    ``aiohttp.ClientSession`` (the caller then owns it).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client_header: str = "scalar-api",
        page_size: int = 1000,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "client": client_header,
        }
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[aiohttp.ClientSession] = None) -> "F3ApiClient":
        return cls(
            base_url=settings.api_base,
            api_key=settings.api_key,
            client_header=settings.client_header,
            page_size=settings.page_size,
            session=session,
        )

    async def __aenter__(self) -> "F3ApiClient":
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def get_json(self, path: str, params: Optional[dict[str, ParamValue]] = None) -> Any:
        if self._session is None:
            raise RuntimeError("F3ApiClient used outside 'async with'")

        url = f"{self.base_url}{path}"
        try:
            async with self._session.get(url, params=encode_params(params or {}), headers=self._headers) as response:
                if response.status >= 400:
                    raise DataLoadError(f"API request failed: {response.status} {response.reason}")
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise DataLoadError(f"API request failed: {e}") from e

    async def fetch_paged(self, path: str, params: Optional[dict[str, ParamValue]] = None) -> list:
        """All records from a listing, page by page."""
        results: list = []
        page_index = 0
        while True:
            payload = await self.get_json(path, {**(params or {}), "pageIndex": page_index, "pageSize": self.page_size})
            items = extract_items(payload)
            results.extend(items)
            if len(items) < self.page_size:
                break
            page_index += 1
        logger.debug(f"{path}: {len(results)} records in {page_index + 1} page(s)")
        return results

    async def fetch_orgs(self) -> list[Organization]:
        items = await self.fetch_paged(ORG_PATH, {
            "orgTypes": [level.value for level in LEVELS],
            "statuses": ["active"],
        })
        return parse_records(Organization, items)

    async def fetch_locations(self) -> list[Location]:
        items = await self.fetch_paged(LOCATION_PATH, {"statuses": ["active"]})
        return parse_records(Location, items)

    async def fetch_events(self) -> list[Event]:
        items = await self.fetch_paged(EVENT_PATH, {"statuses": ["active"]})
        return parse_records(Event, items)

    async def load_collections(self) -> Collections:
        """Fetch all three collections concurrently."""
        orgs, locations, events = await asyncio.gather(
            self.fetch_orgs(),
            self.fetch_locations(),
            self.fetch_events(),
        )
        logger.info(f"Loaded {len(orgs)} orgs, {len(locations)} locations, {len(events)} events")
        return Collections(orgs=orgs, locations=locations, events=events)
