"""
Remote catalog index.

Maps exact file size to the set of fingerprints already stored in the
catalog. Built once at startup and read-only for the rest of the run.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import httpx

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

_EMPTY: FrozenSet[str] = frozenset()


class RemoteIndex:
    """Immutable size → fingerprints lookup."""

    def __init__(self, buckets: Optional[Mapping[int, Iterable[str]]] = None):
        self._buckets: Dict[int, FrozenSet[str]] = {
            int(size): frozenset(fingerprints) for size, fingerprints in (buckets or {}).items()
        }

    @classmethod
    def from_records(cls, records: Iterable[Tuple[int, str]]) -> "RemoteIndex":
        """Group (size, fingerprint) pairs into size buckets."""
        grouped: Dict[int, set] = {}
        for size, fingerprint in records:
            grouped.setdefault(int(size), set()).add(fingerprint)
        return cls(grouped)

    def has_size(self, size: int) -> bool:
        return size in self._buckets

    def contains(self, size: int, fingerprint: str) -> bool:
        return fingerprint in self._buckets.get(size, _EMPTY)

    @property
    def fingerprint_count(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def __len__(self) -> int:
        return len(self._buckets)


def parse_index_payload(payload: Any) -> List[Tuple[int, str]]:
    """
    Normalize an index response body into (size, fingerprint) pairs.

    Accepts either a bare list of rows or ``{"results": [...]}``. Each row
    needs ``size`` and ``md5sum``; rows without a fingerprint are ignored.

    Raises:
        ConfigurationError: if the payload shape is not understood
    """
    rows = payload.get("results") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ConfigurationError("remote index payload must be a list of rows")

    records = []
    for row in rows:
        if not isinstance(row, dict):
            raise ConfigurationError(f"remote index row is not an object: {row!r}")
        fingerprint = row.get("md5sum")
        if not fingerprint:
            continue
        try:
            size = int(row["size"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"remote index row has no valid size: {row!r}") from exc
        if size < 0:
            raise ConfigurationError(f"remote index row has negative size: {row!r}")
        records.append((size, str(fingerprint)))
    return records


class StaticIndexSource:
    """Index source over records already in memory."""

    def __init__(self, records: Iterable[Tuple[int, str]] = ()):
        self._records = list(records)

    async def fetch(self) -> List[Tuple[int, str]]:
        return list(self._records)


class HTTPIndexSource:
    """
    Fetches the index from the datastore API.

    Implements IIndexSource protocol.
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = "/media/fingerprints",
        timeout: float = 60,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._endpoint = endpoint
        self._timeout = timeout
        self._verify = verify
        self._transport = transport

    async def fetch(self) -> List[Tuple[int, str]]:
        max_retries = 3
        last_exception: Optional[Exception] = None

        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            verify=self._verify,
            transport=self._transport,
        ) as client:
            for attempt in range(max_retries):
                try:
                    response = await client.get(self._endpoint)

                    if response.status_code >= 500 and attempt < max_retries - 1:
                        await asyncio.sleep(0.5 * (attempt + 1))
                        continue

                    if response.status_code >= 400:
                        raise ConfigurationError(
                            f"remote index error {response.status_code} on GET {self._endpoint}"
                        )

                    try:
                        payload = response.json()
                    except ValueError as exc:
                        raise ConfigurationError(f"remote index returned invalid JSON: {exc}") from exc

                    records = parse_index_payload(payload)
                    logger.info("Retrieved %d fingerprints from remote index", len(records))
                    return records
                except httpx.HTTPError as exc:
                    last_exception = exc
                    if attempt < max_retries - 1:
                        await asyncio.sleep(0.5 * (attempt + 1))
                        continue

        raise ConfigurationError(
            f"remote index unreachable at {self._base_url}{self._endpoint}: {last_exception}"
        )


async def load_remote_index(source) -> RemoteIndex:
    """Build the run's RemoteIndex from a source."""
    records = await source.fetch()
    index = RemoteIndex.from_records(records)
    logger.info(
        "Remote index ready: %d sizes, %d fingerprints", len(index), index.fingerprint_count
    )
    return index
