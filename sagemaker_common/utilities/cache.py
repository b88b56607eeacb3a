# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"). You
# may not use this file except in compliance with the License. A copy of
# the License is located at
#
#     http://aws.amazon.com/apache2.0/
#
# or in the "license" file accompanying this file. This file is
# distributed on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF
# ANY KIND, either express or implied. See the License for the specific
# language governing permissions and limitations under the License.
"""Bounded, expiring least-recently-used cache backed by a retrieval function."""
from __future__ import absolute_import

import collections
import copy
import datetime
import logging
from typing import Any, Callable, Generic, NamedTuple, Optional, TypeVar

from sagemaker_common.exceptions import CacheItemNotFoundError, StaleCacheItemError

K = TypeVar("K")
V = TypeVar("V")

logger = logging.getLogger(__name__)

# lets put() tell an omitted value apart from an explicit None
_MISSING: Any = object()


def _utc_now() -> datetime.datetime:
    """Current time, timezone-aware, in UTC."""
    return datetime.datetime.now(tz=datetime.timezone.utc)


class _Entry(NamedTuple):
    value: Any
    stored_at: datetime.datetime


class LRUCache(Generic[K, V]):
    """Mapping with a size bound whose entries expire and are reloaded on demand.

    Entries are kept from least to most recently used. Every successful read or write
    of a key moves it to the most recent end, and storing a new key in a full cache
    drops the least recent entry. An entry whose age exceeds ``expiration_horizon`` is
    reloaded through ``retrieval_function(key=..., value=...)`` on its next read.

    With ``copy_values`` (the default) values are deep-copied when stored and again
    when handed out, so callers can never change what the cache holds. Caches of
    read-only values can turn copying off and share the stored objects.
    """

    def __init__(
        self,
        max_cache_items: int,
        expiration_horizon: datetime.timedelta,
        retrieval_function: Callable[..., V],
        clock: Optional[Callable[[], datetime.datetime]] = None,
        copy_values: bool = True,
    ) -> None:
        """Create an empty cache.

        Args:
            max_cache_items (int): Number of entries the cache may hold, at least 1.
            expiration_horizon (datetime.timedelta): Age after which an entry counts as
                stale. Zero makes every entry stale as soon as any time has passed.
            retrieval_function (Callable): Loads the value for a key. Called with the
                keyword arguments ``key`` and ``value``, the latter being the value
                currently cached for the key or None.
            clock (Callable[[], datetime.datetime]): Returns the current time.
                Defaults to the UTC wall clock.
            copy_values (bool): Deep-copy values on the way in and out. (Default: True).

        Raises:
            ValueError: On a non-positive size, a negative horizon or a retrieval
                function that cannot be called.
        """
        if max_cache_items <= 0:
            raise ValueError(
                f"max_cache_items must be a positive integer, got: {max_cache_items}."
            )
        if expiration_horizon < datetime.timedelta(0):
            raise ValueError(
                f"expiration_horizon must not be negative, got: {expiration_horizon}."
            )
        if not callable(retrieval_function):
            raise ValueError("retrieval_function must be callable.")

        self._max_cache_items = max_cache_items
        self._expiration_horizon = expiration_horizon
        self._retrieval_function = retrieval_function
        self._clock = clock or _utc_now
        self._copy_values = copy_values
        self._entries: "collections.OrderedDict[K, _Entry]" = collections.OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        """Membership test that neither refreshes recency nor checks expiry."""
        return key in self._entries

    @property
    def max_cache_items(self) -> int:
        return self._max_cache_items

    @property
    def expiration_horizon(self) -> datetime.timedelta:
        return self._expiration_horizon

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def get(self, key: K, data_source_fallback: bool = True) -> V:
        """Return the value cached for ``key``.

        With ``data_source_fallback`` a missing key is loaded and stored, and a stale
        entry is reloaded in place. If the reload raises, the stale entry is kept and
        the error propagates.

        Raises:
            CacheItemNotFoundError: The key is absent and fallback is disabled.
            StaleCacheItemError: The entry is stale and fallback is disabled.
        """
        entry = self._entries.get(key)
        if entry is None:
            if not data_source_fallback:
                raise CacheItemNotFoundError(f"{key} not found in LRUCache!", key=key)
            self.put(key)
            return self._copy(self._entries[key].value)

        now = self._clock()
        if now - entry.stored_at > self._expiration_horizon:
            if not data_source_fallback:
                raise StaleCacheItemError(
                    f"{key} is stale: stored at {entry.stored_at}, "
                    f"expiration horizon is {self._expiration_horizon}.",
                    key=key,
                    creation_time=entry.stored_at,
                )
            logger.debug("Reloading stale LRUCache entry %s (stored at %s).", key, entry.stored_at)
            reloaded = self._retrieval_function(key=key, value=entry.value)
            entry = _Entry(self._copy(reloaded), now)
            self._entries[key] = entry

        self._entries.move_to_end(key)
        return self._copy(entry.value)

    def put(self, key: K, value: Any = _MISSING) -> None:
        """Store ``value`` under ``key``, loading it when no value is passed.

        ``None`` is a value like any other. The value is obtained before the cache is
        touched, so a failing retrieval function leaves every entry in place.
        Replacing an existing key never evicts another one.
        """
        if value is _MISSING:
            current = self._entries.get(key)
            value = self._retrieval_function(
                key=key, value=current.value if current is not None else None
            )
        entry = _Entry(self._copy(value), self._clock())

        self._entries.pop(key, None)
        while len(self._entries) >= self._max_cache_items:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s from LRUCache.", evicted_key)
        self._entries[key] = entry

    def _copy(self, value: Any) -> Any:
        return copy.deepcopy(value) if self._copy_values else value
