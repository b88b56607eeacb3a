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
"""Custom exceptions raised by the expiring LRU cache."""
from __future__ import absolute_import


class LRUCacheError(KeyError):
    """Base class for lookups that the LRU cache could not satisfy.

    Subclasses ``KeyError`` so that callers treating a cache miss like a missing
    dictionary key keep working.
    """

    def __init__(self, message, key=None):
        self.key = key
        super(LRUCacheError, self).__init__(message)

    def __str__(self):
        """Return the message without the quoting ``KeyError`` adds."""
        return str(self.args[0]) if self.args else ""


class CacheItemNotFoundError(LRUCacheError):
    """Raised when a key is absent and fallback retrieval is disabled."""


class StaleCacheItemError(LRUCacheError):
    """Raised when a key has aged past the expiration horizon and fallback is disabled."""

    def __init__(self, message, key=None, creation_time=None):
        self.creation_time = creation_time
        super(StaleCacheItemError, self).__init__(message, key=key)
