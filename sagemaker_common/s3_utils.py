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
"""Helper functions for S3 URIs and paths.

These are kept apart from ``s3.py`` so that ``session.py`` can import them
without importing ``Session`` back.
"""
from __future__ import absolute_import

import logging
import re
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger("sagemaker_common")

S3_SCHEME_PREFIX = "s3://"
_S3_URI_PATTERN = re.compile(r"^s3://[a-z0-9.\-]+(/(.*)?)?$")
_REPEATED_SLASHES = re.compile(r"/{2,}")


def parse_s3_url(url):
    """Returns an (s3 bucket, key name/prefix) tuple from a url with an s3 scheme.

    Args:
        url (str): URL of the form ``s3://bucket/key``.

    Returns:
        tuple: A tuple containing:

            - str: S3 bucket name
            - str: S3 key

    Raises:
        ValueError: If the url scheme is not ``s3``.
    """
    parsed_url = urlparse(url)
    if parsed_url.scheme != "s3":
        raise ValueError("Expecting 's3' scheme, got: {} in {}.".format(parsed_url.scheme, url))
    return parsed_url.netloc, parsed_url.path.lstrip("/")


def is_s3_uri(value):
    """Returns True if ``value`` is a string shaped like ``s3://bucket[/key]``."""
    return isinstance(value, str) and _S3_URI_PATTERN.match(value) is not None


def s3_path_join(*args, with_end_slash: bool = False):
    """Returns the arguments joined by a slash ("/"), similar to ``os.path.join()`` (on Unix).

    - A leading "s3://" is preserved.
    - Empty or None arguments are skipped.
    - Repeat slashes are collapsed, and leading slashes are removed.
    - Trailing slashes are removed unless ``with_end_slash`` is True, in which case
      exactly one is kept on a non-empty path.

    For example, ``s3_path_join("s3://", "//foo/", "/bar///baz")`` yields
    ``"s3://foo/bar/baz"`` and ``s3_path_join("foo", "", None, "bar")`` yields ``"foo/bar"``.

    Args:
        *args: The strings to join with a slash.
        with_end_slash (bool): (default: False) If true and if the path is not empty, appends a "/"
            to the end of the path

    Returns:
        str: The joined string.
    """
    parts = [arg for arg in args if arg is not None and arg != ""]
    joined = "/".join(parts)

    prefix = ""
    if joined.startswith(S3_SCHEME_PREFIX):
        prefix, joined = S3_SCHEME_PREFIX, joined[len(S3_SCHEME_PREFIX) :]

    path = _REPEATED_SLASHES.sub("/", joined).strip("/")
    if with_end_slash and path:
        path += "/"
    return prefix + path


def determine_bucket_and_prefix(
    bucket: Optional[str] = None, key_prefix: Optional[str] = None, sagemaker_session=None
):
    """Helper function that returns the correct S3 bucket and prefix to use depending on the inputs.

    Args:
        bucket (Optional[str]): S3 Bucket to use (if it exists).
        key_prefix (Optional[str]): S3 Object Key Prefix to use or append to (if it exists).
        sagemaker_session (sagemaker_common.session.Session): Session to fetch a default
            bucket and prefix from, if bucket doesn't exist.

    Returns:
        tuple: The S3 bucket and the key prefix. ``default_bucket_prefix`` of the
        session is only prepended when the session's default bucket is used.
    """
    if bucket:
        return bucket, key_prefix

    final_bucket = sagemaker_session.default_bucket()
    final_key_prefix = s3_path_join(sagemaker_session.default_bucket_prefix, key_prefix)
    logger.debug("Using default bucket %s with key prefix %s.", final_bucket, final_key_prefix)
    return final_bucket, final_key_prefix
