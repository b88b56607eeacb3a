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
"""Regional cache of the JumpStart manifest and model specs files."""
from __future__ import absolute_import

import datetime
import json
import logging
import os
from difflib import get_close_matches
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

import boto3
import botocore
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import Version

from sagemaker_common.jumpstart import utils
from sagemaker_common.jumpstart.constants import (
    ENV_VARIABLE_JUMPSTART_MANIFEST_LOCAL_ROOT_DIR_OVERRIDE,
    ENV_VARIABLE_JUMPSTART_SPECS_LOCAL_ROOT_DIR_OVERRIDE,
    JUMPSTART_CACHE_EXPIRATION_HORIZON,
    JUMPSTART_CACHE_MAX_ITEMS,
    JUMPSTART_DEFAULT_MANIFEST_FILE_S3_KEY,
    JUMPSTART_DEFAULT_REGION_NAME,
    MODEL_ID_LIST_WEB_URL,
)
from sagemaker_common.jumpstart.types import (
    JumpStartCachedS3ContentKey,
    JumpStartCachedS3ContentValue,
    JumpStartModelHeader,
    JumpStartModelSpecs,
    JumpStartS3FileType,
    JumpStartVersionedModelId,
)
from sagemaker_common.utilities.cache import LRUCache

logger = logging.getLogger(__name__)

_LOCAL_ROOT_ENV_VARIABLES = {
    JumpStartS3FileType.MANIFEST: ENV_VARIABLE_JUMPSTART_MANIFEST_LOCAL_ROOT_DIR_OVERRIDE,
    JumpStartS3FileType.SPECS: ENV_VARIABLE_JUMPSTART_SPECS_LOCAL_ROOT_DIR_OVERRIDE,
}


def _local_metadata_root(file_type: JumpStartS3FileType) -> Optional[str]:
    """Directory to read ``file_type`` files from, or None to read from S3.

    Local reads need both override variables to name existing directories.
    """
    roots = {kind: os.environ.get(name, "") for kind, name in _LOCAL_ROOT_ENV_VARIABLES.items()}
    if all(os.path.isdir(root) for root in roots.values()):
        return roots[file_type]
    return None


def _highest_match(
    version_pattern: str, headers: Sequence[JumpStartModelHeader]
) -> Optional[JumpStartModelHeader]:
    """Header with the highest version matching ``version_pattern``, if any.

    ``"*"`` matches everything. Any other pattern is read as ``==pattern``, so
    ``"1.*"`` matches every 1.x.y release.

    Raises:
        KeyError: If the pattern is not a valid version specifier.
    """
    if version_pattern != "*":
        try:
            specifier = SpecifierSet(f"=={version_pattern}")
        except InvalidSpecifier:
            raise KeyError(f"Bad semantic version: {version_pattern}")
        headers = [header for header in headers if Version(header.version) in specifier]
    return max(headers, key=lambda header: Version(header.version), default=None)


class JumpStartModelsCache(object):
    """Serves JumpStart metadata for one region and bucket.

    Two ``LRUCache`` instances back it. One holds parsed metadata files keyed by
    ``JumpStartCachedS3ContentKey``. The other maps a model ID and version pattern
    to the manifest entry chosen for it. Cached records are read-only and shared
    between callers.

    Changing the region, bucket or manifest key clears both caches.
    """

    def __init__(
        self,
        region: str = JUMPSTART_DEFAULT_REGION_NAME,
        s3_bucket_name: Optional[str] = None,
        s3_client: Optional[Any] = None,
        s3_client_config: Optional[botocore.config.Config] = None,
        manifest_file_s3_key: str = JUMPSTART_DEFAULT_MANIFEST_FILE_S3_KEY,
        max_cache_items: int = JUMPSTART_CACHE_MAX_ITEMS,
        expiration_horizon: datetime.timedelta = JUMPSTART_CACHE_EXPIRATION_HORIZON,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        """Create the caches. Nothing is downloaded until the first lookup.

        Args:
            region (str): Region whose JumpStart bucket holds the metadata.
            s3_bucket_name (str): Bucket to read from instead of the region's
                JumpStart content bucket.
            s3_client: boto3 S3 client. One is created for ``region`` if omitted.
            s3_client_config (botocore.config.Config): Config of the created client.
            manifest_file_s3_key (str): Object key of the manifest.
            max_cache_items (int): Size of each of the two caches.
            expiration_horizon (datetime.timedelta): Age after which cached metadata
                is checked again.
            clock (Callable[[], datetime.datetime]): Time source of both caches.
        """
        self._region = region
        self._manifest_file_s3_key = manifest_file_s3_key
        self._s3_bucket_name = s3_bucket_name or utils.get_jumpstart_content_bucket(region)
        self._s3_client = s3_client or boto3.client(
            "s3", region_name=region, config=s3_client_config
        )
        cache_options = dict(
            max_cache_items=max_cache_items,
            expiration_horizon=expiration_horizon,
            clock=clock,
            copy_values=False,
        )
        self._s3_cache = LRUCache(retrieval_function=self._load_file, **cache_options)
        self._version_cache = LRUCache(retrieval_function=self._resolve_version, **cache_options)

    @property
    def region(self) -> str:
        return self._region

    @region.setter
    def region(self, region: str) -> None:
        if region != self._region:
            self._region = region
            self.clear()

    @property
    def s3_bucket_name(self) -> str:
        return self._s3_bucket_name

    @s3_bucket_name.setter
    def s3_bucket_name(self, s3_bucket_name: str) -> None:
        if s3_bucket_name != self._s3_bucket_name:
            self._s3_bucket_name = s3_bucket_name
            self.clear()

    @property
    def manifest_file_s3_key(self) -> str:
        return self._manifest_file_s3_key

    @manifest_file_s3_key.setter
    def manifest_file_s3_key(self, key: str) -> None:
        if key != self._manifest_file_s3_key:
            self._manifest_file_s3_key = key
            self.clear()

    def clear(self) -> None:
        self._s3_cache.clear()
        self._version_cache.clear()

    def get_manifest(self) -> List[JumpStartModelHeader]:
        """Every manifest entry."""
        return list(self._manifest().values())

    def get_header(self, model_id: str, semantic_version_str: str) -> JumpStartModelHeader:
        """Manifest entry of the highest ``model_id`` version matching the pattern.

        Only versions whose ``min_version`` the installed library satisfies are
        considered. A resolution made against an older manifest triggers one
        clear and retry.

        Raises:
            KeyError: If no version matches. The message suggests an upgrade,
                another version, or the closest model ID.
        """
        versioned_id = JumpStartVersionedModelId(model_id, semantic_version_str)
        header = self._manifest().get(self._version_cache.get(versioned_id))
        if header is None:
            self.clear()
            header = self._manifest()[self._version_cache.get(versioned_id)]
        return header

    def get_specs(self, model_id: str, semantic_version_str: str) -> JumpStartModelSpecs:
        """Specs of the model version ``get_header`` picks."""
        header = self.get_header(model_id, semantic_version_str)
        key = JumpStartCachedS3ContentKey(JumpStartS3FileType.SPECS, header.spec_key)
        return self._s3_cache.get(key).formatted_content

    def _manifest(self) -> Mapping[JumpStartVersionedModelId, JumpStartModelHeader]:
        key = JumpStartCachedS3ContentKey(JumpStartS3FileType.MANIFEST, self._manifest_file_s3_key)
        return self._s3_cache.get(key).formatted_content

    def _read_json(self, key: JumpStartCachedS3ContentKey) -> Tuple[Any, Optional[str]]:
        """Parsed file and its ETag. Local reads have no ETag."""
        local_root = _local_metadata_root(key.file_type)
        if local_root is not None:
            with open(os.path.join(local_root, key.s3_key), "r") as json_file:
                return json.load(json_file), None
        response = self._s3_client.get_object(Bucket=self._s3_bucket_name, Key=key.s3_key)
        return json.loads(response["Body"].read().decode("utf-8")), response["ETag"]

    def _load_file(
        self,
        key: JumpStartCachedS3ContentKey,
        value: Optional[JumpStartCachedS3ContentValue],
    ) -> JumpStartCachedS3ContentValue:
        """Retrieval function of the file cache.

        An expired manifest is only downloaded again when its S3 ETag changed.

        Raises:
            ValueError: If the key has an unknown file type.
        """
        if key.file_type == JumpStartS3FileType.MANIFEST:
            if value is not None and _local_metadata_root(key.file_type) is None:
                etag = self._s3_client.head_object(Bucket=self._s3_bucket_name, Key=key.s3_key)[
                    "ETag"
                ]
                if etag == value.md5_hash:
                    logger.debug("JumpStart manifest %s is unchanged.", key.s3_key)
                    return value
            manifest, etag = self._read_json(key)
            return JumpStartCachedS3ContentValue(utils.get_formatted_manifest(manifest), etag)

        if key.file_type == JumpStartS3FileType.SPECS:
            specs = JumpStartModelSpecs(self._read_json(key)[0])
            utils.emit_logs_based_on_model_specs(specs, self._region)
            return JumpStartCachedS3ContentValue(specs)

        raise ValueError(f"Unknown JumpStart metadata file type: {key.file_type}")

    def _resolve_version(
        self,
        key: JumpStartVersionedModelId,
        value: Optional[JumpStartVersionedModelId],  # pylint: disable=unused-argument
    ) -> JumpStartVersionedModelId:
        """Retrieval function of the version cache.

        Raises:
            KeyError: If no version compatible with the installed library matches.
        """
        manifest = self._manifest()
        headers = [header for header in manifest.values() if header.model_id == key.model_id]
        library_version = Version(utils.get_sagemaker_version())
        compatible = [
            header for header in headers if Version(header.min_version) <= library_version
        ]

        chosen = _highest_match(key.version, compatible)
        if chosen is not None:
            return JumpStartVersionedModelId(key.model_id, chosen.version)

        needs_upgrade = _highest_match(key.version, headers)
        if needs_upgrade is not None:
            raise KeyError(
                f"Version '{needs_upgrade.version}' of '{key.model_id}' matches '{key.version}' "
                f"but needs SageMaker library version {needs_upgrade.min_version} or later "
                f"(installed: {library_version}). Upgrade the library to use it."
            )

        message = (
            f"Unable to find model manifest for '{key.model_id}' with version "
            f"'{key.version}'. Visit {MODEL_ID_LIST_WEB_URL} for the list of models."
        )
        newest = _highest_match("*", headers)
        if newest is not None:
            message += f" Version '{newest.version}' of '{key.model_id}' is available."
        else:
            model_ids = {header.model_id for header in manifest.values()}
            closest = get_close_matches(key.model_id, model_ids, n=1, cutoff=0)
            if closest:
                message += f" Did you mean model ID '{closest[0]}'?"
        raise KeyError(message)
