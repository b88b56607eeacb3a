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
"""Process-wide access to the JumpStart models cache.

Every JumpStart lookup in the package goes through ``JumpStartModelsAccessor``, which
keeps a single ``JumpStartModelsCache`` alive and rebuilds it when the region or the
cache options change.
"""
from __future__ import absolute_import

from typing import Any, Dict, List, Optional, Tuple

from sagemaker_common.jumpstart import cache
from sagemaker_common.jumpstart.constants import JUMPSTART_DEFAULT_REGION_NAME
from sagemaker_common.jumpstart.types import JumpStartModelHeader, JumpStartModelSpecs


class SageMakerSettings(object):
    """Library version that JumpStart ``min_version`` checks compare with."""

    _version = ""

    @classmethod
    def set_sagemaker_version(cls, version: str) -> None:
        cls._version = version

    @classmethod
    def get_sagemaker_version(cls) -> str:
        return cls._version


def _split_region(
    cache_kwargs: Optional[Dict[str, Any]], region: Optional[str]
) -> Tuple[Dict[str, Any], Optional[str]]:
    """Separate a ``region`` entry from cache options.

    Returns a new options dict without ``region`` and the region to use, which is
    ``region`` if given and the entry from the options otherwise.

    Raises:
        ValueError: If both name a region and they differ.
    """
    options = dict(cache_kwargs or {})
    option_region = options.pop("region", None)
    if region is not None and option_region is not None and region != option_region:
        raise ValueError(f"Inconsistent region definitions: {region}, {option_region}")
    return options, region or option_region


class JumpStartModelsAccessor(object):
    """Holds the shared ``JumpStartModelsCache`` and the resolved content bucket."""

    _cache: Optional[cache.JumpStartModelsCache] = None
    _region: str = JUMPSTART_DEFAULT_REGION_NAME
    _cache_kwargs: Dict[str, Any] = {}
    _content_bucket: Optional[str] = None

    @classmethod
    def set_jumpstart_content_bucket(cls, content_bucket: str) -> None:
        cls._content_bucket = content_bucket

    @classmethod
    def get_jumpstart_content_bucket(cls) -> Optional[str]:
        return cls._content_bucket

    @classmethod
    def _install(cls, region: str, cache_kwargs: Dict[str, Any]) -> None:
        # constructing the cache may resolve the content bucket, which calls reset_cache
        models_cache = cache.JumpStartModelsCache(region=region, **cache_kwargs)
        cls._cache, cls._region, cls._cache_kwargs = models_cache, region, cache_kwargs

    @classmethod
    def _models_cache(cls, region: str, s3_client=None) -> cache.JumpStartModelsCache:
        """The shared cache, rebuilt first if ``region`` or ``s3_client`` is new to it."""
        cache_kwargs = dict(cls._cache_kwargs)
        if s3_client is not None:
            cache_kwargs["s3_client"] = s3_client
        if cls._cache is None or region != cls._region or cache_kwargs != cls._cache_kwargs:
            cls._install(region, cache_kwargs)
        return cls._cache

    @classmethod
    def get_manifest(
        cls, region: str = JUMPSTART_DEFAULT_REGION_NAME, s3_client=None
    ) -> List[JumpStartModelHeader]:
        """Every entry of the region's JumpStart manifest.

        Args:
            region (str): Region whose manifest is read.
            s3_client: boto3 S3 client for the cache to use. (Default: the cache's own).
        """
        return cls._models_cache(region, s3_client).get_manifest()

    @classmethod
    def get_model_header(cls, region: str, model_id: str, version: str) -> JumpStartModelHeader:
        return cls._models_cache(region).get_header(
            model_id=model_id, semantic_version_str=version
        )

    @classmethod
    def get_model_specs(
        cls, region: str, model_id: str, version: str, s3_client=None
    ) -> JumpStartModelSpecs:
        """Specs of the newest ``model_id`` version matching ``version``.

        Args:
            region (str): Region whose metadata is read.
            model_id (str): JumpStart model ID.
            version (str): Version or version pattern such as ``"1.*"`` or ``"*"``.
            s3_client: boto3 S3 client for the cache to use. (Default: the cache's own).
        """
        return cls._models_cache(region, s3_client).get_specs(
            model_id=model_id, semantic_version_str=version
        )

    @classmethod
    def set_cache_kwargs(cls, cache_kwargs: Dict[str, Any], region: Optional[str] = None) -> None:
        """Replace the cache by one built with ``cache_kwargs``.

        ``cache_kwargs`` may carry a ``region`` entry. The current region is kept when
        neither it nor ``region`` names one.

        Raises:
            ValueError: If ``region`` and the ``region`` entry differ.
        """
        options, region = _split_region(cache_kwargs, region)
        cls._install(region or cls._region, options)

    @classmethod
    def reset_cache(
        cls, cache_kwargs: Optional[Dict[str, Any]] = None, region: Optional[str] = None
    ) -> None:
        """Drop everything cached, optionally switching options or region."""
        cls.set_cache_kwargs(cache_kwargs or {}, region)
