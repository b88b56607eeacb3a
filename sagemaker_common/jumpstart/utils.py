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
"""Helpers shared by the JumpStart cache, accessors and artifact lookups."""
from __future__ import absolute_import

import os
import types
from typing import Any, Iterable, Mapping, Optional

from packaging.version import Version

import sagemaker_common
from sagemaker_common.jumpstart import accessors, constants
from sagemaker_common.jumpstart.enums import JumpStartScriptScope
from sagemaker_common.jumpstart.exceptions import (
    DeprecatedJumpStartModelError,
    VulnerableJumpStartModelError,
)
from sagemaker_common.jumpstart.types import (
    JumpStartModelHeader,
    JumpStartModelSpecs,
    JumpStartVersionedModelId,
)
from sagemaker_common.s3_utils import is_s3_uri, parse_s3_url


def _english_list(words: Iterable[str]) -> str:
    words = list(words)
    if len(words) < 3:
        return " and ".join(words)
    return f"{', '.join(words[:-1])}, and {words[-1]}"


def get_jumpstart_launched_regions_message() -> str:
    """Sentence naming the regions JumpStart is launched in."""
    regions = sorted(constants.JUMPSTART_LAUNCHED_REGIONS)
    if not regions:
        return "JumpStart is not available in any region."
    noun = "region" if len(regions) == 1 else "regions"
    return f"JumpStart is available in {_english_list(regions)} {noun}."


def get_jumpstart_content_bucket(region: str = constants.JUMPSTART_DEFAULT_REGION_NAME) -> str:
    """Name of the bucket serving JumpStart content in ``region``.

    ``AWS_JUMPSTART_CONTENT_BUCKET_OVERRIDE``, when set and non-empty, wins over the
    region's bucket. The accessor cache is reset whenever the answer differs from the
    previous one, so metadata of another bucket is never served.

    Raises:
        ValueError: If JumpStart is not launched in ``region`` and no override is set.
    """
    override = os.environ.get(constants.ENV_VARIABLE_JUMPSTART_CONTENT_BUCKET_OVERRIDE)
    if override:
        bucket = override
    elif region in constants.JUMPSTART_LAUNCHED_REGIONS:
        bucket = constants.JUMPSTART_LAUNCHED_REGIONS[region].content_bucket
    else:
        raise ValueError(
            f"Unable to get content bucket for JumpStart in {region} region. "
            f"{get_jumpstart_launched_regions_message()}"
        )

    previous = accessors.JumpStartModelsAccessor.get_jumpstart_content_bucket()
    accessors.JumpStartModelsAccessor.set_jumpstart_content_bucket(bucket)
    if bucket != previous:
        if override:
            constants.JUMPSTART_LOGGER.info("Using JumpStart bucket override: '%s'", override)
        accessors.JumpStartModelsAccessor.reset_cache()
    return bucket


def get_formatted_manifest(
    manifest: Iterable[Mapping[str, Any]],
) -> Mapping[JumpStartVersionedModelId, JumpStartModelHeader]:
    """Read-only mapping from (model ID, version) to the manifest entry."""
    headers = (JumpStartModelHeader(entry) for entry in manifest)
    return types.MappingProxyType(
        {JumpStartVersionedModelId(header.model_id, header.version): header for header in headers}
    )


def get_sagemaker_version() -> str:
    """Library version that model ``min_version`` values are compared with.

    Parsed from the package version on first use unless ``SageMakerSettings`` holds one.
    """
    if not accessors.SageMakerSettings.get_sagemaker_version():
        accessors.SageMakerSettings.set_sagemaker_version(parse_sagemaker_version())
    return accessors.SageMakerSettings.get_sagemaker_version()


def parse_sagemaker_version(version: Optional[str] = None) -> str:
    """Cut ``version`` (default: the package version) down to ``major.minor.patch``.

    Raises:
        RuntimeError: If the version has fewer than three or more than four parts.
        packaging.version.InvalidVersion: If the first three parts are not a version.
    """
    if version is None:
        version = sagemaker_common.__version__
    parts = version.split(".")
    if len(parts) not in (3, 4):
        raise RuntimeError(f"Bad value for SageMaker version: {version}")
    release = ".".join(parts[:3])
    Version(release)
    return release


def is_jumpstart_model_input(model_id: Optional[str], version: Optional[str]) -> bool:
    """Whether a model ID and version were given.

    Raises:
        ValueError: If exactly one of the two is None.
    """
    given = (model_id is not None, version is not None)
    if given == (True, True):
        return True
    if given == (False, False):
        return False
    raise ValueError(
        "Must specify JumpStart `model_id` and `model_version` when getting specs for "
        "JumpStart models."
    )


def is_jumpstart_model_uri(uri: Optional[str]) -> bool:
    """Whether ``uri`` points into one of the JumpStart content buckets."""
    return is_s3_uri(uri) and parse_s3_url(uri)[0] in constants.JUMPSTART_BUCKET_NAMES


def emit_logs_based_on_model_specs(model_specs: JumpStartModelSpecs, region: str) -> None:
    """Log the license, deprecation and vulnerability notices of a model version."""
    logger = constants.JUMPSTART_LOGGER
    if model_specs.hosting_eula_key:
        domain_suffix = ".cn" if region.startswith("cn-") else ""
        eula_url = (
            f"https://{get_jumpstart_content_bucket(region=region)}.s3.{region}"
            f".amazonaws.com{domain_suffix}/{model_specs.hosting_eula_key}"
        )
        logger.info(
            "Model '%s' requires accepting end-user license agreement (EULA). "
            "See %s for terms of use.",
            model_specs.model_id,
            eula_url,
        )
    if model_specs.deprecated:
        logger.warning(
            model_specs.deprecated_message
            or f"Using deprecated JumpStart model '{model_specs.model_id}' "
            f"and version '{model_specs.version}'."
        )
    if model_specs.deprecate_warn_message:
        logger.warning(model_specs.deprecate_warn_message)
    if model_specs.inference_vulnerable or model_specs.training_vulnerable:
        logger.warning(
            "Using vulnerable JumpStart model '%s' and version '%s'.",
            model_specs.model_id,
            model_specs.version,
        )


def verify_model_region_and_return_specs(
    model_id: Optional[str],
    version: Optional[str],
    scope: Optional[str],
    region: str,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> JumpStartModelSpecs:
    """Fetch the specs of a model version and check they fit the intended use.

    Args:
        model_id (str): JumpStart model ID.
        version (str): Version or version pattern.
        scope (str): ``"inference"`` or ``"training"``.
        region (str): Region whose JumpStart metadata is read.
        tolerate_vulnerable_model (bool): Return specs whose ``scope`` script has
            vulnerable dependencies instead of raising. (Default: False).
        tolerate_deprecated_model (bool): Return deprecated specs instead of
            raising. (Default: False).
        sagemaker_session (sagemaker_common.session.Session): Its S3 client reads the
            metadata. The cache uses its own client if omitted.

    Raises:
        ValueError: If ``scope`` is missing, or training is asked of a model
            that does not support it.
        NotImplementedError: If ``scope`` is unknown.
        DeprecatedJumpStartModelError: If the version is deprecated and not tolerated.
        VulnerableJumpStartModelError: If the ``scope`` script is vulnerable and
            that is not tolerated.
    """
    if scope is None:
        raise ValueError(
            "Must specify `model_scope` argument to retrieve model "
            "artifact uri for JumpStart models."
        )
    if scope not in constants.SUPPORTED_JUMPSTART_SCOPES:
        raise NotImplementedError(
            "JumpStart models only support scopes: "
            f"{', '.join(sorted(constants.SUPPORTED_JUMPSTART_SCOPES))}."
        )
    scope = JumpStartScriptScope(scope)

    model_specs = accessors.JumpStartModelsAccessor.get_model_specs(
        region=region,
        model_id=model_id,
        version=version,
        s3_client=getattr(sagemaker_session, "s3_client", None),
    )

    if scope == JumpStartScriptScope.TRAINING and not model_specs.training_supported:
        raise ValueError(
            f"JumpStart model ID '{model_id}' and version '{version}' does not support training."
        )
    if model_specs.deprecated and not tolerate_deprecated_model:
        raise DeprecatedJumpStartModelError(
            model_id=model_id, version=version, message=model_specs.deprecated_message
        )

    vulnerable = getattr(model_specs, f"{scope.value}_vulnerable")
    if vulnerable and not tolerate_vulnerable_model:
        raise VulnerableJumpStartModelError(
            model_id=model_id,
            version=version,
            vulnerabilities=getattr(model_specs, f"{scope.value}_vulnerabilities"),
            scope=scope,
        )
    return model_specs
