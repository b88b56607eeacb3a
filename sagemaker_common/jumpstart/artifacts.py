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
"""S3 locations, container images and default settings of JumpStart model versions.

Every lookup reads the model version's specs through the accessor cache and checks
them with ``verify_model_region_and_return_specs`` first, so deprecated or
vulnerable models are refused unless tolerated.
"""
from __future__ import absolute_import

from typing import Dict, Optional

from sagemaker_common import image_uris
from sagemaker_common.jumpstart.constants import JUMPSTART_DEFAULT_REGION_NAME
from sagemaker_common.jumpstart.enums import JumpStartScriptScope, VariableScope
from sagemaker_common.jumpstart.types import JumpStartModelSpecs
from sagemaker_common.jumpstart.utils import (
    get_jumpstart_content_bucket,
    is_jumpstart_model_input,
    verify_model_region_and_return_specs,
)

# model specs attribute holding each object key, by scope
_ARTIFACT_KEYS = {
    JumpStartScriptScope.INFERENCE: "hosting_artifact_key",
    JumpStartScriptScope.TRAINING: "training_artifact_key",
}
_SCRIPT_KEYS = {
    JumpStartScriptScope.INFERENCE: "hosting_script_key",
    JumpStartScriptScope.TRAINING: "training_script_key",
}
_ECR_SPECS = {
    JumpStartScriptScope.INFERENCE: "hosting_ecr_specs",
    JumpStartScriptScope.TRAINING: "training_ecr_specs",
}


def _model_specs(
    what: str, model_id, model_version, scope, region, **options
) -> JumpStartModelSpecs:
    if not is_jumpstart_model_input(model_id, model_version):
        raise ValueError(f"Must specify `model_id` and `model_version` when retrieving {what}.")
    return verify_model_region_and_return_specs(
        model_id=model_id,
        version=model_version,
        scope=scope,
        region=region or JUMPSTART_DEFAULT_REGION_NAME,
        **options,
    )


def _content_uri(region: Optional[str], key: str) -> str:
    bucket = get_jumpstart_content_bucket(region or JUMPSTART_DEFAULT_REGION_NAME)
    return f"s3://{bucket}/{key}"


def retrieve_model_uri(
    region: Optional[str] = None,
    model_id: Optional[str] = None,
    model_version: Optional[str] = None,
    model_scope: Optional[str] = None,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> str:
    """S3 URI of the model artifact tarball.

    Args:
        region (str): Region whose JumpStart bucket is used. (Default: JumpStart
            default region).
        model_id (str): JumpStart model ID.
        model_version (str): Version or version pattern, such as ``"1.*"`` or ``"*"``.
        model_scope (str): ``"inference"`` for the hosting artifact, ``"training"``
            for the artifact training starts from.
        tolerate_vulnerable_model (bool): Accept a model whose script has vulnerable
            dependencies. (Default: False).
        tolerate_deprecated_model (bool): Accept a deprecated model. (Default: False).
        sagemaker_session (sagemaker_common.session.Session): Its S3 client reads the
            metadata. (Default: None).

    Raises:
        ValueError: If the model ID, version or scope is missing.
        NotImplementedError: If the scope is unknown.
        DeprecatedJumpStartModelError: If the model is deprecated and not tolerated.
        VulnerableJumpStartModelError: If the model is vulnerable and not tolerated.
    """
    specs = _model_specs(
        "model URIs",
        model_id,
        model_version,
        model_scope,
        region,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
        sagemaker_session=sagemaker_session,
    )
    return _content_uri(region, getattr(specs, _ARTIFACT_KEYS[JumpStartScriptScope(model_scope)]))


def retrieve_script_uri(
    region: Optional[str] = None,
    model_id: Optional[str] = None,
    model_version: Optional[str] = None,
    script_scope: Optional[str] = None,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> str:
    """S3 URI of the source directory tarball run for ``script_scope``.

    Arguments and errors are those of ``retrieve_model_uri``.
    """
    specs = _model_specs(
        "script URIs",
        model_id,
        model_version,
        script_scope,
        region,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
        sagemaker_session=sagemaker_session,
    )
    return _content_uri(region, getattr(specs, _SCRIPT_KEYS[JumpStartScriptScope(script_scope)]))


def retrieve_default_hyperparameters(
    region: Optional[str] = None,
    model_id: Optional[str] = None,
    model_version: Optional[str] = None,
    include_container_hyperparameters: bool = False,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> Dict[str, str]:
    """Default training hyperparameters, with values as strings.

    Algorithm hyperparameters are always included. Container ones, which set up the
    training container rather than tune the model, only with
    ``include_container_hyperparameters``.
    """
    specs = _model_specs(
        "hyperparameters",
        model_id,
        model_version,
        JumpStartScriptScope.TRAINING,
        region,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
        sagemaker_session=sagemaker_session,
    )
    scopes = {VariableScope.ALGORITHM}
    if include_container_hyperparameters:
        scopes.add(VariableScope.CONTAINER)
    return {hp.name: str(hp.default) for hp in specs.hyperparameters if hp.scope in scopes}


def retrieve_default_environment_variables(
    region: Optional[str] = None,
    model_id: Optional[str] = None,
    model_version: Optional[str] = None,
    include_aws_sdk_env_vars: bool = True,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> Dict[str, str]:
    """Default environment of the inference container, with values as strings.

    Without ``include_aws_sdk_env_vars`` only variables marked
    ``required_for_model_class`` are returned.
    """
    specs = _model_specs(
        "environment variables",
        model_id,
        model_version,
        JumpStartScriptScope.INFERENCE,
        region,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
        sagemaker_session=sagemaker_session,
    )
    return {
        variable.name: str(variable.default)
        for variable in specs.inference_environment_variables
        if include_aws_sdk_env_vars or variable.required_for_model_class
    }


def model_supports_incremental_training(
    region: Optional[str] = None,
    model_id: Optional[str] = None,
    model_version: Optional[str] = None,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> bool:
    """Whether a training job can start from the model's training artifact."""
    return _model_specs(
        "incremental training support",
        model_id,
        model_version,
        JumpStartScriptScope.TRAINING,
        region,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
        sagemaker_session=sagemaker_session,
    ).supports_incremental_training()


def retrieve_image_uri(
    model_id: str,
    model_version: str,
    image_scope: str,
    framework: Optional[str] = None,
    region: Optional[str] = None,
    version: Optional[str] = None,
    py_version: Optional[str] = None,
    instance_type: Optional[str] = None,
    container_version: Optional[str] = None,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
    sagemaker_session=None,
) -> str:
    """ECR URI of the container the model runs in for ``image_scope``.

    Framework, framework version and Python version come from the model's ECR specs.
    Values passed for them must agree with those.

    Raises:
        ValueError: If a passed framework, framework version or Python version
            differs from the model's, or ``retrieve_model_uri`` would raise it.
    """
    specs = _model_specs(
        "image URIs",
        model_id,
        model_version,
        image_scope,
        region,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
        sagemaker_session=sagemaker_session,
    )
    scope = JumpStartScriptScope(image_scope)
    ecr_specs = getattr(specs, _ECR_SPECS[scope])
    for label, given, expected in (
        ("container framework", framework, ecr_specs.framework),
        ("container framework version", version, ecr_specs.framework_version),
        ("python version", py_version, ecr_specs.py_version),
    ):
        if given is not None and given != expected:
            raise ValueError(
                f"Incorrect {label} '{given}' for JumpStart model ID '{model_id}' "
                f"and version '{model_version}'."
            )

    region = region or JUMPSTART_DEFAULT_REGION_NAME
    if scope == JumpStartScriptScope.TRAINING:
        return image_uris.get_training_image_uri(
            region=region,
            framework=ecr_specs.framework,
            framework_version=ecr_specs.framework_version,
            py_version=ecr_specs.py_version,
            instance_type=instance_type,
            container_version=container_version,
        )
    return image_uris.retrieve(
        framework=ecr_specs.framework,
        region=region,
        version=ecr_specs.framework_version,
        py_version=ecr_specs.py_version,
        instance_type=instance_type,
        image_scope=scope.value,
        container_version=container_version,
    )
