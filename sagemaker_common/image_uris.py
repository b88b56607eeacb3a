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
"""ECR URIs of the prebuilt SageMaker framework and algorithm containers.

Each framework ships a JSON file under ``image_uri_config``. A file either lists its
``versions`` for every scope it supports together (``"scope": [...]``) or holds one
such block per scope.
"""
from __future__ import absolute_import

import json
import logging
import os
import re

from sagemaker_common.jumpstart import artifacts
from sagemaker_common.jumpstart.utils import is_jumpstart_model_input

logger = logging.getLogger(__name__)

ECR_URI_TEMPLATE = "{registry}.dkr.{hostname}/{repository}"
SHARED_IMAGE_SCOPES = {"training", "inference"}
INSTANCE_TYPES_URL = "https://aws.amazon.com/sagemaker/pricing/instance-types"

_CONFIG_DIR = os.path.join(os.path.dirname(__file__), "image_uri_config")
_INSTANCE_FAMILY_PATTERN = re.compile(r"^ml[._]([a-z\d]+)\.?\w*$")
# family prefixes with a processor of their own; other families run on cpu
_FAMILY_PROCESSORS = (("inf", "inf"), ("trn", "trn"), ("g", "gpu"), ("p", "gpu"))


def retrieve(
    framework,
    region,
    version=None,
    py_version=None,
    instance_type=None,
    image_scope=None,
    container_version=None,
    model_id=None,
    model_version=None,
    tolerate_vulnerable_model=False,
    tolerate_deprecated_model=False,
    sagemaker_session=None,
) -> str:
    """ECR URI of the container image matching the arguments.

    Arguments that have a single possible value in the framework's config may be
    left out. Given a JumpStart ``model_id`` and ``model_version``, the framework,
    version and Python version come from the model's specs instead.

    Args:
        framework (str): Framework or algorithm name, such as ``"pytorch"``.
        region (str): AWS region of the registry.
        version (str): Framework version or one of its aliases. (Default: None).
        py_version (str): Python version, such as ``"py38"``. (Default: None).
        instance_type (str): SageMaker instance type, ``"local"`` or ``"local_gpu"``.
            Picks the processor variant of the image. (Default: None).
        image_scope (str): ``"training"`` or ``"inference"``. (Default: None).
        container_version (str): Suffix appended to the tag. Ignored when the
            config pins one. (Default: None).
        model_id (str): JumpStart model ID. (Default: None).
        model_version (str): JumpStart model version. (Default: None).
        tolerate_vulnerable_model (bool): Accept a vulnerable JumpStart model.
            (Default: False).
        tolerate_deprecated_model (bool): Accept a deprecated JumpStart model.
            (Default: False).
        sagemaker_session (sagemaker_common.session.Session): Session whose S3 client
            reads JumpStart metadata. (Default: None).

    Returns:
        str: The image URI.

    Raises:
        ValueError: If an argument has a value the config does not support. The
            message lists the supported ones.
    """
    if is_jumpstart_model_input(model_id, model_version):
        return artifacts.retrieve_image_uri(
            model_id,
            model_version,
            image_scope,
            framework=framework,
            region=region,
            version=version,
            py_version=py_version,
            instance_type=instance_type,
            container_version=container_version,
            tolerate_vulnerable_model=tolerate_vulnerable_model,
            tolerate_deprecated_model=tolerate_deprecated_model,
            sagemaker_session=sagemaker_session,
        )

    config = _scoped_config(framework, image_scope)
    version = _resolve_version(config, version, framework)
    version_config = config["versions"][config.get("version_aliases", {}).get(version, version)]

    py_version = _resolve_py_version(version_config.get("py_versions"), py_version)
    registries = version_config["registries"]
    _check_supported(region, registries, "region")

    processor = _resolve_processor(
        instance_type, config.get("processors") or version_config.get("processors")
    )
    pinned_container_versions = version_config.get("container_version")
    if pinned_container_versions:
        container_version = pinned_container_versions[processor]

    tag_prefix = version_config.get("tag_prefix", version)
    tag = "-".join(part for part in (tag_prefix, processor, py_version, container_version) if part)
    repository = version_config["repository"]
    if tag:
        repository = f"{repository}:{tag}"
    return ECR_URI_TEMPLATE.format(
        registry=registries[region], hostname=_ecr_hostname(region), repository=repository
    )


def get_training_image_uri(
    region,
    framework,
    framework_version=None,
    py_version=None,
    image_uri=None,
    instance_type=None,
    container_version=None,
) -> str:
    """``image_uri`` if given, else the training image ``retrieve`` picks."""
    if image_uri:
        return image_uri

    logger.info("No image_uri given; looking up the %s training image.", framework)
    return retrieve(
        framework,
        region,
        version=framework_version,
        py_version=py_version,
        instance_type=instance_type,
        image_scope="training",
        container_version=container_version,
    )


def config_for_framework(framework):
    """Parsed ``image_uri_config/<framework>.json``.

    Raises:
        ValueError: If no config ships for ``framework``.
    """
    path = os.path.join(_CONFIG_DIR, f"{framework}.json")
    if not os.path.exists(path):
        raise ValueError(f"Unsupported framework: {framework}.")
    with open(path) as config_file:
        return json.load(config_file)


def _check_supported(value, supported, what):
    if value not in supported:
        raise ValueError(
            f"Unsupported {what}: {value}. You may need to upgrade your version of this "
            f"library for newer {what}s. Supported {what}(s): {', '.join(supported)}."
        )


def _scoped_config(framework, image_scope):
    """Part of the framework config that applies to ``image_scope``.

    A config with one scope answers for any scope. One whose scopes are training
    and inference together is used when no scope is given.
    """
    config = config_for_framework(framework)
    shared = "scope" in config
    scopes = config["scope"] if shared else list(config)

    if len(scopes) == 1:
        if image_scope and image_scope != scopes[0]:
            logger.warning(
                "Defaulting to only supported image scope: %s. Ignoring image scope: %s.",
                scopes[0],
                image_scope,
            )
        image_scope = scopes[0]
    elif not image_scope and shared and set(scopes) == SHARED_IMAGE_SCOPES:
        logger.info(
            "Same images used for training and inference. Defaulting to image scope: %s.",
            scopes[0],
        )
        image_scope = scopes[0]

    _check_supported(image_scope, scopes, "image scope")
    return config if shared else config[image_scope]


def _resolve_version(config, version, framework):
    versions = list(config["versions"])
    aliases = list(config.get("version_aliases", {}))
    if len(versions) != 1 or version in aliases:
        _check_supported(version, versions + aliases, f"{framework} version")
        return version

    only = versions[0]
    if not version:
        logger.info("Defaulting to the only supported framework/algorithm version: %s.", only)
    elif version != only:
        logger.warning(
            "Defaulting to the only supported framework/algorithm version: %s. "
            "Ignoring framework/algorithm version: %s.",
            only,
            version,
        )
    return only


def _resolve_py_version(supported, py_version):
    if not supported:
        if py_version:
            logger.info("Ignoring unnecessary Python version: %s.", py_version)
        return None
    if py_version is None and len(supported) == 1:
        logger.info("Defaulting to only available Python version: %s", supported[0])
        return supported[0]
    _check_supported(py_version, supported, "Python version")
    return py_version


def _ecr_hostname(region):
    suffix = ".cn" if region.startswith("cn-") else ""
    return f"ecr.{region}.amazonaws.com{suffix}"


def _instance_family(instance_type):
    """``"p3"`` for ``"ml.p3.2xlarge"`` or ``"ml_p3"``. Empty when there is no match."""
    if not isinstance(instance_type, str):
        return ""
    match = _INSTANCE_FAMILY_PATTERN.match(instance_type)
    return match.group(1) if match else ""


def _resolve_processor(instance_type, supported):
    """Processor variant of the image for ``instance_type``, or None if there are none.

    An image built for one instance family, such as ``c5``, wins over the generic
    processor of that family.
    """
    if not supported:
        logger.info("Ignoring unnecessary instance type: %s.", instance_type)
        return None
    if not instance_type:
        if len(supported) == 1:
            logger.info("Defaulting to only supported processor: %s.", supported[0])
            return supported[0]
        raise ValueError(f"Empty SageMaker instance type. For options, see: {INSTANCE_TYPES_URL}")

    if instance_type.startswith("local"):
        processor = "gpu" if instance_type != "local" else "cpu"
    else:
        family = _instance_family(instance_type)
        if not family:
            raise ValueError(
                f"Invalid SageMaker instance type: {instance_type}. "
                f"For options, see: {INSTANCE_TYPES_URL}"
            )
        if family in supported:
            processor = family
        else:
            processor = next(
                (name for prefix, name in _FAMILY_PROCESSORS if family.startswith(prefix)), "cpu"
            )

    _check_supported(processor, supported, "processor")
    return processor
