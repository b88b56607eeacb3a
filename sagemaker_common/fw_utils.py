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
"""Source upload, image name parsing and distributed training checks for framework jobs."""
from __future__ import absolute_import

import logging
import os
import re
import shutil
import tempfile
from typing import NamedTuple, Optional

from sagemaker_common import utils
from sagemaker_common.s3_utils import s3_path_join

logger = logging.getLogger(__name__)

SOURCE_TARBALL_NAME = "sourcedir.tar.gz"

PYTHON_2_DEPRECATION_WARNING = (
    "{latest_supported_version} is the latest version of {framework} that supports "
    "Python 2. Newer versions of {framework} will only be available for Python 3. "
    "Please set the argument \"py_version='py3'\" to use the Python 3 {framework} image."
)
PARAMETER_SERVER_MULTI_GPU_WARNING = (
    "If you have selected a multi-GPU training instance type "
    "and also enabled parameter server for distributed training, "
    "distributed training with the default parameter server configuration will not "
    "fully leverage all GPU cores; the parameter server will be configured to run "
    "only one worker per host regardless of the number of GPUs."
)

DEBUGGER_UNSUPPORTED_REGIONS = ("us-iso-east-1",)
PROFILER_UNSUPPORTED_REGIONS = ("us-iso-east-1",)

SINGLE_GPU_INSTANCE_TYPES = ("ml.p2.xlarge", "ml.p3.2xlarge")
SM_DATAPARALLEL_SUPPORTED_INSTANCE_TYPES = (
    "ml.p3.16xlarge",
    "ml.p3dn.24xlarge",
    "ml.p4d.24xlarge",
    "local_gpu",
)
SM_DATAPARALLEL_SUPPORTED_FRAMEWORK_VERSIONS = {
    "tensorflow": ("2.3", "2.3.1", "2.3.2", "2.4", "2.4.1"),
    "pytorch": ("1.6", "1.6.0", "1.7", "1.7.1", "1.8", "1.8.0", "1.8.1"),
}
SMDISTRIBUTED_SUPPORTED_STRATEGIES = ("dataparallel", "modelparallel")

_FRAMEWORK_IMAGE_PATTERN = re.compile(
    r"^(?:sagemaker(?:-rl)?-)?"
    r"(tensorflow|mxnet|chainer|pytorch|scikit-learn|xgboost"
    r"|huggingface-tensorflow|huggingface-pytorch)(?:-)?"
    r"(scriptmode|training)?"
    r":(.*)-(.*?)-(py2|py3\d*)(?:.*)$"
)
_LEGACY_FRAMEWORK_IMAGE_PATTERN = re.compile(
    r"^sagemaker-(tensorflow|mxnet)-(py2|py3)-(cpu|gpu):(.*)$"
)
_FRAMEWORK_TAG_PATTERN = re.compile(r"^(.*)-(cpu|gpu)-(py2|py3\d*)$")


class UploadedCode(NamedTuple):
    """Location of uploaded training or inference code."""

    s3_prefix: str
    script_name: str


def validate_source_dir(script, directory):
    """Check that ``directory``, when given, holds ``script``.

    Raises:
        ValueError: If the file is missing.
    """
    if directory and not os.path.isfile(os.path.join(directory, script)):
        raise ValueError(f'No file named "{script}" was found in directory "{directory}".')
    return True


def tar_and_upload_dir(
    session,
    bucket,
    s3_key_prefix,
    script,
    directory=None,
    dependencies=None,
    kms_key=None,
) -> UploadedCode:
    """Upload the code of a job as ``s3://<bucket>/<s3_key_prefix>/sourcedir.tar.gz``.

    Without ``directory`` the archive holds ``script`` alone. With it, the archive
    holds the directory's contents and ``script`` is a path inside it. A
    ``directory`` that is an S3 URI is used in place and nothing is uploaded.

    Args:
        session (sagemaker_common.session.Session): Session whose S3 resource uploads.
        bucket (str): Destination bucket.
        s3_key_prefix (str): Key prefix of the archive.
        script (str): Entry point file name or path.
        directory (str): Source directory or S3 URI of an existing archive.
            (Default: None).
        dependencies (list[str]): More files or directories to add to the archive
            root. (Default: None).
        kms_key (str): KMS key ID encrypting the archive. (Default: None).

    Returns:
        UploadedCode: Archive URI and the script name to run.
    """
    if directory and directory.lower().startswith(utils.S3_PREFIX):
        return UploadedCode(s3_prefix=directory, script_name=os.path.basename(script))

    script_name = script if directory else os.path.basename(script)
    key = s3_path_join(s3_key_prefix, SOURCE_TARBALL_NAME)
    extra_args = {"ServerSideEncryption": "aws:kms", "SSEKMSKeyId": kms_key} if kms_key else None

    work_dir = tempfile.mkdtemp()
    try:
        source_files = _list_files_to_compress(script, directory) + list(dependencies or [])
        tar_file = utils.create_tar_file(source_files, os.path.join(work_dir, SOURCE_TARBALL_NAME))
        logger.debug("Uploading %s to s3://%s/%s", tar_file, bucket, key)
        session.s3_resource.Object(bucket, key).upload_file(tar_file, ExtraArgs=extra_args)
    finally:
        shutil.rmtree(work_dir)

    return UploadedCode(s3_prefix=f"s3://{bucket}/{key}", script_name=script_name)


def _list_files_to_compress(script, directory):
    if directory is None:
        return [script]
    return [os.path.join(directory, name) for name in sorted(os.listdir(directory))]


def framework_name_from_image(image_uri):
    """Parse a framework image URI into ``(framework, py_version, tag, scriptmode)``.

    Current names look like ``<fw>-<scope>:<fw_version>-<device>-<py>`` or
    ``sagemaker-<fw>:<fw_version>-<device>-<py>``. Legacy ones like
    ``sagemaker-<fw>-<py>-<device>:<tag>``. ``scriptmode`` is the ``scriptmode``
    or ``training`` part of the name, if any. Every element is None when the URI is
    not an ECR image of a known framework.
    """
    ecr_match = re.match(utils.ECR_URI_PATTERN, image_uri)
    if ecr_match is None:
        return None, None, None, None
    name = ecr_match.group(9)

    match = _FRAMEWORK_IMAGE_PATTERN.match(name)
    if match is not None:
        framework, scriptmode, version, device, py_version = match.groups()
        return framework, py_version, f"{version}-{device}-{py_version}", scriptmode

    legacy = _LEGACY_FRAMEWORK_IMAGE_PATTERN.match(name)
    if legacy is not None:
        return legacy.group(1), legacy.group(2), legacy.group(4), None
    return None, None, None, None


def framework_version_from_tag(image_tag):
    """``fw_version`` of a ``<fw_version>-<device>-<py>`` tag, or None."""
    match = _FRAMEWORK_TAG_PATTERN.match(image_tag)
    return match.group(1) if match else None


def model_code_key_prefix(code_location_key_prefix, model_name, image):
    """Key prefix for code uploaded with a model.

    ``model_name`` is used, or a name derived from ``image`` without it, under
    ``code_location_key_prefix`` when that is set.
    """
    name = model_name or utils.name_from_image(image)
    return "/".join(part for part in (code_location_key_prefix, name) if part)


def validate_version_or_image_args(framework_version, py_version, image_uri):
    """Require either ``image_uri`` or both versions.

    Raises:
        ValueError: If neither is given.
    """
    if (framework_version is None or py_version is None) and image_uri is None:
        raise ValueError(
            "framework_version or py_version was None, yet image_uri was also None. "
            "Either specify both framework_version and py_version, or specify image_uri."
        )


def python_deprecation_warning(framework, latest_supported_version):
    return PYTHON_2_DEPRECATION_WARNING.format(
        framework=framework, latest_supported_version=latest_supported_version
    )


def region_supports_debugger(region_name):
    return region_name.lower() not in DEBUGGER_UNSUPPORTED_REGIONS


def region_supports_profiler(region_name):
    return region_name.lower() not in PROFILER_UNSUPPORTED_REGIONS


def warn_if_parameter_server_with_multi_gpu(training_instance_type, distribution):
    """Log a warning when parameter server training runs on a multi-GPU instance.

    The default parameter server setup starts one worker per host, leaving the other
    GPUs idle.
    """
    if training_instance_type == "local" or not distribution:
        return

    if training_instance_type == "local_gpu":
        multi_gpu = True
    else:
        family = training_instance_type.split(".")[1]
        multi_gpu = family.startswith("p") and (
            training_instance_type not in SINGLE_GPU_INSTANCE_TYPES
        )
    parameter_server = distribution.get("parameter_server") or {}
    if multi_gpu and parameter_server.get("enabled", False):
        logger.warning(PARAMETER_SERVER_MULTI_GPU_WARNING)


def get_mp_parameters(distribution) -> Optional[dict]:
    """Model parallel ``parameters`` of ``distribution``, checked, or None if disabled."""
    model_parallel = (distribution.get("smdistributed") or {}).get("modelparallel") or {}
    if not model_parallel.get("enabled", False):
        return None
    parameters = model_parallel.get("parameters", {})
    validate_mp_config(parameters)
    return parameters


_MP_CHOICES = {
    "pipeline": ("simple", "interleaved", "_only_forward"),
    "placement_strategy": ("spread", "cluster"),
    "optimize": ("speed", "memory"),
}
_MP_POSITIVE_INTEGERS = ("microbatches", "partitions")
_MP_FLAGS = ("auto_partition", "contiguous", "load_partition", "horovod", "ddp")


def validate_mp_config(config):
    """Check the model parallel parameters of a distribution.

    Raises:
        ValueError: If ``partitions`` is missing or a parameter is out of range or
            inconsistent with another.
    """
    if "partitions" not in config:
        raise ValueError("'partitions' is a required parameter.")

    for key, choices in _MP_CHOICES.items():
        if key in config and config[key] not in choices:
            raise ValueError(f"{key} must be a value in: {list(choices)}.")
    for key in _MP_POSITIVE_INTEGERS:
        value = config.get(key, 1)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"The number of {key} must be a positive integer.")
    for key in _MP_FLAGS:
        if key in config and not isinstance(config[key], bool):
            raise ValueError(f"{key} must be a value in: [True, False].")

    if "partition_file" in config and not isinstance(config["partition_file"], str):
        raise ValueError("'partition_file' must be a str.")
    if not config.get("auto_partition", True) and "default_partition" not in config:
        raise ValueError("default_partition must be supplied if auto_partition is set to False!")
    if config.get("default_partition", 0) >= config["partitions"]:
        raise ValueError("default_partition must be less than the number of partitions!")
    if not 0.0 <= config.get("memory_weight", 0.0) <= 1.0:
        raise ValueError("memory_weight must be between 0.0 and 1.0!")
    for key in ("ddp_port", "ddp_dist_backend"):
        if key in config and "ddp" not in config:
            raise ValueError(f"`{key}` needs `ddp` to be set as well")
    if "ddp_port" in config:
        port = config["ddp_port"]
        if isinstance(port, bool) or not isinstance(port, int) or port < 0:
            raise ValueError(f"Invalid port number {port}.")
    if config.get("horovod", False) and config.get("ddp", False):
        raise ValueError("'ddp' and 'horovod' cannot be simultaneously enabled.")


def validate_smdistributed(
    instance_type, framework_name, framework_version, py_version, distribution, image_uri=None
):
    """Check the ``smdistributed`` part of ``distribution``, if there is one.

    Only one of ``SMDISTRIBUTED_SUPPORTED_STRATEGIES`` may be requested. An enabled
    ``dataparallel`` strategy also needs a supported instance type and, unless
    ``image_uri`` is given, a supported framework version on ``py3``.

    Raises:
        ValueError: If any of those checks fails.
    """
    if "smdistributed" not in distribution:
        return
    smdistributed = distribution["smdistributed"]
    if not isinstance(smdistributed, dict):
        raise ValueError("smdistributed strategy requires a dictionary")

    supported = ", ".join(SMDISTRIBUTED_SUPPORTED_STRATEGIES)
    if len(smdistributed) > 1:
        raise ValueError(
            "Cannot use more than 1 smdistributed strategy. \n"
            f"Choose one of the following supported strategies: {supported}"
        )
    for strategy in smdistributed:
        if strategy not in SMDISTRIBUTED_SUPPORTED_STRATEGIES:
            raise ValueError(
                f"Invalid smdistributed strategy provided: {strategy} \n"
                f"Supported strategies: {supported}"
            )

    if "dataparallel" in smdistributed:
        _validate_smdataparallel_args(
            instance_type, framework_name, framework_version, py_version, distribution, image_uri
        )


def _validate_smdataparallel_args(
    instance_type, framework_name, framework_version, py_version, distribution, image_uri=None
):
    if not distribution["smdistributed"]["dataparallel"].get("enabled", False):
        return

    problems = []
    if instance_type not in SM_DATAPARALLEL_SUPPORTED_INSTANCE_TYPES:
        problems.append(
            f"Provided instance_type {instance_type} is not supported by smdataparallel.\n"
            "Please specify one of the supported instance types: "
            f"{', '.join(SM_DATAPARALLEL_SUPPORTED_INSTANCE_TYPES)}\n"
        )
    if image_uri is None:
        versions = SM_DATAPARALLEL_SUPPORTED_FRAMEWORK_VERSIONS.get(framework_name, ())
        if framework_version not in versions:
            problems.append(
                f"Provided framework_version {framework_version} is not supported by "
                "smdataparallel.\n"
                f"Please specify one of the supported framework versions: {', '.join(versions)}\n"
            )
        if py_version != "py3":
            problems.append(
                f"Provided py_version {py_version} is not supported by smdataparallel.\n"
                "Please specify py_version=py3"
            )
    if problems:
        raise ValueError("".join(problems))
