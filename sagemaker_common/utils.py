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
"""Naming, timestamp, endpoint and archive helpers shared by the SageMaker modules."""
from __future__ import absolute_import

import datetime
import logging
import os
import random
import re
import tarfile
import tempfile
import time

logger = logging.getLogger(__name__)

ECR_URI_PATTERN = r"^(\d+)(\.)dkr(\.)ecr(\.)(.+)(\.)(.*)(/)(.*:.*)$"
S3_PREFIX = "s3://"
HTTP_PREFIX = "http://"
HTTPS_PREFIX = "https://"
DEFAULT_SLEEP_TIME_SECONDS = 10

_IMAGE_NAME_PATTERN = re.compile(r"^(.+/)?([^:/]+)(:[^:]+)?$")
_NAME_TIMESTAMP_PATTERN = re.compile(
    r"^(.+)-(\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2}-\d{3}|\d{6}-\d{4})"
)

# (region prefix, partition, DNS suffix); the empty prefix matches every region
_PARTITIONS = (
    ("cn-", "aws-cn", "amazonaws.com.cn"),
    ("us-gov-", "aws-us-gov", "amazonaws.com"),
    ("us-iso-", "aws-iso", "c2s.ic.gov"),
    ("us-isob-", "aws-iso-b", "sc2s.sgov.gov"),
    ("", "aws", "amazonaws.com"),
)


def name_from_image(image, max_length=63):
    """Job name made of the algorithm name in ``image`` and a timestamp."""
    return name_from_base(base_name_from_image(image), max_length=max_length)


def name_from_base(base, max_length=63, short=False):
    """``base`` followed by a timestamp, cutting ``base`` so the result fits ``max_length``.

    Args:
        base (str): Prefix of the name.
        max_length (int): Longest allowed result. (Default: 63).
        short (bool): Use ``sagemaker_short_timestamp`` instead of the millisecond
            timestamp. (Default: False).
    """
    timestamp = sagemaker_short_timestamp() if short else sagemaker_timestamp()
    return f"{base[: max_length - len(timestamp) - 1]}-{timestamp}"


def unique_name_from_base(base, max_length=63):
    """``base`` followed by the epoch seconds and four random hex digits."""
    suffix = f"{int(time.time())}-{random.randrange(16 ** 4):04x}"
    return f"{base[: max_length - len(suffix) - 1]}-{suffix}"


def base_name_from_image(image):
    """Repository name of ``image`` without registry or tag.

    ``"123.dkr.ecr.us-west-2.amazonaws.com/sagemaker-xgboost:1.7-1"`` gives
    ``"sagemaker-xgboost"``. An image that does not parse is returned as is.
    """
    match = _IMAGE_NAME_PATTERN.match(image)
    return match.group(2) if match else image


def base_from_name(name):
    """Undo ``name_from_base``: ``name`` without the timestamp it ends in, if any."""
    match = _NAME_TIMESTAMP_PATTERN.match(name)
    return match.group(1) if match else name


def sagemaker_timestamp():
    """UTC time as ``YYYY-MM-DD-HH-MM-SS-mmm``."""
    moment = datetime.datetime.now(datetime.timezone.utc)
    return f"{moment:%Y-%m-%d-%H-%M-%S}-{moment.microsecond // 1000:03d}"


def sagemaker_short_timestamp():
    """Local time as ``YYMMDD-HHMM``."""
    return time.strftime("%y%m%d-%H%M")


def build_dict(key, value):
    """``{key: value}``, or an empty dict when ``value`` is empty or None."""
    return {key: value} if value else {}


def get_config_value(key_path, config):
    """Value at the dotted ``key_path`` of a nested dict, or None if any part is absent."""
    if config is None:
        return None
    current = config
    for key in key_path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def get_short_version(framework_version):
    """``"major.minor"`` part of a version such as ``"1.13.1"``."""
    return ".".join(framework_version.split(".")[:2])


def _last_transition(description):
    transitions = (description or {}).get("SecondaryStatusTransitions") or []
    return transitions[-1] if transitions else None


def secondary_training_status_changed(current_job_description, prev_job_description):
    """Whether the latest secondary status message of a training job differs.

    Both arguments are DescribeTrainingJob responses. The previous one may be None.
    """
    current = _last_transition(current_job_description)
    if current is None:
        return False
    previous = _last_transition(prev_job_description)
    return current["StatusMessage"] != (previous["StatusMessage"] if previous else "")


def secondary_training_status_message(job_description, prev_description):
    """Lines of ``"<last modified, UTC> <status> - <message>"`` for a training job.

    Transitions added since ``prev_description`` get one line each. When there are
    none, the latest transition is repeated, as only its message changed. Empty
    when the job has no secondary status transitions yet.
    """
    current = (job_description or {}).get("SecondaryStatusTransitions") or []
    if not current:
        return ""
    seen = len((prev_description or {}).get("SecondaryStatusTransitions") or [])
    fresh = current[seen:] or current[-1:]

    modified = job_description["LastModifiedTime"]
    if modified.tzinfo is not None:
        modified = modified.astimezone(datetime.timezone.utc)
    return "\n".join(
        f"{modified:%Y-%m-%d %H:%M:%S} {transition['Status']} - {transition['StatusMessage']}"
        for transition in fresh
    )


def _partition(region):
    for prefix, partition, dns_suffix in _PARTITIONS:
        if region.startswith(prefix):
            return partition, dns_suffix
    raise ValueError(f"No partition for region: {region}")


def aws_partition(region):
    """AWS partition of ``region``, such as ``"aws-cn"`` for ``"cn-north-1"``."""
    return _partition(region)[0]


def regional_hostname(service_name, region):
    """Host name of ``service_name`` in ``region``, in the DNS domain of its partition."""
    return f"{service_name}.{region}.{_partition(region)[1]}"


def sts_regional_endpoint(region):
    """HTTPS endpoint of STS in ``region``.

    boto3 sends STS calls to the global endpoint unless given this explicitly.
    """
    return f"{HTTPS_PREFIX}{regional_hostname('sts', region)}"


def retries(max_retry_count, exception_message_prefix, seconds_to_sleep=DEFAULT_SLEEP_TIME_SECONDS):
    """Yield attempt numbers, sleeping between attempts, until the count runs out.

    Use as ``for _ in retries(...)`` and break on success.

    Raises:
        RuntimeError: Once ``max_retry_count`` attempts were yielded.
    """
    for attempt in range(max_retry_count):
        yield attempt
        time.sleep(seconds_to_sleep)
    raise RuntimeError(
        f"'{exception_message_prefix}' has reached the maximum retry count of {max_retry_count}"
    )


def create_tar_file(source_files, target=None):
    """Write ``source_files`` to a gzipped tar at ``target`` and return its path.

    Each file or directory is stored under its base name. Without ``target`` a
    temporary file is created, which the caller removes.
    """
    if target is None:
        handle, target = tempfile.mkstemp(suffix=".tar.gz")
        os.close(handle)
    with tarfile.open(target, "w:gz") as archive:
        for source in source_files:
            archive.add(source, arcname=os.path.basename(source))
    return target


def download_file(bucket_name, path, target, sagemaker_session):
    """Download one object to the local file ``target``."""
    key = path.lstrip("/")
    logger.debug("Downloading s3://%s/%s to %s", bucket_name, key, target)
    sagemaker_session.s3_client.download_file(Bucket=bucket_name, Key=key, Filename=target)
