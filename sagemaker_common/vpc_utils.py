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
"""``VpcConfig`` values for SageMaker training jobs and models.

SageMaker expects ``{"Subnets": [...], "SecurityGroupIds": [...]}``, see
https://docs.aws.amazon.com/sagemaker/latest/dg/API_VpcConfig.html
"""
from __future__ import absolute_import

SUBNETS_KEY = "Subnets"
SECURITY_GROUP_IDS_KEY = "SecurityGroupIds"
VPC_CONFIG_KEY = "VpcConfig"

# passed instead of a VpcConfig to keep the one already attached
VPC_CONFIG_DEFAULT = "VPC_CONFIG_DEFAULT"

_KEYS = (SUBNETS_KEY, SECURITY_GROUP_IDS_KEY)


def to_dict(subnets, security_group_ids):
    """VpcConfig holding both lists, or None unless both are given."""
    if None in (subnets, security_group_ids):
        return None
    return dict(zip(_KEYS, (subnets, security_group_ids)))


def from_dict(vpc_config, do_sanitize=False):
    """Split a VpcConfig into ``(subnets, security_group_ids)``.

    ``(None, None)`` stands for no VpcConfig. Keys other than the two are ignored.

    Args:
        vpc_config (dict): VpcConfig or None.
        do_sanitize (bool): Run ``sanitize`` on ``vpc_config`` first.

    Raises:
        ValueError: If ``vpc_config`` is empty, lacks one of the keys, or fails
            ``sanitize`` when that is requested.
    """
    if do_sanitize:
        vpc_config = sanitize(vpc_config)
    if vpc_config is None:
        return None, None
    if not vpc_config:
        raise ValueError("vpc_config is empty")

    absent = [key for key in _KEYS if key not in vpc_config]
    if absent:
        raise ValueError(f"vpc_config is missing key(s): {', '.join(absent)}")
    return tuple(vpc_config[key] for key in _KEYS)


def sanitize(vpc_config):
    """Copy of ``vpc_config`` reduced to the two keys, after checking it.

    None is passed through.

    Raises:
        ValueError: If ``vpc_config`` is not a dict, is empty, or does not map both
            keys to non-empty lists.
    """
    if vpc_config is None:
        return None
    if not isinstance(vpc_config, dict):
        raise ValueError(f"vpc_config is not a dict: {vpc_config}")
    if not vpc_config:
        raise ValueError("vpc_config is empty")
    return to_dict(*(_id_list(vpc_config, key) for key in _KEYS))


def _id_list(vpc_config, key):
    ids = vpc_config.get(key)
    if ids is None:
        raise ValueError(f"vpc_config is missing key: {key}")
    if not isinstance(ids, list):
        raise ValueError(f"vpc_config value for {key} is not a list: {ids}")
    if not ids:
        raise ValueError(f"vpc_config value for {key} is empty")
    return list(ids)
