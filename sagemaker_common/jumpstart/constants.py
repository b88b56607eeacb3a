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
"""Fixed values for the JumpStart helpers."""
from __future__ import absolute_import

import datetime
import logging

import boto3

from sagemaker_common.jumpstart.enums import JumpStartScriptScope
from sagemaker_common.jumpstart.types import JumpStartLaunchedRegionInfo

JUMPSTART_LOGGER = logging.getLogger("sagemaker_common.jumpstart")

JUMPSTART_LAUNCHED_REGIONS = {
    region_name: JumpStartLaunchedRegionInfo(
        region_name=region_name, content_bucket=f"jumpstart-cache-prod-{region_name}"
    )
    for region_name in (
        "af-south-1",
        "ap-east-1",
        "ap-northeast-1",
        "ap-northeast-2",
        "ap-south-1",
        "ap-southeast-1",
        "ap-southeast-2",
        "ca-central-1",
        "cn-north-1",
        "eu-central-1",
        "eu-north-1",
        "eu-south-1",
        "eu-west-1",
        "eu-west-2",
        "eu-west-3",
        "me-south-1",
        "sa-east-1",
        "us-east-1",
        "us-east-2",
        "us-west-1",
        "us-west-2",
    )
}
JUMPSTART_BUCKET_NAMES = frozenset(
    region.content_bucket for region in JUMPSTART_LAUNCHED_REGIONS.values()
)

JUMPSTART_DEFAULT_REGION_NAME = boto3.session.Session().region_name or "us-west-2"

JUMPSTART_DEFAULT_MANIFEST_FILE_S3_KEY = "models_manifest.json"
MODEL_ID_LIST_WEB_URL = "https://sagemaker.readthedocs.io/en/stable/doc_utils/pretrainedmodels.html"

SUPPORTED_JUMPSTART_SCOPES = frozenset(scope.value for scope in JumpStartScriptScope)

# applies to both metadata caches
JUMPSTART_CACHE_MAX_ITEMS = 20
JUMPSTART_CACHE_EXPIRATION_HORIZON = datetime.timedelta(hours=6)

ENV_VARIABLE_JUMPSTART_CONTENT_BUCKET_OVERRIDE = "AWS_JUMPSTART_CONTENT_BUCKET_OVERRIDE"
ENV_VARIABLE_JUMPSTART_MANIFEST_LOCAL_ROOT_DIR_OVERRIDE = (
    "AWS_JUMPSTART_MANIFEST_LOCAL_ROOT_DIR_OVERRIDE"
)
ENV_VARIABLE_JUMPSTART_SPECS_LOCAL_ROOT_DIR_OVERRIDE = "AWS_JUMPSTART_SPECS_LOCAL_ROOT_DIR_OVERRIDE"
