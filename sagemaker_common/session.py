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
"""Boto3-backed session for the S3 and SageMaker calls of this package."""
from __future__ import absolute_import

import logging
import os

import boto3
from botocore.exceptions import ClientError

from sagemaker_common import s3_utils, utils

LOGGER = logging.getLogger("sagemaker_common")

# create_bucket rejects this region as a LocationConstraint
_BUCKET_DEFAULT_REGION = "us-east-1"


class SessionSettings(object):
    """Optional settings of a ``Session``."""

    def __init__(self, local_download_dir=None) -> None:
        """Create the settings.

        Args:
            local_download_dir (str): Directory artifacts are downloaded to.
                (Default: None).
        """
        self._local_download_dir = local_download_dir

    @property
    def local_download_dir(self) -> str:
        return self._local_download_dir


class Session(object):
    """S3 transfers and SageMaker API calls in one region.

    Calls go through a Boto3 session, by default the one the AWS configuration
    chain produces. Uploads without a bucket use the default bucket,
    ``sagemaker-{region}-{account}``, which is created on first use.
    """

    def __init__(
        self,
        boto_session=None,
        sagemaker_client=None,
        default_bucket=None,
        settings=None,
        default_bucket_prefix: str = None,
    ):
        """Create the clients of the session.

        Args:
            boto_session (boto3.session.Session): Session making the AWS calls.
                (Default: ``boto3.DEFAULT_SESSION`` or a new one).
            sagemaker_client: SageMaker client. (Default: one made from ``boto_session``).
            default_bucket (str): Bucket used when none is given. (Default: None).
            settings (SessionSettings): (Default: ``SessionSettings()``).
            default_bucket_prefix (str): Key prefix used with the default bucket.
                (Default: None).

        Raises:
            ValueError: If ``boto_session`` has no region.
        """
        self.boto_session = boto_session or boto3.DEFAULT_SESSION or boto3.Session()
        self._region_name = self.boto_session.region_name
        if self._region_name is None:
            raise ValueError(
                "Must setup local AWS configuration with a region supported by SageMaker."
            )

        self.settings = settings or SessionSettings()
        self.default_bucket_prefix = default_bucket_prefix
        self._default_bucket_name_override = default_bucket
        self._default_bucket = None

        self.sagemaker_client = sagemaker_client or self.boto_session.client("sagemaker")
        self.s3_client = self.boto_session.client("s3", region_name=self._region_name)
        self.s3_resource = self.boto_session.resource("s3", region_name=self._region_name)

    @property
    def boto_region_name(self):
        return self._region_name

    def upload_data(self, path, bucket=None, key_prefix="data", extra_args=None):
        """Upload a file, or a directory recursively, and return its S3 URI.

        A file lands at ``{key_prefix}/{name}``. Files of a directory land at
        ``{key_prefix}/{path relative to the directory}`` and the URI of
        ``key_prefix`` is returned.

        Args:
            path (str): Local file or directory.
            bucket (str): Destination bucket. (Default: the default bucket).
            key_prefix (str): Key prefix. (Default: "data").
            extra_args (dict): ``ExtraArgs`` of each upload, such as encryption
                settings. (Default: None).
        """
        bucket, key_prefix = s3_utils.determine_bucket_and_prefix(
            bucket=bucket, key_prefix=key_prefix, sagemaker_session=self
        )
        if os.path.isdir(path):
            uploads = list(self._directory_uploads(path, key_prefix))
            uri_suffix = None
        else:
            uri_suffix = os.path.basename(path)
            uploads = [(path, s3_utils.s3_path_join(key_prefix, uri_suffix))]

        for local_path, key in uploads:
            LOGGER.debug("Uploading %s to s3://%s/%s", local_path, bucket, key)
            self.s3_resource.Object(bucket, key).upload_file(local_path, ExtraArgs=extra_args)
        return s3_utils.s3_path_join("s3://", bucket, key_prefix, uri_suffix)

    @staticmethod
    def _directory_uploads(directory, key_prefix):
        """(local path, key) of every file below ``directory``."""
        for root, _, names in os.walk(directory):
            relative = os.path.relpath(root, start=directory)
            key_dir = "" if relative == os.curdir else relative
            for name in names:
                yield os.path.join(root, name), s3_utils.s3_path_join(key_prefix, key_dir, name)

    def upload_string_as_file_body(self, body, bucket, key, kms_key=None):
        """Store ``body`` as the object ``key`` and return its S3 URI."""
        encryption = {}
        if kms_key is not None:
            encryption = {"SSEKMSKeyId": kms_key, "ServerSideEncryption": "aws:kms"}
        self.s3_resource.Object(bucket_name=bucket, key=key).put(Body=body, **encryption)
        return f"s3://{bucket}/{key}"

    def download_data(self, path, bucket, key_prefix="", extra_args=None):
        """Download every object under ``key_prefix`` into the directory ``path``.

        Keys keep their path relative to ``key_prefix``. A ``key_prefix`` with a file
        extension names a single file, which is saved under its base name.

        Returns:
            list[str]: Local paths of the downloaded files.
        """
        keys = self._list_keys(bucket, key_prefix)
        if not keys:
            LOGGER.info("Nothing to download from bucket: %s, key_prefix: %s.", bucket, key_prefix)
            return []

        single_file = bool(os.path.splitext(key_prefix)[1])
        downloaded = []
        for key in keys:
            relative = os.path.basename(key) if single_file else os.path.relpath(key, key_prefix)
            destination = os.path.join(path, relative)
            os.makedirs(os.path.dirname(destination), exist_ok=True)
            self.s3_client.download_file(
                Bucket=bucket, Key=key, Filename=destination, ExtraArgs=extra_args
            )
            downloaded.append(destination)
        return downloaded

    def _list_keys(self, bucket, key_prefix):
        pages = self.s3_client.get_paginator("list_objects_v2").paginate(
            Bucket=bucket, Prefix=key_prefix
        )
        return [entry["Key"] for page in pages for entry in page.get("Contents", [])]

    def read_s3_file(self, bucket, key_prefix):
        """Body of the object ``key_prefix``, decoded as UTF-8."""
        response = self.s3_client.get_object(Bucket=bucket, Key=key_prefix)
        return response["Body"].read().decode("utf-8")

    def list_s3_files(self, bucket, key_prefix):
        """Keys of the objects under ``key_prefix``."""
        listing = self.s3_resource.Bucket(name=bucket).objects.filter(Prefix=key_prefix)
        return [summary.key for summary in listing.all()]

    def account_id(self) -> str:
        """Account of the caller, asked from the regional STS endpoint."""
        sts = self.boto_session.client(
            "sts",
            region_name=self._region_name,
            endpoint_url=utils.sts_regional_endpoint(self._region_name),
        )
        return sts.get_caller_identity()["Account"]

    def describe_model(self, name):
        return self.sagemaker_client.describe_model(ModelName=name)

    def default_bucket(self):
        """Name of the default bucket, created if missing on the first call."""
        if not self._default_bucket:
            name = self._default_bucket_name_override or (
                f"sagemaker-{self._region_name}-{self.account_id()}"
            )
            self._create_s3_bucket_if_it_does_not_exist(bucket_name=name, region=self._region_name)
            self._default_bucket = name
        return self._default_bucket

    def _create_s3_bucket_if_it_does_not_exist(self, bucket_name, region):
        """Create ``bucket_name`` unless it exists.

        Losing a race against a concurrent create of the same bucket is fine.

        Raises:
            botocore.exceptions.ClientError: If the bucket exists but access is
                forbidden, or S3 refuses the create.
        """
        if self._bucket_exists(bucket_name):
            return

        create_args = {"Bucket": bucket_name}
        if region != _BUCKET_DEFAULT_REGION:
            create_args["CreateBucketConfiguration"] = {"LocationConstraint": region}
        try:
            self.s3_resource.create_bucket(**create_args)
        except ClientError as e:
            error = e.response["Error"]
            concurrent_create = error["Code"] == "OperationAborted" and (
                "conflicting conditional operation" in error["Message"]
            )
            if not concurrent_create:
                raise
            LOGGER.debug("Bucket %s is being created concurrently.", bucket_name)
        else:
            LOGGER.info("Created S3 bucket: %s", bucket_name)

    def _bucket_exists(self, bucket_name):
        """True if the bucket is listed or answers ``head_bucket``. False on a 404.

        Raises:
            botocore.exceptions.ClientError: For any other ``head_bucket`` error.
        """
        if self.s3_resource.Bucket(name=bucket_name).creation_date is not None:
            return True
        try:
            self.s3_resource.meta.client.head_bucket(Bucket=bucket_name)
        except ClientError as e:
            code = e.response["Error"]["Code"]
            if code == "404":
                return False
            if code == "403":
                LOGGER.error(
                    "Bucket %s exists, but access is forbidden. Please try again after "
                    "adding appropriate access.",
                    bucket_name,
                )
            raise
        return True
