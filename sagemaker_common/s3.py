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
"""Move files and in-memory payloads to and from S3 by ``s3://`` URI.

Every method accepts a ``sagemaker_session``. Without one, a ``Session`` is built
from the default AWS configuration chain.
"""
from __future__ import absolute_import

import io
import logging
from typing import Union

from sagemaker_common.session import Session
from sagemaker_common.s3_utils import (  # noqa: F401
    determine_bucket_and_prefix,
    is_s3_uri,
    parse_s3_url,
    s3_path_join,
)

logger = logging.getLogger("sagemaker_common")


def _resolve(s3_uri, sagemaker_session):
    """The session to use, and the bucket and key ``s3_uri`` names."""
    bucket, key = parse_s3_url(s3_uri)
    return sagemaker_session or Session(), bucket, key


def _encryption_args(kms_key):
    """ExtraArgs encrypting an upload with ``kms_key``. None without a key."""
    if kms_key is None:
        return None
    return {"SSEKMSKeyId": kms_key, "ServerSideEncryption": "aws:kms"}


def _decryption_args(kms_key):
    return None if kms_key is None else {"SSECustomerKey": kms_key}


class S3Uploader(object):
    """Uploads to S3."""

    @staticmethod
    def upload(local_path, desired_s3_uri, kms_key=None, sagemaker_session=None):
        """Upload a file, or a directory recursively, under ``desired_s3_uri``.

        Args:
            local_path (str): File or directory to upload.
            desired_s3_uri (str): Prefix the file names are appended to.
            kms_key (str): KMS key ID encrypting the objects. (Default: None).
            sagemaker_session (sagemaker_common.session.Session): (Default: None).

        Returns:
            str: URI of the uploaded file, or of the prefix for a directory.
        """
        session, bucket, key_prefix = _resolve(desired_s3_uri, sagemaker_session)
        return session.upload_data(
            path=local_path,
            bucket=bucket,
            key_prefix=key_prefix,
            extra_args=_encryption_args(kms_key),
        )

    @staticmethod
    def upload_string_as_file_body(
        body: str, desired_s3_uri=None, kms_key=None, sagemaker_session=None
    ):
        """Store ``body`` as the object at ``desired_s3_uri`` and return that URI."""
        session, bucket, key = _resolve(desired_s3_uri, sagemaker_session)
        session.upload_string_as_file_body(body=body, bucket=bucket, key=key, kms_key=kms_key)
        return desired_s3_uri

    @staticmethod
    def upload_bytes(b: Union[bytes, io.BytesIO], s3_uri, kms_key=None, sagemaker_session=None):
        """Store raw bytes, or the contents of a buffer, at ``s3_uri`` and return it."""
        session, bucket, key = _resolve(s3_uri, sagemaker_session)
        buffer = b if isinstance(b, io.BytesIO) else io.BytesIO(b)
        session.s3_resource.Bucket(bucket).upload_fileobj(
            buffer, key, ExtraArgs=_encryption_args(kms_key)
        )
        return s3_uri


class S3Downloader(object):
    """Downloads and listings from S3."""

    @staticmethod
    def download(s3_uri, local_path, kms_key=None, sagemaker_session=None):
        """Download the object at ``s3_uri``, or every object under it, to ``local_path``.

        Args:
            s3_uri (str): Object or prefix to download.
            local_path (str): Directory receiving the files.
            kms_key (str): Customer key the objects were encrypted with. (Default: None).
            sagemaker_session (sagemaker_common.session.Session): (Default: None).

        Returns:
            list[str]: Paths of the downloaded files.
        """
        session, bucket, key_prefix = _resolve(s3_uri, sagemaker_session)
        return session.download_data(
            path=local_path,
            bucket=bucket,
            key_prefix=key_prefix,
            extra_args=_decryption_args(kms_key),
        )

    @staticmethod
    def read_file(s3_uri, sagemaker_session=None) -> str:
        """Object body decoded as UTF-8."""
        session, bucket, key = _resolve(s3_uri, sagemaker_session)
        return session.read_s3_file(bucket=bucket, key_prefix=key)

    @staticmethod
    def read_bytes(s3_uri, sagemaker_session=None) -> bytes:
        session, bucket, key = _resolve(s3_uri, sagemaker_session)
        buffer = io.BytesIO()
        session.s3_resource.Bucket(bucket).download_fileobj(key, buffer)
        return buffer.getvalue()

    @staticmethod
    def list(s3_uri, sagemaker_session=None):
        """URIs of every object whose key starts with the key of ``s3_uri``."""
        session, bucket, key_prefix = _resolve(s3_uri, sagemaker_session)
        keys = session.list_s3_files(bucket=bucket, key_prefix=key_prefix)
        logger.debug("Found %d objects under %s", len(keys), s3_uri)
        return [s3_path_join("s3://", bucket, key) for key in keys]
