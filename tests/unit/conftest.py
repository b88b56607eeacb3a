from __future__ import absolute_import

from mock import MagicMock, Mock

import pytest

BUCKET_NAME = "mybucket"
REGION = "us-west-2"


@pytest.fixture
def boto_session():
    boto_mock = Mock(name="boto_session", region_name=REGION)
    boto_mock.client.return_value = Mock(name="client")
    boto_mock.resource.return_value = MagicMock(name="resource")
    return boto_mock


@pytest.fixture
def sagemaker_session():
    session_mock = Mock(name="sagemaker_session", boto_region_name=REGION)
    session_mock.default_bucket_prefix = None
    session_mock.default_bucket.return_value = BUCKET_NAME
    return session_mock
