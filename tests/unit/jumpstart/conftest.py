from __future__ import absolute_import

import pytest

from sagemaker_common.jumpstart.accessors import JumpStartModelsAccessor, SageMakerSettings

SAGEMAKER_VERSION = "2.100.0"


@pytest.fixture(autouse=True)
def jumpstart_state(monkeypatch):
    monkeypatch.delenv("AWS_JUMPSTART_CONTENT_BUCKET_OVERRIDE", raising=False)
    monkeypatch.setattr(JumpStartModelsAccessor, "_cache", None)
    monkeypatch.setattr(JumpStartModelsAccessor, "_content_bucket", None)
    monkeypatch.setattr(JumpStartModelsAccessor, "_cache_kwargs", {})
    monkeypatch.setattr(JumpStartModelsAccessor, "_region", "us-west-2")
    monkeypatch.setattr(SageMakerSettings, "_version", SAGEMAKER_VERSION)
