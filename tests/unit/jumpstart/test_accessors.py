from __future__ import absolute_import

from mock import Mock, patch

import pytest

from sagemaker_common.jumpstart.accessors import JumpStartModelsAccessor, SageMakerSettings


@pytest.fixture
def mock_cache_class():
    with patch("sagemaker_common.jumpstart.accessors.cache.JumpStartModelsCache") as mock_cls:
        mock_cls.side_effect = lambda **kwargs: Mock(name="cache", cache_kwargs=kwargs)
        yield mock_cls


def test_get_model_specs_and_header_share_cache(mock_cache_class):
    specs = JumpStartModelsAccessor.get_model_specs(
        region="us-west-2", model_id="pytorch-ic-mobilenet-v2", version="*"
    )
    header = JumpStartModelsAccessor.get_model_header(
        region="us-west-2", model_id="pytorch-ic-mobilenet-v2", version="*"
    )

    mock_cache_class.assert_called_once_with(region="us-west-2")
    models_cache = JumpStartModelsAccessor._cache
    assert specs is models_cache.get_specs.return_value
    assert header is models_cache.get_header.return_value
    models_cache.get_specs.assert_called_once_with(
        model_id="pytorch-ic-mobilenet-v2", semantic_version_str="*"
    )
    models_cache.get_header.assert_called_once_with(
        model_id="pytorch-ic-mobilenet-v2", semantic_version_str="*"
    )


def test_region_change_rebuilds_cache(mock_cache_class):
    JumpStartModelsAccessor.get_manifest(region="us-west-2")
    JumpStartModelsAccessor.get_manifest(region="us-west-2")
    assert mock_cache_class.call_count == 1

    JumpStartModelsAccessor.get_manifest(region="us-east-1")
    assert mock_cache_class.call_count == 2
    assert JumpStartModelsAccessor._region == "us-east-1"
    JumpStartModelsAccessor._cache.get_manifest.assert_called_once_with()


def test_s3_client_is_passed_to_cache(mock_cache_class):
    s3_client = Mock(name="s3_client")
    JumpStartModelsAccessor.get_model_specs(
        region="us-west-2", model_id="m", version="1.0.0", s3_client=s3_client
    )
    mock_cache_class.assert_called_once_with(region="us-west-2", s3_client=s3_client)

    JumpStartModelsAccessor.get_model_specs(region="us-west-2", model_id="m", version="1.0.0")
    assert mock_cache_class.call_count == 1


def test_set_cache_kwargs(mock_cache_class):
    JumpStartModelsAccessor.set_cache_kwargs(
        {"max_cache_items": 5, "region": "eu-west-1"}, "eu-west-1"
    )

    mock_cache_class.assert_called_once_with(region="eu-west-1", max_cache_items=5)
    assert JumpStartModelsAccessor._cache_kwargs == {"max_cache_items": 5}
    assert JumpStartModelsAccessor._region == "eu-west-1"

    JumpStartModelsAccessor.get_manifest(region="eu-west-1")
    assert mock_cache_class.call_count == 1


def test_set_cache_kwargs_takes_region_from_kwargs(mock_cache_class):
    cache_kwargs = {"region": "ap-south-1", "max_cache_items": 2}
    JumpStartModelsAccessor.set_cache_kwargs(cache_kwargs)

    mock_cache_class.assert_called_once_with(region="ap-south-1", max_cache_items=2)
    assert JumpStartModelsAccessor._region == "ap-south-1"
    assert cache_kwargs == {"region": "ap-south-1", "max_cache_items": 2}


def test_set_cache_kwargs_inconsistent_region(mock_cache_class):
    with pytest.raises(ValueError) as error:
        JumpStartModelsAccessor.set_cache_kwargs({"region": "us-east-1"}, region="us-west-2")
    assert "Inconsistent region definitions" in str(error.value)
    mock_cache_class.assert_not_called()


def test_reset_cache(mock_cache_class):
    JumpStartModelsAccessor.get_manifest(region="us-west-2")
    first_cache = JumpStartModelsAccessor._cache

    JumpStartModelsAccessor.reset_cache()
    assert JumpStartModelsAccessor._cache is not first_cache
    assert mock_cache_class.call_count == 2
    assert mock_cache_class.call_args == ((), {"region": "us-west-2"})


def test_content_bucket_memo():
    assert JumpStartModelsAccessor.get_jumpstart_content_bucket() is None
    JumpStartModelsAccessor.set_jumpstart_content_bucket("some-bucket")
    assert JumpStartModelsAccessor.get_jumpstart_content_bucket() == "some-bucket"


def test_sagemaker_settings():
    SageMakerSettings.set_sagemaker_version("2.3.4")
    assert SageMakerSettings.get_sagemaker_version() == "2.3.4"
