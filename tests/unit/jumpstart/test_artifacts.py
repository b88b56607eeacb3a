from __future__ import absolute_import

from mock import patch

import pytest

from sagemaker_common.jumpstart import artifacts
from sagemaker_common.jumpstart.accessors import JumpStartModelsAccessor
from sagemaker_common.jumpstart.enums import JumpStartScriptScope
from sagemaker_common.jumpstart.exceptions import DeprecatedJumpStartModelError

from tests.unit.jumpstart.utils import get_spec_from_base_spec

MODEL_ID = "pytorch-ic-mobilenet-v2"
REGION = "us-west-2"
BUCKET = "jumpstart-cache-prod-us-west-2"


@pytest.fixture(autouse=True)
def patched_get_model_specs(monkeypatch):
    monkeypatch.setattr(JumpStartModelsAccessor, "_content_bucket", BUCKET)
    monkeypatch.delenv("AWS_JUMPSTART_CONTENT_BUCKET_OVERRIDE", raising=False)
    with patch(
        "sagemaker_common.jumpstart.accessors.JumpStartModelsAccessor.get_model_specs"
    ) as mock_get_model_specs:
        mock_get_model_specs.side_effect = get_spec_from_base_spec
        yield mock_get_model_specs


@pytest.mark.parametrize(
    "retrieve",
    [
        artifacts.retrieve_model_uri,
        artifacts.retrieve_script_uri,
        artifacts.retrieve_default_hyperparameters,
        artifacts.retrieve_default_environment_variables,
        artifacts.model_supports_incremental_training,
    ],
)
def test_retrieve_requires_model_id_and_version(retrieve, patched_get_model_specs):
    with pytest.raises(ValueError):
        retrieve(region=REGION)
    with pytest.raises(ValueError):
        retrieve(region=REGION, model_id=MODEL_ID)
    with pytest.raises(ValueError):
        retrieve(region=REGION, model_version="*")
    patched_get_model_specs.assert_not_called()


def test_retrieve_model_uri(sagemaker_session, patched_get_model_specs):
    assert (
        artifacts.retrieve_model_uri(
            region=REGION,
            model_id=MODEL_ID,
            model_version="*",
            model_scope=JumpStartScriptScope.INFERENCE,
            sagemaker_session=sagemaker_session,
        )
        == f"s3://{BUCKET}/pytorch-infer/infer-pytorch-ic-mobilenet-v2.tar.gz"
    )
    assert patched_get_model_specs.call_args[1]["s3_client"] is sagemaker_session.s3_client

    assert (
        artifacts.retrieve_model_uri(
            region=REGION, model_id=MODEL_ID, model_version="*", model_scope="training"
        )
        == f"s3://{BUCKET}/pytorch-training/train-pytorch-ic-mobilenet-v2.tar.gz"
    )


def test_retrieve_model_uri_scope_checks():
    with pytest.raises(ValueError):
        artifacts.retrieve_model_uri(region=REGION, model_id=MODEL_ID, model_version="*")
    with pytest.raises(NotImplementedError):
        artifacts.retrieve_model_uri(
            region=REGION, model_id=MODEL_ID, model_version="*", model_scope="tuning"
        )


def test_retrieve_model_uri_defaults_region(patched_get_model_specs, monkeypatch):
    monkeypatch.setattr(artifacts, "JUMPSTART_DEFAULT_REGION_NAME", REGION)
    artifacts.retrieve_model_uri(model_id=MODEL_ID, model_version="*", model_scope="inference")
    assert patched_get_model_specs.call_args[1]["region"] == REGION


def test_deprecated_model_is_refused_unless_tolerated(patched_get_model_specs):
    patched_get_model_specs.side_effect = None
    patched_get_model_specs.return_value = get_spec_from_base_spec(deprecated=True)

    with pytest.raises(DeprecatedJumpStartModelError):
        artifacts.retrieve_script_uri(
            region=REGION, model_id=MODEL_ID, model_version="*", script_scope="inference"
        )
    assert artifacts.retrieve_script_uri(
        region=REGION,
        model_id=MODEL_ID,
        model_version="*",
        script_scope="inference",
        tolerate_deprecated_model=True,
    ).endswith("/inference/ic/v1.0.0/sourcedir.tar.gz")


def test_retrieve_script_uri():
    assert artifacts.retrieve_script_uri(
        region=REGION, model_id=MODEL_ID, model_version="*", script_scope="inference"
    ) == (
        f"s3://{BUCKET}/source-directory-tarballs/pytorch/inference/ic/v1.0.0/sourcedir.tar.gz"
    )
    assert artifacts.retrieve_script_uri(
        region=REGION, model_id=MODEL_ID, model_version="*", script_scope="training"
    ) == (
        f"s3://{BUCKET}/source-directory-tarballs/pytorch/transfer_learning/ic/"
        "v1.0.0/sourcedir.tar.gz"
    )


def test_retrieve_default_hyperparameters():
    algorithm_defaults = {
        "epochs": "3",
        "adam-learning-rate": "0.05",
        "optimizer": "adam",
        "train_only_top_layer": "True",
    }
    assert (
        artifacts.retrieve_default_hyperparameters(
            region=REGION, model_id=MODEL_ID, model_version="*"
        )
        == algorithm_defaults
    )
    assert artifacts.retrieve_default_hyperparameters(
        region=REGION,
        model_id=MODEL_ID,
        model_version="*",
        include_container_hyperparameters=True,
    ) == dict(
        algorithm_defaults,
        sagemaker_submit_directory="/opt/ml/input/data/code/sourcedir.tar.gz",
        sagemaker_program="transfer_learning.py",
        sagemaker_container_log_level="20",
    )


def test_retrieve_default_environment_variables():
    required = {
        "SAGEMAKER_PROGRAM": "inference.py",
        "SAGEMAKER_SUBMIT_DIRECTORY": "/opt/ml/model/code",
    }
    assert artifacts.retrieve_default_environment_variables(
        region=REGION, model_id=MODEL_ID, model_version="*"
    ) == dict(required, SAGEMAKER_CONTAINER_LOG_LEVEL="20", MODEL_CACHE_ROOT="/opt/ml/model")
    assert (
        artifacts.retrieve_default_environment_variables(
            region=REGION, model_id=MODEL_ID, model_version="*", include_aws_sdk_env_vars=False
        )
        == required
    )


def test_retrieve_image_uri():
    assert (
        artifacts.retrieve_image_uri(
            MODEL_ID, "*", "inference", region=REGION, instance_type="ml.p2.xlarge"
        )
        == "763104351884.dkr.ecr.us-west-2.amazonaws.com/pytorch-inference:1.10.2-gpu-py38"
    )
    assert (
        artifacts.retrieve_image_uri(
            MODEL_ID, "*", "training", region=REGION, instance_type="ml.m5.xlarge"
        )
        == "763104351884.dkr.ecr.us-west-2.amazonaws.com/pytorch-training:1.10.2-cpu-py38"
    )


def test_retrieve_image_uri_accepts_matching_container():
    assert artifacts.retrieve_image_uri(
        MODEL_ID,
        "*",
        "inference",
        framework="pytorch",
        version="1.10.2",
        py_version="py38",
        region=REGION,
        instance_type="ml.m5.xlarge",
    ).endswith("pytorch-inference:1.10.2-cpu-py38")


@pytest.mark.parametrize(
    "kwargs",
    [{"framework": "tensorflow"}, {"version": "1.13.1"}, {"py_version": "py39"}],
)
def test_retrieve_image_uri_rejects_mismatched_container(kwargs):
    with pytest.raises(ValueError) as error:
        artifacts.retrieve_image_uri(
            MODEL_ID, "*", "inference", region=REGION, instance_type="ml.m5.xlarge", **kwargs
        )
    assert f"for JumpStart model ID '{MODEL_ID}' and version '*'" in str(error.value)


def test_model_supports_incremental_training(patched_get_model_specs):
    assert artifacts.model_supports_incremental_training(
        region=REGION, model_id=MODEL_ID, model_version="*"
    )

    patched_get_model_specs.side_effect = None
    patched_get_model_specs.return_value = get_spec_from_base_spec(
        incremental_training_supported=False
    )
    assert not artifacts.model_supports_incremental_training(
        region=REGION, model_id=MODEL_ID, model_version="*"
    )
