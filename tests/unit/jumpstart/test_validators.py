from __future__ import absolute_import

from mock import patch

import pytest

from sagemaker_common.jumpstart.enums import HyperparameterValidationMode
from sagemaker_common.jumpstart.exceptions import JumpStartHyperparametersError
from sagemaker_common.jumpstart.types import JumpStartHyperparameter
from sagemaker_common.jumpstart.validators import (
    _validate_hyperparameter,
    validate_hyperparameters,
)

from tests.unit.jumpstart.utils import get_spec_from_base_spec

MODEL_ID = "pytorch-ic-mobilenet-v2"

HYPERPARAMETER_SPECS = [
    JumpStartHyperparameter(spec)
    for spec in [
        {"name": "epochs", "type": "int", "default": 3, "min": 1, "max": 10, "scope": "algorithm"},
        {
            "name": "learning-rate",
            "type": "float",
            "default": 0.5,
            "exclusive_min": 0,
            "exclusive_max": 1,
            "scope": "algorithm",
        },
        {
            "name": "optimizer",
            "type": "text",
            "default": "adam",
            "options": ["adam", "sgd"],
            "scope": "algorithm",
        },
        {
            "name": "run-name",
            "type": "text",
            "default": "abc",
            "min": 2,
            "exclusive_max": 5,
            "scope": "container",
        },
        {"name": "top-layer", "type": "bool", "default": "True", "scope": "algorithm"},
        {"name": "dup", "type": "int", "default": 1, "scope": "algorithm"},
        {"name": "dup", "type": "int", "default": 2, "scope": "algorithm"},
    ]
]


@pytest.mark.parametrize(
    "name, value",
    [
        ("epochs", 3),
        ("epochs", "10"),
        ("epochs", "+5"),
        ("learning-rate", "0.25"),
        ("learning-rate", 0.999),
        ("optimizer", "sgd"),
        ("run-name", "ab"),
        ("run-name", "abcd"),
        ("top-layer", True),
        ("top-layer", "false"),
        ("top-layer", "TRUE"),
    ],
)
def test_validate_hyperparameter_accepts(name, value):
    _validate_hyperparameter(name, value, HYPERPARAMETER_SPECS)


@pytest.mark.parametrize(
    "name, value, message",
    [
        ("epochs", 0, "must be no less than 1"),
        ("epochs", "11", "must be no greater than 10"),
        ("epochs", "2.5", "must be integer (got"),
        ("epochs", "three", "must be numeric (got"),
        ("epochs", None, "must be numeric (got"),
        ("learning-rate", 0, "must be greater than 0"),
        ("learning-rate", "1", "must be less than 1"),
        ("optimizer", "rmsprop", "must have one of the following values: adam, sgd"),
        ("optimizer", 1, "to have string type"),
        ("run-name", "a", "must have length no less than 2"),
        ("run-name", "abcde", "must have length less than 5"),
        ("top-layer", "yes", "Expecting boolean valued hyperparameter"),
        ("top-layer", 1, "Expecting boolean valued hyperparameter"),
        ("missing", 1, "cannot find hyperparameter 'missing'"),
        ("dup", 1, "found multiple hyperparameter 'dup'"),
    ],
)
def test_validate_hyperparameter_rejects(name, value, message):
    with pytest.raises(JumpStartHyperparametersError) as error:
        _validate_hyperparameter(name, value, HYPERPARAMETER_SPECS)
    assert message in str(error.value)


@pytest.fixture
def patched_get_model_specs():
    with patch(
        "sagemaker_common.jumpstart.accessors.JumpStartModelsAccessor.get_model_specs"
    ) as mock_get_model_specs:
        mock_get_model_specs.side_effect = get_spec_from_base_spec
        yield mock_get_model_specs


def test_validate_provided(patched_get_model_specs):
    validate_hyperparameters(MODEL_ID, "*", {"epochs": "5", "optimizer": "sgd"})

    with pytest.raises(JumpStartHyperparametersError):
        validate_hyperparameters(MODEL_ID, "*", {"epochs": "5000"})

    with pytest.raises(JumpStartHyperparametersError):
        validate_hyperparameters(MODEL_ID, "*", {"unknown": "5"}, validation_mode=None)


def test_validate_algorithm(patched_get_model_specs):
    algorithm_hyperparameters = {
        "epochs": "3",
        "adam-learning-rate": "0.05",
        "optimizer": "adam",
        "train_only_top_layer": "True",
    }
    validate_hyperparameters(
        MODEL_ID,
        "*",
        algorithm_hyperparameters,
        validation_mode=HyperparameterValidationMode.VALIDATE_ALGORITHM,
    )

    del algorithm_hyperparameters["optimizer"]
    with pytest.raises(JumpStartHyperparametersError) as error:
        validate_hyperparameters(
            MODEL_ID,
            "*",
            algorithm_hyperparameters,
            validation_mode=HyperparameterValidationMode.VALIDATE_ALGORITHM,
        )
    assert "Cannot find algorithm hyperparameter for 'optimizer'." in str(error.value)


def test_validate_all(patched_get_model_specs):
    all_hyperparameters = {
        "epochs": "3",
        "adam-learning-rate": "0.05",
        "optimizer": "adam",
        "train_only_top_layer": "True",
        "sagemaker_submit_directory": "/opt/ml/input/data/code/sourcedir.tar.gz",
        "sagemaker_program": "transfer_learning.py",
        "sagemaker_container_log_level": "20",
    }
    validate_hyperparameters(
        MODEL_ID, "*", all_hyperparameters, HyperparameterValidationMode.VALIDATE_ALL
    )

    del all_hyperparameters["sagemaker_program"]
    with pytest.raises(JumpStartHyperparametersError) as error:
        validate_hyperparameters(
            MODEL_ID, "*", all_hyperparameters, HyperparameterValidationMode.VALIDATE_ALL
        )
    assert "Cannot find hyperparameter for 'sagemaker_program'." in str(error.value)


def test_validate_uses_training_scope(patched_get_model_specs):
    patched_get_model_specs.side_effect = None
    patched_get_model_specs.return_value = get_spec_from_base_spec(training_supported=False)
    with pytest.raises(ValueError) as error:
        validate_hyperparameters(MODEL_ID, "*", {})
    assert "does not support training" in str(error.value)


def test_validate_bad_mode(patched_get_model_specs):
    with pytest.raises(NotImplementedError):
        validate_hyperparameters(MODEL_ID, "*", {}, validation_mode="validate_some")
