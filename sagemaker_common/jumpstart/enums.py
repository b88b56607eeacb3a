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
"""String enums for JumpStart metadata values.

Members are ``str`` subclasses, so they compare equal to the raw strings found in
the metadata files.
"""
from __future__ import absolute_import

from enum import Enum


class JumpStartScriptScope(str, Enum):
    """Use of a model artifact: serving an endpoint or running a training job."""

    INFERENCE = "inference"
    TRAINING = "training"


class VariableScope(str, Enum):
    """Consumer of a hyperparameter or environment variable.

    ``ALGORITHM`` values are read by the model's own script, ``CONTAINER`` values by
    the serving or training container around it.
    """

    CONTAINER = "container"
    ALGORITHM = "algorithm"


class VariableTypes(str, Enum):
    """Value types a hyperparameter definition can declare."""

    TEXT = "text"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


class HyperparameterValidationMode(str, Enum):
    """Which hyperparameters ``validate_hyperparameters`` checks.

    Only those passed in, every algorithm-scoped one, or every defined one.
    """

    VALIDATE_PROVIDED = "validate_provided"
    VALIDATE_ALGORITHM = "validate_algorithm"
    VALIDATE_ALL = "validate_all"
