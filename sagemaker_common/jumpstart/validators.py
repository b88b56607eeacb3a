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
"""Checks of training hyperparameters against the definitions in JumpStart model specs."""
from __future__ import absolute_import

from typing import Any, Callable, Dict, Optional, Sequence

from sagemaker_common.jumpstart.constants import JUMPSTART_DEFAULT_REGION_NAME
from sagemaker_common.jumpstart.enums import (
    HyperparameterValidationMode,
    JumpStartScriptScope,
    VariableScope,
    VariableTypes,
)
from sagemaker_common.jumpstart.exceptions import JumpStartHyperparametersError
from sagemaker_common.jumpstart.types import JumpStartHyperparameter
from sagemaker_common.jumpstart.utils import verify_model_region_and_return_specs

# (attribute, predicate that holds when the bound is respected, wording)
_BOUNDS = (
    ("min", lambda value, bound: value >= bound, "no less than"),
    ("max", lambda value, bound: value <= bound, "no greater than"),
    ("exclusive_min", lambda value, bound: value > bound, "greater than"),
    ("exclusive_max", lambda value, bound: value < bound, "less than"),
)


def _definition(name: str, definitions: Sequence[JumpStartHyperparameter]):
    found = [definition for definition in definitions if definition.name == name]
    if len(found) == 1:
        return found[0]
    problem = "cannot find" if not found else "found multiple"
    raise JumpStartHyperparametersError(
        f"Unable to perform validation -- {problem} hyperparameter '{name}' in model specs."
    )


def _respect_bounds(name: str, measured: float, definition, subject: str) -> None:
    for attribute, respected, wording in _BOUNDS:
        bound = getattr(definition, attribute)
        if bound is not None and not respected(measured, bound):
            raise JumpStartHyperparametersError(
                f"Hyperparameter '{name}' must {subject} {wording} {bound}."
            )


def _check_bool(name: str, value: Any, definition) -> None:
    if isinstance(value, bool):
        return
    if not (isinstance(value, str) and value.lower() in ("true", "false")):
        raise JumpStartHyperparametersError(
            f"Expecting boolean valued hyperparameter '{name}', but got '{value}'."
        )


def _check_text(name: str, value: Any, definition) -> None:
    if not isinstance(value, str):
        raise JumpStartHyperparametersError(
            f"Expecting text valued hyperparameter '{name}' to have string type."
        )
    if definition.options is not None and value not in definition.options:
        raise JumpStartHyperparametersError(
            f"Hyperparameter '{name}' must have one of the following values: "
            f"{', '.join(definition.options)}."
        )
    _respect_bounds(name, len(value), definition, "have length")


def _is_integer_literal(value: Any) -> bool:
    text = str(value)
    return text.lstrip("+-").isdigit() and len(text) - len(text.lstrip("+-")) <= 1


def _check_number(name: str, value: Any, definition) -> None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise JumpStartHyperparametersError(
            f"Hyperparameter '{name}' must be numeric (got '{value}')."
        )
    if definition.type == VariableTypes.INT and not _is_integer_literal(value):
        raise JumpStartHyperparametersError(
            f"Hyperparameter '{name}' must be integer (got '{value}')."
        )
    _respect_bounds(name, number, definition, "be")


_CHECKS: Dict[str, Callable[[str, Any, JumpStartHyperparameter], None]] = {
    VariableTypes.BOOL.value: _check_bool,
    VariableTypes.TEXT.value: _check_text,
    VariableTypes.INT.value: _check_number,
    VariableTypes.FLOAT.value: _check_number,
}


def _validate_hyperparameter(
    name: str, value: Any, definitions: Sequence[JumpStartHyperparameter]
) -> None:
    """Check one value against its definition.

    Integers must be written without a fractional part. Text values must be one of the
    ``options`` when those are given, and the bounds apply to their length.

    Raises:
        JumpStartHyperparametersError: If ``name`` is not defined exactly once, or the
            value breaks its definition.
    """
    definition = _definition(name, definitions)
    check = _CHECKS.get(definition.type)
    if check is not None:
        check(name, value, definition)


def validate_hyperparameters(
    model_id: str,
    model_version: str,
    hyperparameters: Dict[str, Any],
    validation_mode: Optional[
        HyperparameterValidationMode
    ] = HyperparameterValidationMode.VALIDATE_PROVIDED,
    region: Optional[str] = JUMPSTART_DEFAULT_REGION_NAME,
    sagemaker_session=None,
    tolerate_vulnerable_model: bool = False,
    tolerate_deprecated_model: bool = False,
) -> None:
    """Check training hyperparameters of a JumpStart model.

    Args:
        model_id (str): JumpStart model ID.
        model_version (str): Version or version pattern.
        hyperparameters (dict): Values to check, by name.
        validation_mode (HyperparameterValidationMode): ``VALIDATE_PROVIDED`` checks only
            the given values. ``VALIDATE_ALGORITHM`` also requires every algorithm-scoped
            hyperparameter, ``VALIDATE_ALL`` every defined one. (Default: VALIDATE_PROVIDED).
        region (str): Region whose metadata is read. (Default: JumpStart default region).
        sagemaker_session (sagemaker_common.session.Session): Its S3 client reads the
            metadata. (Default: None).
        tolerate_vulnerable_model (bool): Accept a vulnerable training script.
            (Default: False).
        tolerate_deprecated_model (bool): Accept a deprecated model. (Default: False).

    Raises:
        JumpStartHyperparametersError: If a value breaks its definition or a required
            one is missing.
        NotImplementedError: If ``validation_mode`` is unknown.
    """
    try:
        mode = HyperparameterValidationMode(
            validation_mode or HyperparameterValidationMode.VALIDATE_PROVIDED
        )
    except ValueError:
        raise NotImplementedError(f"Unknown hyperparameter validation mode: '{validation_mode}'.")

    definitions = verify_model_region_and_return_specs(
        model_id=model_id,
        version=model_version,
        scope=JumpStartScriptScope.TRAINING,
        region=region or JUMPSTART_DEFAULT_REGION_NAME,
        sagemaker_session=sagemaker_session,
        tolerate_vulnerable_model=tolerate_vulnerable_model,
        tolerate_deprecated_model=tolerate_deprecated_model,
    ).hyperparameters

    if mode == HyperparameterValidationMode.VALIDATE_PROVIDED:
        for name, value in hyperparameters.items():
            _validate_hyperparameter(name, value, definitions)
        return

    if mode == HyperparameterValidationMode.VALIDATE_ALGORITHM:
        required = [d for d in definitions if d.scope == VariableScope.ALGORITHM]
        kind = "algorithm hyperparameter"
    else:
        required = list(definitions)
        kind = "hyperparameter"
    for definition in required:
        if definition.name not in hyperparameters:
            raise JumpStartHyperparametersError(f"Cannot find {kind} for '{definition.name}'.")
        _validate_hyperparameter(definition.name, hyperparameters[definition.name], definitions)
