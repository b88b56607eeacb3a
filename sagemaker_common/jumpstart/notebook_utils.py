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
"""Listing helpers over the JumpStart model catalog.

Filters are checked against the manifest entry first. Specs are only downloaded for
models whose filter is still UNKNOWN after that.
"""
from __future__ import absolute_import

from collections import defaultdict
from typing import Any, Dict, Iterator, List, Tuple, Union

from packaging.version import Version

from sagemaker_common.jumpstart import accessors
from sagemaker_common.jumpstart.constants import JUMPSTART_DEFAULT_REGION_NAME
from sagemaker_common.jumpstart.enums import JumpStartScriptScope
from sagemaker_common.jumpstart.filters import (
    SPECIAL_SUPPORTED_FILTER_KEYS,
    BooleanValues,
    Constant,
    Identity,
    Operand,
    SpecialSupportedFilterKeys,
    evaluate_filter_expression,
)
from sagemaker_common.jumpstart.types import JumpStartModelHeader, JumpStartModelSpecs
from sagemaker_common.jumpstart.utils import get_sagemaker_version

FilterType = Union[Operand, str]


def extract_framework_task_model(model_id: str) -> Tuple[str, str, str]:
    """Split a model ID such as ``pytorch-ic-mobilenet-v2`` into framework, task and name.

    Raises:
        ValueError: If the ID has fewer than three dash-separated parts.
    """
    parts = model_id.split("-", 2)
    if len(parts) < 3:
        raise ValueError(f"incorrect model ID: {model_id}.")
    return parts[0], parts[1], parts[2]


def _evaluate(expression: Operand, known_values: Dict[str, Any]) -> BooleanValues:
    """Value of ``expression`` with filters on keys missing from ``known_values`` UNKNOWN."""

    def resolve(model_filter):
        if model_filter.key not in known_values:
            return BooleanValues.UNKNOWN
        return evaluate_filter_expression(model_filter, known_values[model_filter.key])

    return expression.evaluate(resolve)


def _manifest_values(header: JumpStartModelHeader, filter_keys) -> Dict[str, Any]:
    """Filterable values available without downloading the model specs."""
    values = {
        key: getattr(header, key) for key in filter_keys & JumpStartModelHeader.field_names()
    }
    if filter_keys & {SpecialSupportedFilterKeys.TASK, SpecialSupportedFilterKeys.FRAMEWORK}:
        framework, task, _ = extract_framework_task_model(header.model_id)
        values[SpecialSupportedFilterKeys.TASK.value] = task
        values[SpecialSupportedFilterKeys.FRAMEWORK.value] = framework
    if SpecialSupportedFilterKeys.SUPPORTED_MODEL in filter_keys:
        values[SpecialSupportedFilterKeys.SUPPORTED_MODEL.value] = Version(
            header.min_version
        ) <= Version(get_sagemaker_version())
    return values


def _generate_jumpstart_model_versions(  # pylint: disable=redefined-builtin
    filter: FilterType = Constant(BooleanValues.TRUE),
    region: str = JUMPSTART_DEFAULT_REGION_NAME,
    list_incomplete_models: bool = False,
) -> Iterator[Tuple[str, str]]:
    """Yield ``(model_id, version)`` for every manifest entry matching ``filter``.

    Args:
        filter (Union[Operand, str]): Expression, or text parsed into one.
            (Default: Constant(BooleanValues.TRUE)).
        region (str): Region whose catalog is read. (Default: JUMPSTART_DEFAULT_REGION_NAME).
        list_incomplete_models (bool): Also yield models whose filter stays UNKNOWN
            once their specs are known. (Default: False).

    Raises:
        NotImplementedError: If a filter key reaches into nested metadata (contains ".").
        RuntimeError: If specs had to be read and a filter key names no manifest or specs
            field.
    """
    expression = Identity(filter) if isinstance(filter, str) else filter
    filter_keys = {model_filter.key for model_filter in expression.model_filters()}
    nested_keys = sorted(key for key in filter_keys if "." in key)
    if nested_keys:
        raise NotImplementedError(
            f"No support for multiple level metadata indexing ({', '.join(nested_keys)})."
        )

    spec_keys = filter_keys - SPECIAL_SUPPORTED_FILTER_KEYS - JumpStartModelHeader.field_names()
    unrecognized_keys = spec_keys - JumpStartModelSpecs.field_names()
    read_specs = False

    for header in accessors.JumpStartModelsAccessor.get_manifest(region=region):
        known_values = _manifest_values(header, filter_keys)
        outcome = _evaluate(expression, known_values)

        if outcome == BooleanValues.UNKNOWN:
            specs = accessors.JumpStartModelsAccessor.get_model_specs(
                region=region, model_id=header.model_id, version=header.version
            )
            read_specs = True
            for key in spec_keys - unrecognized_keys:
                if getattr(specs, key) is not None:
                    known_values[key] = getattr(specs, key)
            outcome = _evaluate(expression, known_values)
            if outcome == BooleanValues.UNKNOWN and list_incomplete_models:
                outcome = BooleanValues.TRUE

        if outcome == BooleanValues.TRUE:
            yield header.model_id, header.version

    if read_specs and unrecognized_keys:
        raise RuntimeError(f"Unrecognized keys: {sorted(unrecognized_keys)}")


def list_jumpstart_models(  # pylint: disable=redefined-builtin
    filter: FilterType = Constant(BooleanValues.TRUE),
    region: str = JUMPSTART_DEFAULT_REGION_NAME,
    list_incomplete_models: bool = False,
    list_old_models: bool = False,
    list_versions: bool = False,
) -> List[Union[str, Tuple[str, str]]]:
    """List JumpStart models, optionally filtered.

    Args:
        filter (Union[Operand, str]): Expression such as
            ``And("task == ic", "framework == pytorch")`` or text such as ``"task == ic"``.
            Every model is listed by default.
        region (str): Region whose catalog is read. (Default: JUMPSTART_DEFAULT_REGION_NAME).
        list_incomplete_models (bool): Include models lacking the metadata the filter
            needs. (Default: False).
        list_old_models (bool): With ``list_versions``, list every version instead of
            only the newest. (Default: False).
        list_versions (bool): Return ``(model_id, version)`` pairs. (Default: False).

    Returns:
        list: Model IDs in order, or pairs ordered by model ID and then newest version first.
    """
    versions: Dict[str, List[Version]] = defaultdict(list)
    for model_id, version in _generate_jumpstart_model_versions(
        filter=filter, region=region, list_incomplete_models=list_incomplete_models
    ):
        versions[model_id].append(Version(version))

    if not list_versions:
        return sorted(versions)

    pairs = []
    for model_id in sorted(versions):
        model_versions = sorted(set(versions[model_id]), reverse=True)
        if not list_old_models:
            model_versions = model_versions[:1]
        pairs.extend((model_id, str(version)) for version in model_versions)
    return pairs


def list_jumpstart_tasks(  # pylint: disable=redefined-builtin
    filter: FilterType = Constant(BooleanValues.TRUE),
    region: str = JUMPSTART_DEFAULT_REGION_NAME,
) -> List[str]:
    """Tasks (the second part of a model ID) of the models matching ``filter``."""
    return sorted(
        {
            extract_framework_task_model(model_id)[1]
            for model_id, _ in _generate_jumpstart_model_versions(filter=filter, region=region)
        }
    )


def list_jumpstart_frameworks(  # pylint: disable=redefined-builtin
    filter: FilterType = Constant(BooleanValues.TRUE),
    region: str = JUMPSTART_DEFAULT_REGION_NAME,
) -> List[str]:
    """Frameworks (the first part of a model ID) of the models matching ``filter``."""
    return sorted(
        {
            extract_framework_task_model(model_id)[0]
            for model_id, _ in _generate_jumpstart_model_versions(filter=filter, region=region)
        }
    )


def list_jumpstart_scripts(  # pylint: disable=redefined-builtin
    filter: FilterType = Constant(BooleanValues.TRUE),
    region: str = JUMPSTART_DEFAULT_REGION_NAME,
) -> List[str]:
    """Script scopes offered by the models matching ``filter``.

    Every model has an inference script. Models that support training add a training one.
    """
    all_scripts = sorted(scope.value for scope in JumpStartScriptScope)
    match_all = (
        isinstance(filter, Constant) and filter.resolved_value == BooleanValues.TRUE
    ) or (isinstance(filter, str) and filter.lower() == BooleanValues.TRUE.value)
    if match_all:
        return all_scripts

    scripts = set()
    for model_id, version in _generate_jumpstart_model_versions(filter=filter, region=region):
        scripts.add(JumpStartScriptScope.INFERENCE.value)
        specs = accessors.JumpStartModelsAccessor.get_model_specs(
            region=region, model_id=model_id, version=version
        )
        if specs.training_supported:
            scripts.add(JumpStartScriptScope.TRAINING.value)
        if len(scripts) == len(all_scripts):
            break
    return sorted(scripts)


def get_model_url(
    model_id: str, model_version: str, region: str = JUMPSTART_DEFAULT_REGION_NAME
) -> str:
    """Web page describing the pretrained model."""
    return accessors.JumpStartModelsAccessor.get_model_specs(
        region=region, model_id=model_id, version=model_version
    ).url
