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
"""Tri-state filter expressions over JumpStart model metadata.

An expression is a tree of ``And``, ``Or``, ``Not``, ``Identity`` and ``Constant``
nodes over ``Operand`` leaves. A leaf either holds a fixed ``BooleanValues`` member or a
``ModelFilter`` parsed from text such as ``"task == ic"``.

Expressions are never modified by evaluation. ``evaluate`` takes a resolver that maps
each ``ModelFilter`` to a value, so the same expression can be checked against every
model in the catalog. ``UNKNOWN`` marks a filter whose metadata is not at hand yet.
"""
from __future__ import absolute_import

from ast import literal_eval
from enum import Enum
from typing import Any, Callable, Iterator, NamedTuple, Union


class BooleanValues(str, Enum):
    """Values an expression node can take."""

    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"
    UNEVALUATED = "unevaluated"


class FilterOperators(str, Enum):
    """Comparisons a ``ModelFilter`` can make."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"


class SpecialSupportedFilterKeys(str, Enum):
    """Filter keys computed from the manifest entry rather than read from it."""

    TASK = "task"
    FRAMEWORK = "framework"
    SUPPORTED_MODEL = "supported_model"


SPECIAL_SUPPORTED_FILTER_KEYS = frozenset(key.value for key in SpecialSupportedFilterKeys)

# tried in order: "!=" contains "=", and " not in " contains " in "
_OPERATOR_TOKENS = (
    ("!==", FilterOperators.NOT_EQUALS),
    ("!=", FilterOperators.NOT_EQUALS),
    (" not equals ", FilterOperators.NOT_EQUALS),
    (" is not ", FilterOperators.NOT_EQUALS),
    (" not in ", FilterOperators.NOT_IN),
    ("===", FilterOperators.EQUALS),
    ("==", FilterOperators.EQUALS),
    (" equals ", FilterOperators.EQUALS),
    (" is ", FilterOperators.EQUALS),
    (" in ", FilterOperators.IN),
)

_NEGATED_OPERATORS = frozenset((FilterOperators.NOT_EQUALS, FilterOperators.NOT_IN))

_FIXED_OPERANDS = {
    value.value: value for value in BooleanValues if value != BooleanValues.UNEVALUATED
}


class ModelFilter(NamedTuple):
    """Comparison of one metadata key with a value, e.g. ``task == ic``."""

    key: str
    value: str
    operator: FilterOperators


Resolver = Callable[[ModelFilter], BooleanValues]


def parse_filter_string(filter_string: str) -> ModelFilter:
    """Split text such as ``"framework not in ['xgboost']"`` into a ``ModelFilter``.

    Word operators only match between spaces, so ``"version is 1.0.0"`` is not split
    inside ``version``.

    Raises:
        ValueError: If no operator splits the text into exactly two parts.
    """
    for token, operator in _OPERATOR_TOKENS:
        parts = filter_string.split(token)
        if len(parts) == 2:
            return ModelFilter(parts[0].strip(), parts[1].strip(), operator)
    raise ValueError(f"Cannot parse filter string: {filter_string}")


def _matches(model_filter: ModelFilter, operator: FilterOperators, model_value: Any) -> bool:
    if operator in (FilterOperators.IN, FilterOperators.NOT_IN):
        candidates = literal_eval(model_filter.value)
        try:
            return model_value in candidates
        except TypeError:
            return False
    filter_value = str(model_filter.value)
    if isinstance(model_value, bool):
        return filter_value.lower() == str(model_value).lower()
    return filter_value == str(model_value)


def evaluate_filter_expression(
    model_filter: ModelFilter, cached_model_value: Any
) -> BooleanValues:
    """Compare a metadata value with a filter.

    ``in`` and ``not in`` read the filter value as a Python literal. Boolean metadata
    compares case-insensitively, anything else as strings.

    Raises:
        RuntimeError: If the filter carries an unknown operator.
    """
    try:
        operator = FilterOperators(model_filter.operator)
    except ValueError:
        raise RuntimeError(f"Bad operator: {model_filter.operator}")
    matched = _matches(model_filter, operator, cached_model_value)
    if operator in _NEGATED_OPERATORS:
        matched = not matched
    return BooleanValues.TRUE if matched else BooleanValues.FALSE


class Operand(object):
    """Leaf of an expression."""

    def __init__(
        self, unresolved_value: Any, resolved_value: BooleanValues = BooleanValues.UNEVALUATED
    ):
        """Create a leaf.

        Raises:
            RuntimeError: If ``resolved_value`` is not a ``BooleanValues`` member.
        """
        if not isinstance(resolved_value, BooleanValues):
            raise RuntimeError(
                f"Resolved value must be of type BooleanValues, but got {type(resolved_value)}."
            )
        self.unresolved_value = unresolved_value
        self.resolved_value = resolved_value

    @staticmethod
    def validate_operand(operand: Union["Operand", str]) -> "Operand":
        """Turn text into a leaf; operands pass through.

        ``"true"``, ``"false"`` and ``"unknown"`` in any case become fixed leaves.
        Other text is parsed with ``parse_filter_string``.

        Raises:
            RuntimeError: If ``operand`` is neither an ``Operand`` nor text.
            ValueError: If the text is not a filter.
        """
        if isinstance(operand, Operand):
            return operand
        if not isinstance(operand, str):
            raise RuntimeError(f"Operand '{operand}' is not supported.")
        fixed_value = _FIXED_OPERANDS.get(operand.lower())
        if fixed_value is not None:
            return Operand(operand, resolved_value=fixed_value)
        return Operand(parse_filter_string(operand))

    def model_filters(self) -> Iterator[ModelFilter]:
        """Every ``ModelFilter`` in the expression, left to right."""
        if isinstance(self.unresolved_value, ModelFilter):
            yield self.unresolved_value

    def evaluate(self, resolve: Resolver) -> BooleanValues:
        """Value of the expression with each ``ModelFilter`` mapped through ``resolve``.

        Raises:
            RuntimeError: If a leaf has neither a filter nor a fixed value.
        """
        if isinstance(self.unresolved_value, ModelFilter):
            return resolve(self.unresolved_value)
        if self.resolved_value == BooleanValues.UNEVALUATED:
            raise RuntimeError(f"Operand '{self.unresolved_value}' has no value.")
        return self.resolved_value


class Operator(Operand):
    """Inner node of an expression."""

    def __init__(self, *operands: Union[Operand, str]):
        super(Operator, self).__init__(unresolved_value=None)
        self.operands = tuple(Operand.validate_operand(operand) for operand in operands)

    def model_filters(self) -> Iterator[ModelFilter]:
        for operand in self.operands:
            yield from operand.model_filters()

    def evaluate(self, resolve: Resolver) -> BooleanValues:
        raise NotImplementedError


class _Connective(Operator):
    """``And`` / ``Or``: stops at the first ``deciding`` operand.

    Without one the result is UNKNOWN if any operand is, else ``otherwise``.
    """

    deciding: BooleanValues
    otherwise: BooleanValues

    def evaluate(self, resolve: Resolver) -> BooleanValues:
        result = self.otherwise
        for operand in self.operands:
            value = operand.evaluate(resolve)
            if value == self.deciding:
                return value
            if value == BooleanValues.UNKNOWN:
                result = BooleanValues.UNKNOWN
        return result


class And(_Connective):
    deciding = BooleanValues.FALSE
    otherwise = BooleanValues.TRUE


class Or(_Connective):
    deciding = BooleanValues.TRUE
    otherwise = BooleanValues.FALSE


class Not(Operator):
    """Negation. UNKNOWN stays UNKNOWN."""

    def __init__(self, operand: Union[Operand, str]):
        super(Not, self).__init__(operand)

    def evaluate(self, resolve: Resolver) -> BooleanValues:
        value = self.operands[0].evaluate(resolve)
        if value == BooleanValues.UNKNOWN:
            return value
        return BooleanValues.FALSE if value == BooleanValues.TRUE else BooleanValues.TRUE


class Identity(Operator):
    """Wraps a single operand, typically a filter given as text."""

    def __init__(self, operand: Union[Operand, str]):
        super(Identity, self).__init__(operand)

    def evaluate(self, resolve: Resolver) -> BooleanValues:
        return self.operands[0].evaluate(resolve)


class Constant(Operator):
    """Expression with a fixed value."""

    def __init__(self, constant: BooleanValues):
        super(Constant, self).__init__()
        self.resolved_value = BooleanValues(constant)

    def evaluate(self, resolve: Resolver) -> BooleanValues:
        return self.resolved_value
