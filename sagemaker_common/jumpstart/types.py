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
"""Read-only records for the JumpStart manifest and model metadata files.

Records are declared as a table of ``Field`` entries and built from the parsed JSON.
They cannot be modified once built, so the metadata cache hands the same objects
to every caller instead of copying them. JSON lists become tuples.
"""
from __future__ import absolute_import

from enum import Enum
from typing import Any, Callable, FrozenSet, Mapping, NamedTuple, Optional, Tuple, Union


class JumpStartS3FileType(str, Enum):
    """Kinds of metadata files in a JumpStart content bucket."""

    MANIFEST = "manifest"
    SPECS = "specs"


class Field(NamedTuple):
    """Declares one attribute of a record and how it is read from JSON.

    A required field raises ``KeyError`` when absent. An optional one takes
    ``default`` when absent or null. ``parse`` converts the raw JSON value.
    """

    name: str
    required: bool = True
    parse: Optional[Callable[[Any], Any]] = None
    default: Any = None

    def read(self, json_obj: Mapping[str, Any]) -> Any:
        if self.required:
            raw_value = json_obj[self.name]
        else:
            raw_value = json_obj.get(self.name)
            if raw_value is None:
                return self.default
        return raw_value if self.parse is None else self.parse(raw_value)


def _tuple_of(record_type: Callable[[Any], Any]) -> Callable[[Any], Tuple]:
    def parse(items):
        return tuple(record_type(item) for item in items)

    return parse


class JumpStartDataHolderType(object):
    """Base class of JumpStart records.

    Records with equal type and attribute values are equal and hash alike.
    """

    FIELDS: Tuple[Field, ...] = ()
    __slots__ = ()

    def __init__(self, json_obj: Mapping[str, Any]):
        for field in self.FIELDS:
            object.__setattr__(self, field.name, field.read(json_obj))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only.")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only.")

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    @classmethod
    def field_names(cls) -> FrozenSet[str]:
        """Names of every attribute a record of this type carries."""
        return frozenset(field.name for field in cls.FIELDS)

    def _values(self) -> Tuple:
        return tuple(getattr(self, field.name) for field in self.FIELDS)

    def __eq__(self, other: Any) -> bool:
        return type(other) is type(self) and other._values() == self._values()

    def __hash__(self) -> int:
        return hash((type(self).__name__,) + self._values())

    def __repr__(self) -> str:
        attributes = ", ".join(
            f"{field.name}={getattr(self, field.name)!r}" for field in self.FIELDS
        )
        return f"{type(self).__name__}({attributes})"


class JumpStartLaunchedRegionInfo(NamedTuple):
    """A region JumpStart is launched in, with the bucket serving its metadata."""

    region_name: str
    content_bucket: str


class JumpStartModelHeader(JumpStartDataHolderType):
    """One manifest entry: a model version and where its specs file lives."""

    FIELDS = (
        Field("model_id"),
        Field("version"),
        Field("min_version"),
        Field("spec_key"),
    )
    __slots__ = tuple(field.name for field in FIELDS)


class JumpStartECRSpecs(JumpStartDataHolderType):
    """Framework, version and Python version of a model's container image."""

    FIELDS = (
        Field("framework"),
        Field("framework_version"),
        Field("py_version"),
    )
    __slots__ = tuple(field.name for field in FIELDS)


class JumpStartHyperparameter(JumpStartDataHolderType):
    """Definition of a training hyperparameter.

    ``options`` and the four bounds are None when the definition leaves them out.
    """

    FIELDS = (
        Field("name"),
        Field("type"),
        Field("default"),
        Field("scope"),
        Field("options", required=False, parse=tuple),
        Field("min", required=False),
        Field("max", required=False),
        Field("exclusive_min", required=False),
        Field("exclusive_max", required=False),
    )
    __slots__ = tuple(field.name for field in FIELDS)


class JumpStartEnvironmentVariable(JumpStartDataHolderType):
    """Definition of an environment variable of the hosting container."""

    FIELDS = (
        Field("name"),
        Field("type"),
        Field("default"),
        Field("scope"),
        Field("required_for_model_class", required=False, parse=bool, default=False),
    )
    __slots__ = tuple(field.name for field in FIELDS)


_TRAINING_FIELD_NAMES = ("training_ecr_specs", "training_artifact_key", "training_script_key")


class JumpStartModelSpecs(JumpStartDataHolderType):
    """Metadata of one model version, read from its specs file.

    The training fields are only required when ``training_supported`` is set and
    are None (``hyperparameters`` empty) otherwise.
    """

    FIELDS = (
        Field("model_id"),
        Field("version"),
        Field("url"),
        Field("hosting_ecr_specs", parse=JumpStartECRSpecs),
        Field("hosting_artifact_key"),
        Field("hosting_script_key"),
        Field("hosting_eula_key", required=False),
        Field(
            "inference_environment_variables",
            required=False,
            parse=_tuple_of(JumpStartEnvironmentVariable),
            default=(),
        ),
        Field("training_supported", parse=bool),
        Field("incremental_training_supported", parse=bool),
        Field("training_ecr_specs", required=False, parse=JumpStartECRSpecs),
        Field("training_artifact_key", required=False),
        Field("training_script_key", required=False),
        Field(
            "hyperparameters",
            required=False,
            parse=_tuple_of(JumpStartHyperparameter),
            default=(),
        ),
        Field("inference_vulnerable", parse=bool),
        Field("inference_vulnerabilities", parse=tuple),
        Field("training_vulnerable", parse=bool),
        Field("training_vulnerabilities", parse=tuple),
        Field("deprecated", parse=bool),
        Field("deprecated_message", required=False),
        Field("deprecate_warn_message", required=False),
    )
    __slots__ = tuple(field.name for field in FIELDS)

    def __init__(self, json_obj: Mapping[str, Any]):
        """Build the record from a parsed specs file.

        Raises:
            KeyError: If a required field is missing, including the training fields
                of a model that supports training.
        """
        super(JumpStartModelSpecs, self).__init__(json_obj)
        if self.training_supported:
            missing = [name for name in _TRAINING_FIELD_NAMES if getattr(self, name) is None]
            if missing:
                raise KeyError(
                    f"Model '{self.model_id}' supports training but its specs lack: "
                    f"{', '.join(missing)}."
                )

    def supports_incremental_training(self) -> bool:
        return self.incremental_training_supported


class JumpStartVersionedModelId(NamedTuple):
    """A model ID with either a concrete version or a version pattern."""

    model_id: str
    version: str


class JumpStartCachedS3ContentKey(NamedTuple):
    """Key of the metadata file cache."""

    file_type: JumpStartS3FileType
    s3_key: str


class JumpStartCachedS3ContentValue(NamedTuple):
    """Parsed metadata file, plus the S3 ETag for the manifest.

    ``formatted_content`` is a read-only mapping from ``JumpStartVersionedModelId`` to
    ``JumpStartModelHeader`` for the manifest, or a ``JumpStartModelSpecs``.
    """

    formatted_content: Union[
        Mapping[JumpStartVersionedModelId, JumpStartModelHeader], JumpStartModelSpecs
    ]
    md5_hash: Optional[str] = None
