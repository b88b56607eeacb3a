from __future__ import absolute_import

import copy

from sagemaker_common.jumpstart.types import JumpStartModelHeader, JumpStartModelSpecs

from tests.unit.jumpstart.constants import BASE_MANIFEST, BASE_SPEC


def get_prototype_manifest(region=None, s3_client=None):
    return [JumpStartModelHeader(header) for header in BASE_MANIFEST]


def get_header_from_base_header(region=None, model_id=None, version=None):
    for header in BASE_MANIFEST:
        if header["model_id"] == model_id and header["version"] == version:
            return JumpStartModelHeader(header)
    raise KeyError(f"No header for {model_id}/{version}")


def get_spec_from_base_spec(region=None, model_id=None, version=None, s3_client=None, **overrides):
    spec = copy.deepcopy(BASE_SPEC)
    spec["model_id"] = model_id or spec["model_id"]
    spec["version"] = version or spec["version"]
    spec.update(overrides)
    return JumpStartModelSpecs(spec)
