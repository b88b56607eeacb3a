from __future__ import absolute_import

import copy
import datetime
import io
import json
from mock import Mock, patch

import pytest

from sagemaker_common.jumpstart.cache import JumpStartModelsCache
from sagemaker_common.jumpstart.types import (
    JumpStartCachedS3ContentKey,
    JumpStartModelHeader,
    JumpStartModelSpecs,
)

from tests.unit.jumpstart.constants import BASE_MANIFEST, BASE_SPEC, manifest_entry

BUCKET = "some-bucket"
MANIFEST_KEY = "models_manifest.json"
START = datetime.datetime(2022, 1, 1, tzinfo=datetime.timezone.utc)


class FakeClock(object):
    def __init__(self):
        self.now = START

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += datetime.timedelta(**kwargs)


def _spec_for_key(key):
    for header in BASE_MANIFEST:
        if header["spec_key"] == key:
            spec = copy.deepcopy(BASE_SPEC)
            spec["model_id"] = header["model_id"]
            spec["version"] = header["version"]
            return spec
    raise KeyError(key)


class FakeS3(object):
    """Serves the test manifest and specs through a mocked boto3 S3 client."""

    def __init__(self, manifest=None, etag="etag-1"):
        self.manifest = BASE_MANIFEST if manifest is None else manifest
        self.etag = etag
        self.client = Mock(name="s3_client")
        self.client.get_object.side_effect = self._get_object
        self.client.head_object.side_effect = lambda Bucket, Key: {"ETag": self.etag}

    def _get_object(self, Bucket, Key):
        body = self.manifest if Key == MANIFEST_KEY else _spec_for_key(Key)
        return {"Body": io.BytesIO(json.dumps(body).encode("utf-8")), "ETag": self.etag}

    def calls_for(self, key):
        return [
            call for call in self.client.get_object.call_args_list if call[1]["Key"] == key
        ]


@pytest.fixture
def fake_s3():
    return FakeS3()


def _cache(fake_s3, **kwargs):
    return JumpStartModelsCache(
        region="us-west-2", s3_bucket_name=BUCKET, s3_client=fake_s3.client, **kwargs
    )


def test_get_manifest(fake_s3):
    cache = _cache(fake_s3)

    manifest = cache.get_manifest()
    assert manifest == [JumpStartModelHeader(header) for header in BASE_MANIFEST]

    cache.get_manifest()
    fake_s3.client.get_object.assert_called_once_with(Bucket=BUCKET, Key=MANIFEST_KEY)


@pytest.mark.parametrize(
    "semantic_version, expected_version",
    [("*", "2.0.0"), ("1.*", "1.0.0"), ("1.0.0", "1.0.0"), ("2.*", "2.0.0")],
)
def test_get_header_resolves_compatible_version(fake_s3, semantic_version, expected_version):
    cache = _cache(fake_s3)
    header = cache.get_header("pytorch-ic-mobilenet-v2", semantic_version)
    assert header.model_id == "pytorch-ic-mobilenet-v2"
    assert header.version == expected_version


def test_get_header_requires_upgrade(fake_s3):
    cache = _cache(fake_s3)
    with pytest.raises(KeyError) as error:
        cache.get_header("pytorch-ic-mobilenet-v2", "3.*")
    assert "needs SageMaker library version 99.0.0 or later" in str(error.value)
    assert "Version '3.0.0'" in str(error.value)


def test_get_header_unknown_version(fake_s3):
    cache = _cache(fake_s3)
    with pytest.raises(KeyError) as error:
        cache.get_header("pytorch-ic-mobilenet-v2", "4.0.0")
    assert "Version '3.0.0' of 'pytorch-ic-mobilenet-v2' is available." in str(error.value)


def test_get_header_unknown_model_id(fake_s3):
    cache = _cache(fake_s3)
    with pytest.raises(KeyError) as error:
        cache.get_header("pytorch-ic-mobilenet-v3", "*")
    assert "Did you mean model ID 'pytorch-ic-mobilenet-v2'?" in str(error.value)


def test_get_header_bad_semantic_version(fake_s3):
    cache = _cache(fake_s3)
    with pytest.raises(KeyError) as error:
        cache.get_header("pytorch-ic-mobilenet-v2", "not a version!")
    assert "Bad semantic version" in str(error.value)


def test_get_specs(fake_s3):
    cache = _cache(fake_s3)

    specs = cache.get_specs("tensorflow-ic-bit-m-r101x1", "*")
    assert isinstance(specs, JumpStartModelSpecs)
    assert specs.model_id == "tensorflow-ic-bit-m-r101x1"
    assert specs.version == "1.0.0"

    assert cache.get_specs("tensorflow-ic-bit-m-r101x1", "1.0.0") is specs
    spec_key = "community_models_specs/tensorflow-ic-bit-m-r101x1/specs_v1.0.0.json"
    assert len(fake_s3.calls_for(spec_key)) == 1
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 1


def test_cached_records_are_read_only(fake_s3):
    cache = _cache(fake_s3)
    specs = cache.get_specs("pytorch-ic-mobilenet-v2", "1.0.0")

    with pytest.raises(AttributeError):
        specs.version = "9.9.9"
    with pytest.raises(AttributeError):
        cache.get_header("pytorch-ic-mobilenet-v2", "1.0.0").spec_key = "elsewhere"
    assert cache.get_specs("pytorch-ic-mobilenet-v2", "1.0.0").version == "1.0.0"


def test_lookups_on_large_manifest_do_not_copy(fake_s3):
    fake_s3.manifest = [manifest_entry(f"model-{index}", "1.0.0") for index in range(2000)]
    cache = _cache(fake_s3)
    cache.get_header("model-0", "*")

    with patch("sagemaker_common.utilities.cache.copy", wraps=copy) as mock_copy:
        headers = [cache.get_header(f"model-{index % 10}", "*") for index in range(50)]
        cache.get_manifest()

    assert mock_copy.deepcopy.call_count == 0
    assert headers[0] is headers[10]
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 1


def test_expired_manifest_is_reused_when_etag_is_unchanged(fake_s3):
    clock = FakeClock()
    cache = _cache(fake_s3, expiration_horizon=datetime.timedelta(hours=1), clock=clock)

    cache.get_manifest()
    clock.advance(hours=2)
    cache.get_manifest()

    fake_s3.client.head_object.assert_called_once_with(Bucket=BUCKET, Key=MANIFEST_KEY)
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 1

    fake_s3.etag = "etag-2"
    clock.advance(hours=2)
    cache.get_manifest()
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 2


def test_header_lookup_retries_when_resolved_version_leaves_manifest(fake_s3):
    clock = FakeClock()
    cache = _cache(fake_s3, expiration_horizon=datetime.timedelta(hours=1), clock=clock)
    cache.get_manifest()
    clock.advance(minutes=50)
    assert cache.get_header("pytorch-ic-mobilenet-v2", "*").version == "2.0.0"

    fake_s3.manifest = [
        header
        for header in BASE_MANIFEST
        if (header["model_id"], header["version"]) != ("pytorch-ic-mobilenet-v2", "2.0.0")
    ]
    fake_s3.etag = "etag-2"
    clock.advance(minutes=20)

    assert cache.get_header("pytorch-ic-mobilenet-v2", "*").version == "1.0.0"


def test_unknown_file_type_is_rejected(fake_s3):
    cache = _cache(fake_s3)
    with pytest.raises(ValueError):
        cache._load_file(JumpStartCachedS3ContentKey("model_card", "card.json"), None)


def test_setters_clear_cache(fake_s3):
    cache = _cache(fake_s3)
    cache.get_manifest()

    cache.region = "us-west-2"
    cache.s3_bucket_name = BUCKET
    cache.manifest_file_s3_key = MANIFEST_KEY
    cache.get_manifest()
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 1

    cache.s3_bucket_name = "other-bucket"
    assert cache.s3_bucket_name == "other-bucket"
    cache.get_manifest()
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 2

    cache.region = "us-east-1"
    assert cache.region == "us-east-1"
    cache.get_manifest()
    assert len(fake_s3.calls_for(MANIFEST_KEY)) == 3

    cache.manifest_file_s3_key = MANIFEST_KEY + ".bak"
    assert cache.manifest_file_s3_key == MANIFEST_KEY + ".bak"


def test_local_metadata_override(fake_s3, tmp_path, monkeypatch):
    manifest_dir = tmp_path / "manifest"
    specs_dir = tmp_path / "specs"
    manifest_dir.mkdir()
    spec_key = BASE_MANIFEST[0]["spec_key"]
    (specs_dir / spec_key).parent.mkdir(parents=True)
    (manifest_dir / MANIFEST_KEY).write_text(json.dumps(BASE_MANIFEST))
    (specs_dir / spec_key).write_text(json.dumps(_spec_for_key(spec_key)))
    monkeypatch.setenv("AWS_JUMPSTART_MANIFEST_LOCAL_ROOT_DIR_OVERRIDE", str(manifest_dir))
    monkeypatch.setenv("AWS_JUMPSTART_SPECS_LOCAL_ROOT_DIR_OVERRIDE", str(specs_dir))

    clock = FakeClock()
    cache = _cache(fake_s3, expiration_horizon=datetime.timedelta(hours=1), clock=clock)
    specs = cache.get_specs("pytorch-ic-mobilenet-v2", "1.0.0")
    assert specs.model_id == "pytorch-ic-mobilenet-v2"

    clock.advance(hours=2)
    cache.get_manifest()
    fake_s3.client.get_object.assert_not_called()
    fake_s3.client.head_object.assert_not_called()


def test_local_metadata_override_needs_both_directories(fake_s3, tmp_path, monkeypatch):
    monkeypatch.setenv("AWS_JUMPSTART_MANIFEST_LOCAL_ROOT_DIR_OVERRIDE", str(tmp_path))
    monkeypatch.delenv("AWS_JUMPSTART_SPECS_LOCAL_ROOT_DIR_OVERRIDE", raising=False)

    _cache(fake_s3).get_manifest()
    fake_s3.client.get_object.assert_called_once_with(Bucket=BUCKET, Key=MANIFEST_KEY)


@patch("sagemaker_common.jumpstart.accessors.JumpStartModelsAccessor.reset_cache")
def test_content_bucket_defaults_to_region_bucket(mock_reset_cache, fake_s3):
    cache = JumpStartModelsCache(region="us-east-1", s3_client=fake_s3.client)
    assert cache.s3_bucket_name == "jumpstart-cache-prod-us-east-1"
    mock_reset_cache.assert_called_once_with()
