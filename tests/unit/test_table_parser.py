# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unit tests for compatibility table loading.
"""
import json

import pytest

from mlcompat.exceptions import MalformedBaseImageTagError, TableLoadError
from mlcompat.MODELS.compatibility_tables import CompatibilityTables
from mlcompat.PARSERS.table_parser import (
    RawTFEntry,
    TableSources,
    load_default_tables,
    load_tables,
    normalize_tf_entry,
    parse_cuda_base_image,
)
from mlcompat.RESOLVER.compatibility_resolver import CompatibilityResolver
from mlcompat.UTILS.settings import Settings


class TestParseCUDABaseImage:
    """Tests for base image tag decomposition."""

    def test_decompose(self):
        image = parse_cuda_base_image("11.8.0-cudnn8-devel-ubuntu22.04")
        assert image.cuda == "11.8.0"
        assert image.cudnn == "8"
        assert image.is_devel is True
        assert image.ubuntu == "22.04"

    def test_runtime(self):
        image = parse_cuda_base_image("11.2-cudnn8-runtime-ubuntu20.04")
        assert image.is_devel is False
        assert image.flavor == "runtime"

    def test_round_trip(self):
        tag = "11.8.0-cudnn8-devel-ubuntu22.04"
        assert parse_cuda_base_image(tag).build_tag() == tag

    def test_image_reference(self):
        image = parse_cuda_base_image("11.8-cudnn8-devel-ubuntu22.04")
        assert image.image_reference() == "nvidia/cuda:11.8-cudnn8-devel-ubuntu22.04"
        assert image.image_reference("registry.local/cuda") == (
            "registry.local/cuda:11.8-cudnn8-devel-ubuntu22.04"
        )

    def test_three_segments_rejected(self):
        with pytest.raises(MalformedBaseImageTagError) as excinfo:
            parse_cuda_base_image("11.8.0-cudnn8-ubuntu22.04")
        assert "11.8.0-cudnn8-ubuntu22.04" in str(excinfo.value)

    @pytest.mark.parametrize("tag", [
        "11.8.0-cudnn8-devel-ubuntu22.04-extra",
        "11.8.0-cuda8-devel-ubuntu22.04",
        "11.8.0-cudnn8-base-ubuntu22.04",
        "11.8.0-cudnn8-devel-centos7",
        "11.8.0-cudnn-devel-ubuntu22.04",
        "",
    ])
    def test_malformed_rejected(self, tag):
        with pytest.raises(MalformedBaseImageTagError):
            parse_cuda_base_image(tag)

    def test_malformed_is_load_error(self):
        with pytest.raises(TableLoadError):
            parse_cuda_base_image("bad")


class TestNormalizeTFEntry:
    """Tests for the TensorFlow normalization pass."""

    def make_raw(self, **overrides):
        data = {
            "TF": "2.10.0",
            "TFCPUPackage": "tensorflow==2.10.0",
            "TFGPUPackage": "tensorflow==2.10.0",
            "CUDA": "11.2.1",
            "CuDNN": "8.1.0",
            "Pythons": ["3.10"],
        }
        data.update(overrides)
        return RawTFEntry.model_validate(data)

    def test_cuda_truncated_to_major_minor(self):
        assert normalize_tf_entry(self.make_raw()).cuda == "11.2"

    def test_cudnn_truncated_to_major(self):
        assert normalize_tf_entry(self.make_raw()).cudnn == "8"

    def test_short_cuda_gets_minor(self):
        assert normalize_tf_entry(self.make_raw(CUDA="11")).cuda == "11.0"

    def test_fields_kept(self):
        entry = normalize_tf_entry(self.make_raw())
        assert entry.tf == "2.10.0"
        assert entry.tf_gpu_package == "tensorflow==2.10.0"
        assert entry.pythons == ("3.10",)

    def test_invalid_cuda_fails(self):
        with pytest.raises(TableLoadError) as excinfo:
            normalize_tf_entry(self.make_raw(CUDA="eleven"))
        assert "tensorflow==2.10.0" in str(excinfo.value)

    def test_invalid_cudnn_fails(self):
        with pytest.raises(TableLoadError):
            normalize_tf_entry(self.make_raw(CuDNN=""))

    def test_unpinned_package_fails(self):
        with pytest.raises(TableLoadError):
            normalize_tf_entry(self.make_raw(TFGPUPackage="tensorflow-gpu"))


class TestLoadTables:
    """Tests for load_tables."""

    def test_load(self, tables):
        assert isinstance(tables, CompatibilityTables)
        assert len(tables.tf) == 4
        assert len(tables.torch) == 4
        assert len(tables.cuda_images) == 8

    def test_table_order_kept(self, tables):
        assert [entry.tf for entry in tables.tf] == ["2.9.0", "2.10.0", "2.4.0", "1.15.0"]

    def test_torch_versions_verbatim(self, tables):
        entry = tables.torch[0]
        assert entry.torch == "2.0.1+cu117"
        assert entry.torch_version == "2.0.1"
        assert entry.torchvision_version == "0.15.2"
        assert entry.cuda == "11.7"

    def test_torch_cpu_row(self, tables):
        entry = tables.torch[2]
        assert entry.cuda is None
        assert entry.is_gpu is False

    def test_tables_are_immutable(self, tables):
        with pytest.raises(Exception):
            tables.tf[0].cuda = "12.0"
        assert isinstance(tables.tf, tuple)

    def test_empty_tables_allowed(self, make_sources):
        tables = load_tables(make_sources(tf=[], torch=[], cuda_images=[]))
        assert tables.tf == ()

    def test_invalid_json(self):
        sources = TableSources(tf="[", torch="[]", cuda_images="[]")
        with pytest.raises(TableLoadError) as excinfo:
            load_tables(sources)
        assert excinfo.value.table == "TensorFlow"

    def test_missing_field(self, make_sources):
        with pytest.raises(TableLoadError) as excinfo:
            load_tables(make_sources(torch=[{"Torch": "2.0.1"}]))
        assert excinfo.value.table == "PyTorch"

    def test_malformed_tag_fails_whole_load(self, make_sources):
        with pytest.raises(MalformedBaseImageTagError):
            load_tables(make_sources(cuda_images=["11.8-cudnn8-devel-ubuntu22.04", "11.8-cudnn8"]))

    def test_image_table_must_be_strings(self, make_sources):
        with pytest.raises(TableLoadError):
            load_tables(make_sources(cuda_images=[{"tag": "11.8-cudnn8-devel-ubuntu22.04"}]))


class TestTableSources:
    """Tests for the TableSources constructors."""

    def test_from_directory(self, tables_dir):
        tables = load_tables(TableSources.from_directory(tables_dir))
        assert len(tables.tf) == 4

    def test_from_directory_missing_file(self, tmp_path):
        with pytest.raises(TableLoadError):
            TableSources.from_directory(tmp_path)

    def test_embedded(self):
        tables = load_tables(TableSources.embedded())
        assert tables.tf
        assert tables.torch
        assert tables.cuda_images
        for entry in tables.tf:
            assert entry.cudnn.isdigit()

    def test_load_default_prefers_directory(self, tables_dir):
        tables = load_default_tables(Settings(tables_dir=str(tables_dir)))
        assert [entry.tf for entry in tables.tf][0] == "2.9.0"

    def test_load_default_embedded(self):
        assert load_default_tables(Settings()).tf

    def test_sources_accept_bytes(self, tables_dir):
        sources = TableSources(
            tf=(tables_dir / "tf_compatibility_matrix.json").read_bytes(),
            torch=json.dumps([]).encode(),
            cuda_images=b"[]",
        )
        assert len(load_tables(sources).tf) == 4


class TestLoadFailures:
    """Every way a table can be broken surfaces as TableLoadError."""

    def test_undecodable_bytes(self):
        sources = TableSources(tf=b"\xff\xfe[\x80]", torch=b"[]", cuda_images=b"[]")
        with pytest.raises(TableLoadError) as excinfo:
            load_tables(sources)
        assert excinfo.value.table == "TensorFlow"
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_undecodable_file(self, tables_dir):
        (tables_dir / "torch_compatibility_matrix.json").write_bytes(b"\xff\xfe\x00\xd8")
        with pytest.raises(TableLoadError):
            load_tables(TableSources.from_directory(tables_dir))

    def test_embedded_data_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr(
            "mlcompat.PARSERS.table_parser.resources.files", lambda package: tmp_path
        )
        with pytest.raises(TableLoadError):
            TableSources.embedded()

    def test_load_default_reads_environment(self, tables_dir, monkeypatch):
        monkeypatch.setenv("MLCOMPAT_TABLES_DIR", str(tables_dir))
        tables = load_default_tables()
        assert [entry.tf for entry in tables.tf] == ["2.9.0", "2.10.0", "2.4.0", "1.15.0"]


class TestEmbeddedData:
    """The shipped tables join up: every GPU build has a base image."""

    @pytest.fixture
    def embedded_resolver(self):
        return CompatibilityResolver(load_tables(TableSources.embedded()))

    def test_every_tensorflow_build_has_base_image(self, embedded_resolver):
        for entry in embedded_resolver.tables.tf:
            assert embedded_resolver.cuda_base_image_for(entry.cuda, entry.cudnn)

    def test_every_torch_build_has_base_image(self, embedded_resolver):
        for entry in embedded_resolver.tables.torch:
            if entry.is_gpu:
                cudnn = embedded_resolver.latest_cudnn_for_cuda(entry.cuda)
                assert embedded_resolver.cuda_base_image_for(entry.cuda, cudnn)

    def test_image_cuda_matches_table_granularity(self, embedded_resolver):
        for image in embedded_resolver.tables.cuda_images:
            assert image.cuda.count(".") == 1
