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
Loading of the TensorFlow, Torch and CUDA base image compatibility tables.

Loading happens in two steps: the JSON documents are decoded into raw rows,
then a normalization pass turns raw rows into table entries. Any failure in
either step raises TableLoadError; callers must not run with partial tables.
"""
import json
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..exceptions import MalformedBaseImageTagError, TableLoadError
from ..MODELS.compatibility import CUDABaseImage, PythonPackage, TFEntry, TorchEntry
from ..MODELS.compatibility_tables import CompatibilityTables
from ..UTILS.settings import Settings
from ..UTILS.version import Version

logger = logging.getLogger(__name__)

TF_TABLE = "TensorFlow"
TORCH_TABLE = "PyTorch"
CUDA_IMAGES_TABLE = "CUDA base image"

TF_TABLE_FILE = "tf_compatibility_matrix.json"
TORCH_TABLE_FILE = "torch_compatibility_matrix.json"
CUDA_IMAGES_TABLE_FILE = "cuda_base_image_tags.json"


class RawTFEntry(BaseModel):
    """A TensorFlow table row exactly as it appears in the JSON document."""
    tf: str = Field(alias="TF")
    tf_cpu_package: str = Field(alias="TFCPUPackage")
    tf_gpu_package: str = Field(alias="TFGPUPackage")
    cuda: str = Field(alias="CUDA")
    cudnn: str = Field(alias="CuDNN")
    pythons: List[str] = Field(default_factory=list, alias="Pythons")


class RawTorchEntry(BaseModel):
    """A Torch table row exactly as it appears in the JSON document."""
    torch: str = Field(alias="Torch")
    torchvision: str = Field(alias="Torchvision")
    torchaudio: str = Field(alias="Torchaudio")
    index_url: str = Field(alias="IndexURL")
    cuda: Optional[str] = Field(default=None, alias="CUDA")
    pythons: List[str] = Field(default_factory=list, alias="Pythons")


_TF_ROWS = TypeAdapter(List[RawTFEntry])
_TORCH_ROWS = TypeAdapter(List[RawTorchEntry])
_CUDA_IMAGE_ROWS = TypeAdapter(List[str])


@dataclass(frozen=True)
class TableSources:
    """
    The three raw JSON documents the tables are loaded from.
    """
    tf: Union[str, bytes]
    torch: Union[str, bytes]
    cuda_images: Union[str, bytes]

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "TableSources":
        """
        Read the table documents from a directory.

        :param path: Directory holding the three JSON files.
        :raises TableLoadError: If a file cannot be read.
        """
        directory = Path(path)
        return cls(
            tf=_read_table_file(TF_TABLE, directory / TF_TABLE_FILE),
            torch=_read_table_file(TORCH_TABLE, directory / TORCH_TABLE_FILE),
            cuda_images=_read_table_file(CUDA_IMAGES_TABLE, directory / CUDA_IMAGES_TABLE_FILE),
        )

    @classmethod
    def embedded(cls) -> "TableSources":
        """
        Read the table documents shipped with the package.

        :raises TableLoadError: If the package data is missing.
        """
        data = resources.files("mlcompat") / "DATA"
        return cls(
            tf=_read_table_file(TF_TABLE, data / TF_TABLE_FILE),
            torch=_read_table_file(TORCH_TABLE, data / TORCH_TABLE_FILE),
            cuda_images=_read_table_file(CUDA_IMAGES_TABLE, data / CUDA_IMAGES_TABLE_FILE),
        )


def _read_table_file(table: str, path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TableLoadError(table, f"cannot read {path}: {e}") from e


def _decode(table: str, document: Union[str, bytes], adapter: TypeAdapter) -> List[Any]:
    """Decode a JSON document into raw rows."""
    # JSONDecodeError and UnicodeDecodeError are both ValueErrors
    try:
        data = json.loads(document)
    except ValueError as e:
        raise TableLoadError(table, f"invalid JSON: {e}") from e
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise TableLoadError(table, str(e)) from e


def normalize_tf_entry(raw: RawTFEntry) -> TFEntry:
    """
    Turn a raw TensorFlow row into a TFEntry.

    CUDA is reduced to 'major.minor' and cuDNN to 'major', the granularity
    CUDA base image tags carry.

    :raises TableLoadError: If CUDA or cuDNN is unparseable or a package is not pinned.
    """
    try:
        cuda = Version.parse(raw.cuda)
        cudnn = Version.parse(raw.cudnn)
        PythonPackage.from_requirement(raw.tf_cpu_package)
        PythonPackage.from_requirement(raw.tf_gpu_package)
    except ValueError as e:
        raise TableLoadError(TF_TABLE, f"tensorflow=={raw.tf}: {e}") from e

    return TFEntry(
        tf=raw.tf,
        tf_cpu_package=raw.tf_cpu_package,
        tf_gpu_package=raw.tf_gpu_package,
        cuda=f"{cuda.major}.{cuda.minor}",
        cudnn=str(cudnn.major),
        pythons=tuple(raw.pythons),
    )


def normalize_torch_entry(raw: RawTorchEntry) -> TorchEntry:
    """Turn a raw Torch row into a TorchEntry. Versions stay verbatim."""
    return TorchEntry(
        torch=raw.torch,
        torchvision=raw.torchvision,
        torchaudio=raw.torchaudio,
        index_url=raw.index_url,
        cuda=raw.cuda,
        pythons=tuple(raw.pythons),
    )


def parse_cuda_base_image(tag: str) -> CUDABaseImage:
    """
    Decompose a base image tag such as '11.8.0-cudnn8-devel-ubuntu22.04'.

    :raises MalformedBaseImageTagError: If the tag does not have exactly four
        dash-separated segments of the expected shape.
    """
    parts = tag.split("-")
    if len(parts) != 4:
        raise MalformedBaseImageTagError(tag, f"expected 4 segments, got {len(parts)}")

    cuda, cudnn_part, flavor, ubuntu_part = parts
    if not cudnn_part.startswith("cudnn"):
        raise MalformedBaseImageTagError(tag, "second segment must start with 'cudnn'")
    if flavor not in ("devel", "runtime"):
        raise MalformedBaseImageTagError(tag, "third segment must be 'devel' or 'runtime'")
    if not ubuntu_part.startswith("ubuntu"):
        raise MalformedBaseImageTagError(tag, "fourth segment must start with 'ubuntu'")

    cudnn = cudnn_part[len("cudnn"):]
    ubuntu = ubuntu_part[len("ubuntu"):]
    if not cuda or not cudnn or not ubuntu:
        raise MalformedBaseImageTagError(tag, "empty version")

    return CUDABaseImage(
        tag=tag,
        cuda=cuda,
        cudnn=cudnn,
        is_devel=flavor == "devel",
        ubuntu=ubuntu,
    )


def load_tables(sources: TableSources) -> CompatibilityTables:
    """
    Decode and normalize all three tables.

    :param sources: The raw JSON documents.
    :return: The loaded, immutable tables.
    :raises TableLoadError: On any malformed document or row.
    """
    tf = tuple(normalize_tf_entry(row) for row in _decode(TF_TABLE, sources.tf, _TF_ROWS))
    torch = tuple(
        normalize_torch_entry(row) for row in _decode(TORCH_TABLE, sources.torch, _TORCH_ROWS)
    )
    cuda_images = tuple(
        parse_cuda_base_image(tag)
        for tag in _decode(CUDA_IMAGES_TABLE, sources.cuda_images, _CUDA_IMAGE_ROWS)
    )
    logger.debug(
        "Loaded compatibility tables: %d TensorFlow, %d PyTorch, %d CUDA base images",
        len(tf), len(torch), len(cuda_images),
    )
    return CompatibilityTables(tf=tf, torch=torch, cuda_images=cuda_images)


def load_default_tables(settings: Optional[Settings] = None) -> CompatibilityTables:
    """
    Load tables from settings.tables_dir if set, otherwise from the embedded data.
    """
    settings = settings or Settings.from_env()
    if settings.tables_dir:
        logger.debug("Loading compatibility tables from %s", settings.tables_dir)
        return load_tables(TableSources.from_directory(settings.tables_dir))
    return load_tables(TableSources.embedded())
