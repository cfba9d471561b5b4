"""
Shared fixtures: a small, hand-written set of compatibility tables.
"""
import json

import pytest

from mlcompat.PARSERS.table_parser import TableSources, load_tables
from mlcompat.RESOLVER.compatibility_resolver import CompatibilityResolver

TF_ROWS = [
    {
        "TF": "2.9.0",
        "TFCPUPackage": "tensorflow==2.9.0",
        "TFGPUPackage": "tensorflow==2.9.0",
        "CUDA": "11.2",
        "CuDNN": "8.1",
        "Pythons": ["3.7", "3.8", "3.9", "3.10"],
    },
    {
        "TF": "2.10.0",
        "TFCPUPackage": "tensorflow==2.10.0",
        "TFGPUPackage": "tensorflow==2.10.0",
        "CUDA": "11.2.1",
        "CuDNN": "8.1.0.77",
        "Pythons": ["3.7", "3.8", "3.9", "3.10"],
    },
    {
        "TF": "2.4.0",
        "TFCPUPackage": "tensorflow==2.4.0",
        "TFGPUPackage": "tensorflow==2.4.0",
        "CUDA": "11.0",
        "CuDNN": "8.0",
        "Pythons": ["3.6", "3.7", "3.8"],
    },
    {
        "TF": "1.15.0",
        "TFCPUPackage": "tensorflow==1.15.0",
        "TFGPUPackage": "tensorflow-gpu==1.15.0",
        "CUDA": "10.0",
        "CuDNN": "7.4",
        "Pythons": ["3.5", "3.6", "3.7"],
    },
]

TORCH_ROWS = [
    {
        "Torch": "2.0.1+cu117",
        "Torchvision": "0.15.2+cu117",
        "Torchaudio": "2.0.2+cu117",
        "IndexURL": "https://download.pytorch.org/whl/cu117",
        "CUDA": "11.7",
        "Pythons": ["3.8", "3.9", "3.10", "3.11"],
    },
    {
        "Torch": "2.0.1+cu118",
        "Torchvision": "0.15.2+cu118",
        "Torchaudio": "2.0.2+cu118",
        "IndexURL": "https://download.pytorch.org/whl/cu118",
        "CUDA": "11.8",
        "Pythons": ["3.8", "3.9", "3.10", "3.11"],
    },
    {
        "Torch": "2.0.1+cpu",
        "Torchvision": "0.15.2+cpu",
        "Torchaudio": "2.0.2+cpu",
        "IndexURL": "https://download.pytorch.org/whl/cpu",
        "CUDA": None,
        "Pythons": ["3.8", "3.9", "3.10", "3.11"],
    },
    {
        "Torch": "1.13.1+cu117",
        "Torchvision": "0.14.1+cu117",
        "Torchaudio": "0.13.1+cu117",
        "IndexURL": "https://download.pytorch.org/whl/cu117",
        "CUDA": "11.7",
        "Pythons": ["3.7", "3.8", "3.9", "3.10"],
    },
]

CUDA_IMAGES = [
    "11.8-cudnn8-devel-ubuntu22.04",
    "11.8-cudnn8-runtime-ubuntu22.04",
    "11.7-cudnn8-devel-ubuntu22.04",
    "11.2-cudnn8-devel-ubuntu20.04",
    "11.0-cudnn8-devel-ubuntu18.04",
    "10.2-cudnn7-devel-ubuntu18.04",
    "10.2-cudnn8-devel-ubuntu18.04",
    "10.0-cudnn7-devel-ubuntu18.04",
]


@pytest.fixture
def make_sources():
    """Factory for TableSources, defaulting to the rows above."""
    def _make(tf=None, torch=None, cuda_images=None):
        return TableSources(
            tf=json.dumps(TF_ROWS if tf is None else tf),
            torch=json.dumps(TORCH_ROWS if torch is None else torch),
            cuda_images=json.dumps(CUDA_IMAGES if cuda_images is None else cuda_images),
        )
    return _make


@pytest.fixture
def tables(make_sources):
    return load_tables(make_sources())


@pytest.fixture
def resolver(tables):
    return CompatibilityResolver(tables)


@pytest.fixture
def tables_dir(tmp_path):
    """A directory holding the fixture tables as JSON files."""
    (tmp_path / "tf_compatibility_matrix.json").write_text(json.dumps(TF_ROWS))
    (tmp_path / "torch_compatibility_matrix.json").write_text(json.dumps(TORCH_ROWS))
    (tmp_path / "cuda_base_image_tags.json").write_text(json.dumps(CUDA_IMAGES))
    return tmp_path
