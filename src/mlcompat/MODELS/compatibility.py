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
Models for rows of the TensorFlow, Torch and CUDA base image compatibility tables.
"""
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

DEFAULT_CUDA_REPOSITORY = "nvidia/cuda"


def bare_version(version: str) -> str:
    """Strip a local build suffix, e.g. '1.13.1+cu117' -> '1.13.1'."""
    return version.split("+", 1)[0]


class PythonPackage(BaseModel):
    """
    A pinned pip package, optionally served from a dedicated package index.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    index_url: Optional[str] = None

    @classmethod
    def from_requirement(cls, requirement: str, index_url: Optional[str] = None) -> "PythonPackage":
        """
        Parse a 'name==version' requirement.

        :raises ValueError: If the requirement is not pinned with '=='.
        """
        name, sep, version = requirement.partition("==")
        name, version = name.strip(), version.strip()
        if not sep or not name or not version:
            raise ValueError(f"Package must be pinned as <name>==<version>: {requirement!r}")
        return cls(name=name, version=version, index_url=index_url)

    @property
    def requirement(self) -> str:
        return f"{self.name}=={self.version}"


class TFEntry(BaseModel):
    """
    One row of the TensorFlow table.
    CUDA is always 'major.minor' and cuDNN 'major' after loading.
    """
    model_config = ConfigDict(frozen=True)

    tf: str
    tf_cpu_package: str
    tf_gpu_package: str
    cuda: str
    cudnn: str
    pythons: Tuple[str, ...] = ()

    @property
    def cpu_package(self) -> PythonPackage:
        return PythonPackage.from_requirement(self.tf_cpu_package)

    @property
    def gpu_package(self) -> PythonPackage:
        return PythonPackage.from_requirement(self.tf_gpu_package)


class TorchEntry(BaseModel):
    """
    One row of the Torch table. Rows without a CUDA version are CPU builds.

    Versions are kept verbatim (e.g. '2.0.1+cu118') since the suffixed value
    is what gets pinned; matching uses the bare accessors.
    """
    model_config = ConfigDict(frozen=True)

    torch: str
    torchvision: str
    torchaudio: str
    index_url: str
    cuda: Optional[str] = None
    pythons: Tuple[str, ...] = ()

    @property
    def torch_version(self) -> str:
        return bare_version(self.torch)

    @property
    def torchvision_version(self) -> str:
        return bare_version(self.torchvision)

    @property
    def is_gpu(self) -> bool:
        return self.cuda is not None


class CUDABaseImage(BaseModel):
    """
    A CUDA base image tag, decomposed.

    Example:
        11.8.0-cudnn8-devel-ubuntu22.04 -> cuda='11.8.0', cudnn='8', is_devel=True, ubuntu='22.04'
    """
    model_config = ConfigDict(frozen=True)

    tag: str
    cuda: str
    cudnn: str
    is_devel: bool
    ubuntu: str

    @property
    def flavor(self) -> str:
        return "devel" if self.is_devel else "runtime"

    def build_tag(self) -> str:
        """Render the tag from its decomposed fields."""
        return f"{self.cuda}-cudnn{self.cudnn}-{self.flavor}-ubuntu{self.ubuntu}"

    def image_reference(self, repository: str = DEFAULT_CUDA_REPOSITORY) -> str:
        """Get the fully-qualified image reference, e.g. 'nvidia/cuda:<tag>'."""
        return f"{repository}:{self.tag}"
