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
Compatibility queries over the loaded tables.

Every query is a linear scan: the tables hold tens of rows and their order
only matters for tie-breaking, where the first row wins.
"""
from typing import Iterable, List, Optional, Tuple

from ..exceptions import (
    EmptyInputError,
    NoCompatibleCUDAError,
    NoMatchError,
    NoMatchingBaseImageError,
    NoMatchingPackageError,
)
from ..MODELS.compatibility import DEFAULT_CUDA_REPOSITORY, PythonPackage, TFEntry
from ..MODELS.compatibility_tables import CompatibilityTables
from ..UTILS.version import Version, latest_version


class CompatibilityResolver:
    """
    Answers "which CUDA, cuDNN, base image and packages go with this framework
    version" from a CompatibilityTables snapshot. Holds no mutable state.
    """

    def __init__(
        self,
        tables: CompatibilityTables,
        base_image_repository: str = DEFAULT_CUDA_REPOSITORY,
    ):
        """
        :param tables: Loaded compatibility tables.
        :param base_image_repository: Repository prefixed to CUDA base image tags.
        """
        self.tables = tables
        self.base_image_repository = base_image_repository

    # CUDA / cuDNN

    def cudas_for_torch(self, version: str) -> List[str]:
        """
        CUDA versions of every GPU build of torch==version.

        :raises NoCompatibleCUDAError: If torch==version has no GPU build.
        """
        cudas = [
            entry.cuda
            for entry in self.tables.torch
            if entry.torch_version == version and entry.cuda is not None
        ]
        if not cudas:
            raise NoCompatibleCUDAError("torch", version)
        return cudas

    def cuda_for_tf(self, version: str) -> Tuple[str, str]:
        """
        The (CUDA, cuDNN) pair tensorflow==version was built against.

        :raises NoMatchError: If the version is not in the table.
        """
        for entry in self.tables.tf:
            if entry.tf == version:
                return entry.cuda, entry.cudnn
        raise NoMatchError(
            f"tensorflow=={version} doesn't have any compatible CUDA versions",
            framework="tensorflow",
            version=version,
        )

    def cudnns_for_cuda(self, cuda: str) -> List[str]:
        """cuDNN versions available in base images for a CUDA version. May be empty."""
        return [image.cudnn for image in self.tables.cuda_images if image.cuda == cuda]

    def latest_cuda(self, cudas: Iterable[str]) -> str:
        """
        The greatest CUDA version of cudas.

        :raises EmptyInputError: If cudas is empty.
        """
        return latest_version(cudas)

    def latest_cudnn_for_cuda(self, cuda: str) -> str:
        """
        The greatest cuDNN version among base images for a CUDA version.

        :raises NoMatchError: If no base image has that CUDA version.
        """
        cudnns = self.cudnns_for_cuda(cuda)
        if not cudnns:
            raise NoMatchError(f"No CUDA base image for CUDA {cuda}", cuda=cuda)
        return latest_version(cudnns)

    def default_cuda(self) -> str:
        """CUDA version of the latest TensorFlow release."""
        return self.latest_tf().cuda

    # TensorFlow

    def latest_tf(self) -> TFEntry:
        """
        The TensorFlow entry with the greatest version. The first row wins on ties.

        :raises EmptyInputError: If the TensorFlow table is empty.
        """
        latest = None
        latest_parsed = None
        for entry in self.tables.tf:
            parsed = Version.parse(entry.tf)
            if latest is None or parsed.greater(latest_parsed):
                latest = entry
                latest_parsed = parsed
        if latest is None:
            raise EmptyInputError("The TensorFlow compatibility table is empty")
        return latest

    def pythons_for_tf(self, version: str) -> List[str]:
        """
        Python versions supported by tensorflow==version.

        :raises NoMatchError: If the version is not in the table.
        """
        for entry in self.tables.tf:
            if entry.tf == version:
                return list(entry.pythons)
        raise NoMatchError(
            f"tensorflow=={version} is not in the compatibility table",
            framework="tensorflow",
            version=version,
        )

    def pythons_for_torch(self, version: str) -> List[str]:
        """
        Python versions supported by any build of torch==version.

        :raises NoMatchError: If the version is not in the table.
        """
        pythons: List[str] = []
        found = False
        for entry in self.tables.torch:
            if entry.torch_version == version:
                found = True
                pythons.extend(p for p in entry.pythons if p not in pythons)
        if not found:
            raise NoMatchError(
                f"torch=={version} is not in the compatibility table",
                framework="torch",
                version=version,
            )
        return pythons

    # Base images

    def cuda_base_image_for(self, cuda: str, cudnn: str) -> str:
        """
        Fully-qualified base image for an exact (CUDA, cuDNN) pair.

        :raises NoMatchingBaseImageError: If no base image has both versions.
        """
        for image in self.tables.cuda_images:
            if image.cuda == cuda and image.cudnn == cudnn:
                return image.image_reference(self.base_image_repository)
        raise NoMatchingBaseImageError(cuda, cudnn)

    # Packages

    def tf_cpu_package(self, version: str) -> PythonPackage:
        """:raises NoMatchingPackageError: If tensorflow==version is unknown."""
        for entry in self.tables.tf:
            if entry.tf == version:
                return entry.cpu_package
        raise NoMatchingPackageError("tensorflow", version)

    def tf_gpu_package(self, version: str, cuda: str) -> PythonPackage:
        """:raises NoMatchingPackageError: If no row has this TensorFlow and CUDA version."""
        for entry in self.tables.tf:
            if entry.tf == version and entry.cuda == cuda:
                return entry.gpu_package
        raise NoMatchingPackageError("tensorflow", version, cuda)

    def torch_cpu_package(self, version: str) -> PythonPackage:
        """:raises NoMatchingPackageError: If torch==version has no CPU build."""
        for entry in self.tables.torch:
            if entry.torch_version == version and entry.cuda is None:
                return PythonPackage(name="torch", version=entry.torch, index_url=entry.index_url)
        raise NoMatchingPackageError("torch", version)

    def torch_gpu_package(self, version: str, cuda: str) -> PythonPackage:
        """:raises NoMatchingPackageError: If torch==version has no build for cuda."""
        for entry in self.tables.torch:
            if entry.torch_version == version and entry.is_gpu and entry.cuda == cuda:
                return PythonPackage(name="torch", version=entry.torch, index_url=entry.index_url)
        raise NoMatchingPackageError("torch", version, cuda)

    def torchvision_cpu_package(self, version: str) -> PythonPackage:
        """:raises NoMatchingPackageError: If torchvision==version has no CPU build."""
        for entry in self.tables.torch:
            if entry.torchvision_version == version and entry.cuda is None:
                return PythonPackage(
                    name="torchvision", version=entry.torchvision, index_url=entry.index_url
                )
        raise NoMatchingPackageError("torchvision", version)

    def torchvision_gpu_package(self, version: str, cuda: str) -> PythonPackage:
        """:raises NoMatchingPackageError: If torchvision==version has no build for cuda."""
        for entry in self.tables.torch:
            if entry.torchvision_version == version and entry.is_gpu and entry.cuda == cuda:
                return PythonPackage(
                    name="torchvision", version=entry.torchvision, index_url=entry.index_url
                )
        raise NoMatchingPackageError("torchvision", version, cuda)

    def package(self, framework: str, version: str, cuda: Optional[str] = None) -> PythonPackage:
        """
        Resolve a framework package, CPU build when cuda is None.

        :param framework: 'tensorflow', 'torch' or 'torchvision'.
        :raises ValueError: For an unknown framework.
        :raises NoMatchingPackageError: If no row matches.
        """
        lookups = {
            "tensorflow": (self.tf_cpu_package, self.tf_gpu_package),
            "torch": (self.torch_cpu_package, self.torch_gpu_package),
            "torchvision": (self.torchvision_cpu_package, self.torchvision_gpu_package),
        }
        if framework not in lookups:
            raise ValueError(
                f"Unknown framework {framework!r}, expected one of: {', '.join(lookups)}"
            )
        cpu_lookup, gpu_lookup = lookups[framework]
        if cuda is None:
            return cpu_lookup(version)
        return gpu_lookup(version, cuda)
