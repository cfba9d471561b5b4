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
Errors raised while loading compatibility tables and answering queries.
"""
from typing import Optional


class CompatibilityError(Exception):
    """Base class for every mlcompat error."""


class VersionParseError(CompatibilityError, ValueError):
    """A version string could not be parsed."""

    def __init__(self, version: str, reason: str = ""):
        self.version = version
        message = f"Invalid version: {version!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class TableLoadError(CompatibilityError):
    """
    A compatibility table could not be decoded or normalized.

    Load errors are fatal: the tables are static build data, so a failure here
    means the data itself is broken.
    """

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"Failed to load {table} table: {message}")


class MalformedBaseImageTagError(TableLoadError):
    """A base image tag does not have the <cuda>-cudnn<cudnn>-<flavor>-ubuntu<ubuntu> shape."""

    def __init__(self, tag: str, reason: str = ""):
        self.tag = tag
        message = (
            "Tag must be in the format "
            "<cudaVersion>-cudnn<cudnnVersion>-{devel,runtime}-ubuntu<ubuntuVersion>. "
            f"Invalid tag: {tag}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__("CUDA base image", message)


class EmptyInputError(CompatibilityError, ValueError):
    """A "latest" helper was called with nothing to choose from."""


class NoMatchError(CompatibilityError, LookupError):
    """No table row matches the requested combination."""

    def __init__(
        self,
        message: str,
        framework: Optional[str] = None,
        version: Optional[str] = None,
        cuda: Optional[str] = None,
    ):
        self.framework = framework
        self.version = version
        self.cuda = cuda
        super().__init__(message)


class NoCompatibleCUDAError(NoMatchError):
    """A framework version has no GPU build for any CUDA version."""

    def __init__(self, framework: str, version: str):
        super().__init__(
            f"{framework}=={version} doesn't have any compatible CUDA versions",
            framework=framework,
            version=version,
        )


class NoMatchingBaseImageError(NoMatchError):
    """No base image carries the requested CUDA and cuDNN pair."""

    def __init__(self, cuda: str, cudnn: str):
        self.cudnn = cudnn
        super().__init__(
            f"No matching base image for CUDA {cuda} and CuDNN {cudnn}",
            cuda=cuda,
        )


class NoMatchingPackageError(NoMatchError):
    """No package row exists for the framework, version and CUDA combination."""

    def __init__(self, framework: str, version: str, cuda: Optional[str] = None):
        if cuda is None:
            message = f"No matching {framework} CPU package for version {version}"
        else:
            message = (
                f"No matching {framework} GPU package for version {version} and CUDA {cuda}"
            )
        super().__init__(message, framework=framework, version=version, cuda=cuda)


class IncompatibleCUDAError(NoMatchError):
    """A requested CUDA version is not supported by a pinned framework version."""

    def __init__(self, framework: str, version: str, cuda: str, supported):
        self.supported = list(supported)
        super().__init__(
            f"{framework}=={version} is not compatible with CUDA {cuda}; "
            f"compatible CUDA versions are: {', '.join(self.supported)}",
            framework=framework,
            version=version,
            cuda=cuda,
        )
