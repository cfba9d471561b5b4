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
Models for a requested build environment and its resolved coordinates.
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from .compatibility import PythonPackage


def split_requirement(requirement: str) -> Tuple[str, Optional[str]]:
    """
    Split 'name==version' into (name, version). Version is None when unpinned.
    Names are lowercased.
    """
    name, sep, version = requirement.partition("==")
    name = name.strip().lower()
    version = version.strip()
    if not sep or not version:
        return name, None
    return name, version


class BuildConfig(BaseModel):
    """
    A requested environment: Python version, GPU flag and pip packages.
    """
    gpu: bool = False
    python_version: str = "3.10"
    cuda: Optional[str] = None
    cudnn: Optional[str] = None
    python_packages: List[str] = Field(default_factory=list)

    def pinned_version(self, package: str) -> Optional[str]:
        """Get the pinned version of a package, or None if absent or unpinned."""
        for requirement in self.python_packages:
            name, version = split_requirement(requirement)
            if name == package.lower():
                return version
        return None


class ResolvedEnvironment(BaseModel):
    """
    Everything a builder needs: base image, CUDA/cuDNN and pinned packages.
    """
    base_image: str
    python_version: str
    gpu: bool
    cuda: Optional[str] = None
    cudnn: Optional[str] = None

    # Framework packages resolved against the tables
    packages: List[PythonPackage] = Field(default_factory=list)
    # Everything else, passed through verbatim
    extra_requirements: List[str] = Field(default_factory=list)

    @property
    def index_urls(self) -> List[str]:
        """Distinct package index URLs, in package order."""
        urls: List[str] = []
        for package in self.packages:
            if package.index_url and package.index_url not in urls:
                urls.append(package.index_url)
        return urls

    @property
    def requirements(self) -> List[str]:
        """All requirement lines, framework packages first."""
        return [package.requirement for package in self.packages] + list(self.extra_requirements)
