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
Resolution of a build configuration into a base image and pinned packages.
"""
import logging
from typing import List, Optional, Tuple

from ..exceptions import IncompatibleCUDAError
from ..MODELS.build_config import BuildConfig, ResolvedEnvironment, split_requirement
from ..MODELS.compatibility import PythonPackage
from ..RESOLVER.compatibility_resolver import CompatibilityResolver
from ..UTILS.settings import Settings

logger = logging.getLogger(__name__)

FRAMEWORK_PACKAGES = ("tensorflow", "torch", "torchvision")


class EnvironmentResolver:
    """
    Picks CUDA, cuDNN, the base image and framework package builds for a
    BuildConfig, using the compatibility tables behind a CompatibilityResolver.
    """

    def __init__(self, resolver: CompatibilityResolver, settings: Optional[Settings] = None):
        """
        :param resolver: Resolver over the loaded tables.
        :param settings: Settings; only python_repository is used here.
        """
        self.resolver = resolver
        self.settings = settings or Settings()

    def resolve(self, config: BuildConfig) -> ResolvedEnvironment:
        """
        Resolves a build configuration.

        :param config: The requested environment.
        :return: The resolved environment.
        :raises NoMatchError: If the combination cannot be satisfied.
        """
        tf_version = config.pinned_version("tensorflow")
        torch_version = config.pinned_version("torch")

        cuda: Optional[str] = None
        cudnn: Optional[str] = None
        if config.gpu:
            cuda, cudnn = self._resolve_cuda(config, tf_version, torch_version)
            base_image = self.resolver.cuda_base_image_for(cuda, cudnn)
        else:
            if config.cuda or config.cudnn:
                logger.warning("Ignoring cuda and cudnn settings since gpu is disabled")
            base_image = f"{self.settings.python_repository}:{config.python_version}"

        packages: List[PythonPackage] = []
        extra_requirements: List[str] = []
        for requirement in config.python_packages:
            name, version = split_requirement(requirement)
            if name in FRAMEWORK_PACKAGES and version:
                packages.append(self.resolver.package(name, version, cuda))
            else:
                extra_requirements.append(requirement)

        self._check_python(config.python_version, tf_version, torch_version)

        logger.info("Resolved base image %s", base_image)
        return ResolvedEnvironment(
            base_image=base_image,
            python_version=config.python_version,
            gpu=config.gpu,
            cuda=cuda,
            cudnn=cudnn,
            packages=packages,
            extra_requirements=extra_requirements,
        )

    def _resolve_cuda(
        self,
        config: BuildConfig,
        tf_version: Optional[str],
        torch_version: Optional[str],
    ) -> Tuple[str, str]:
        """
        Picks CUDA and cuDNN for a GPU build.

        CUDA: explicit value, else TensorFlow's, else the latest torch build's,
        else the default. cuDNN: explicit value, else TensorFlow's when CUDA
        agrees with it, else the latest base image cuDNN for that CUDA.
        """
        torch_cudas: List[str] = []
        if torch_version:
            torch_cudas = self.resolver.cudas_for_torch(torch_version)

        tf_cuda: Optional[str] = None
        tf_cudnn: Optional[str] = None
        if tf_version:
            tf_cuda, tf_cudnn = self.resolver.cuda_for_tf(tf_version)

        cuda = config.cuda
        if cuda:
            if tf_cuda and tf_cuda != cuda:
                logger.warning(
                    "tensorflow==%s is built for CUDA %s, but CUDA %s was requested",
                    tf_version, tf_cuda, cuda,
                )
        elif tf_cuda:
            cuda = tf_cuda
        elif torch_cudas:
            cuda = self.resolver.latest_cuda(torch_cudas)
        else:
            cuda = self.resolver.default_cuda()

        if torch_version and cuda not in torch_cudas:
            raise IncompatibleCUDAError("torch", torch_version, cuda, torch_cudas)

        cudnn = config.cudnn
        if cudnn:
            if tf_cudnn and tf_cuda == cuda and tf_cudnn != cudnn:
                logger.warning(
                    "tensorflow==%s is built for CuDNN %s, but CuDNN %s was requested",
                    tf_version, tf_cudnn, cudnn,
                )
        elif tf_cudnn and tf_cuda == cuda:
            cudnn = tf_cudnn
        else:
            cudnn = self.resolver.latest_cudnn_for_cuda(cuda)

        logger.info("Using CUDA %s and CuDNN %s", cuda, cudnn)
        return cuda, cudnn

    def _check_python(
        self,
        python_version: str,
        tf_version: Optional[str],
        torch_version: Optional[str],
    ) -> None:
        """Warns when a framework does not list the requested Python version."""
        checks = []
        if tf_version:
            checks.append(("tensorflow", tf_version, self.resolver.pythons_for_tf(tf_version)))
        if torch_version:
            checks.append(("torch", torch_version, self.resolver.pythons_for_torch(torch_version)))
        for framework, version, pythons in checks:
            if pythons and python_version not in pythons:
                logger.warning(
                    "%s==%s supports Python %s, but Python %s was requested",
                    framework, version, ", ".join(pythons), python_version,
                )
