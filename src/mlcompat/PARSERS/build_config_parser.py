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
Parser for YAML build configuration files.

Example:
    build:
      gpu: true
      python_version: "3.10"
      cuda: "11.8"
      python_packages:
        - torch==2.0.1
        - numpy==1.24.3
"""
from typing import Any, Dict, List

import yaml

from ..MODELS.build_config import BuildConfig

VERSION_FIELDS = ("python_version", "cuda", "cudnn")


class BuildConfigParser:
    """
    Parser for build configuration files.
    """

    def parse(self, config_path: str) -> BuildConfig:
        """
        Parses a build configuration from a path.

        :param config_path: Path to the YAML file.
        :return: Parsed configuration.
        """
        with open(config_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> BuildConfig:
        """
        Parses a build configuration from a string.

        :param content: YAML content.
        :return: Parsed configuration.
        :raises ValueError: If the document is not a mapping or a field has the wrong type.
        """
        data = yaml.safe_load(content)
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Build configuration must be a mapping")

        build = data.get('build') or {}
        if not isinstance(build, dict):
            raise ValueError("'build' must be a mapping")

        for field in VERSION_FIELDS:
            value = build.get(field)
            # YAML reads 3.10 as the float 3.1
            if value is not None and not isinstance(value, str):
                raise ValueError(f"'{field}' must be a quoted string, got {value!r}")

        spec: Dict[str, Any] = {
            field: build[field]
            for field in ('gpu',) + VERSION_FIELDS
            if build.get(field) is not None
        }
        spec['python_packages'] = self._to_list(build.get('python_packages'))
        return BuildConfig(**spec)

    def _to_list(self, val: Any) -> List[str]:
        """
        Helper to ensure a value is a list of strings.

        :param val: The value to convert.
        :return: A list of strings.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]
