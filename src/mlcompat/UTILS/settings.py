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
Runtime settings read from the environment and an optional .env file.
"""
import logging
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for table loading and image resolution.

    Environment variables:
        MLCOMPAT_TABLES_DIR: directory holding the three table JSON files
        MLCOMPAT_CUDA_REPOSITORY: repository of CUDA base images
        MLCOMPAT_PYTHON_REPOSITORY: repository of CPU-only Python base images
        MLCOMPAT_LOG_LEVEL: logging level name
    """
    tables_dir: Optional[str] = None
    cuda_repository: str = "nvidia/cuda"
    python_repository: str = "python"
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="MLCOMPAT_",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from a .env file overlaid by the process environment.

        :param env_file: Optional path to a .env file.
        :raises pydantic.ValidationError: If a value is invalid.
        """
        return cls(_env_file=env_file)
