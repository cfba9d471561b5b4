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
The loaded set of compatibility tables.
"""
from typing import Tuple

from pydantic import BaseModel, ConfigDict

from .compatibility import CUDABaseImage, TFEntry, TorchEntry


class CompatibilityTables(BaseModel):
    """
    Immutable snapshot of the three compatibility tables.
    Built once by load_tables() and shared read-only by every resolver.
    """
    model_config = ConfigDict(frozen=True)

    tf: Tuple[TFEntry, ...] = ()
    torch: Tuple[TorchEntry, ...] = ()
    cuda_images: Tuple[CUDABaseImage, ...] = ()
