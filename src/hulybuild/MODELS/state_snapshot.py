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
Model of the .build-source.json snapshot.
"""
from pydantic import BaseModel, ConfigDict, Field


class StateSnapshot(BaseModel):
    """
    Source parameters of the last build, read back by check/update.
    """
    model_config = ConfigDict(populate_by_name=True)

    repo: str = ""
    path: str = ""
    ref: str = ""
    registry_prefix: str = Field(default="", alias="registryPrefix")
    platform_dir: str = Field(default="", alias="platformDir")

    @property
    def is_remote(self) -> bool:
        return bool(self.repo)
