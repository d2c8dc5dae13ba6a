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
Persistence of the .build-source.json snapshot.
"""
import json
import os
from typing import Optional

from pydantic import ValidationError

from ..exceptions import ConfigurationError
from ..MODELS.build_config import BuildConfig
from ..MODELS.state_snapshot import StateSnapshot


class StateRecorder:
    """
    Reads and writes the snapshot used by the check and update drivers.
    """
    def __init__(self, state_file: str):
        self.state_file = state_file

    def write(self, config: BuildConfig, platform_dir: str) -> StateSnapshot:
        """
        Overwrites the snapshot after source resolution.

        :param config: Build configuration of this run.
        :param platform_dir: Resolved absolute source directory.
        :return: The snapshot written.
        """
        snapshot = StateSnapshot(
            repo=config.repo,
            path=config.path,
            ref=config.ref,
            registry_prefix=config.registry_prefix,
            platform_dir=platform_dir,
        )
        # json.dump escapes backslashes in Windows paths
        with open(self.state_file, "w") as f:
            json.dump(snapshot.model_dump(by_alias=True), f, indent=2)
            f.write("\n")
        return snapshot

    def exists(self) -> bool:
        return os.path.isfile(self.state_file)

    def read(self) -> Optional[StateSnapshot]:
        """
        Loads the snapshot.

        :return: The snapshot, or None if no build has recorded one.
        :raises ConfigurationError: If the file is not a valid snapshot.
        """
        if not self.exists():
            return None
        try:
            with open(self.state_file, "r") as f:
                data = json.load(f)
            return StateSnapshot.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Cannot read {self.state_file}: {e}") from e
