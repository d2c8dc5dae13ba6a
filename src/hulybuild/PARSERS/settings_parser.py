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
Parser for the optional hulybuild.yaml toolchain settings file.
"""
import os
import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from ..MODELS.build_config import ToolchainSettings

SETTINGS_FILE = "hulybuild.yaml"


class SettingsParser:
    """
    Loads ToolchainSettings from YAML.
    """
    def parse(self, settings_path: str) -> ToolchainSettings:
        """
        Parses a settings file from a path.

        :param settings_path: Path to the YAML file.
        :return: Validated settings.
        """
        with open(settings_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content, source=settings_path)

    def parse_from_string(self, content: str, source: str = "<string>") -> ToolchainSettings:
        """
        Parses settings from YAML text.

        :param content: YAML content.
        :param source: Name used in error messages.
        :return: Validated settings.
        :raises ConfigurationError: If the YAML or its values are invalid.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {source}: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{source} must contain a mapping")

        # `compose: docker compose` is accepted as well as a list
        if isinstance(data.get('compose'), str):
            data['compose'] = data['compose'].split()

        try:
            return ToolchainSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings in {source}: {e}") from e

    def load(self, root_dir: str) -> ToolchainSettings:
        """
        Loads settings from root_dir/hulybuild.yaml, or defaults if absent.
        """
        path = os.path.join(root_dir, SETTINGS_FILE)
        if os.path.exists(path):
            return self.parse(path)
        return ToolchainSettings()
