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
Writer for the .images.conf override file.
"""
from ..PARSERS.env_parser import EnvParser


class OverrideWriter:
    """
    Maintains IMAGE_<SERVICE>=<tag> lines for successfully built services.
    """
    def __init__(self, images_file: str):
        """
        :param images_file: Path of the override file.
        """
        self.images_file = images_file

    def reset(self):
        """Truncates the file at the start of a run."""
        with open(self.images_file, "w"):
            pass

    def record(self, env_key: str, tag: str):
        """
        Appends one override line.

        :param env_key: Variable name, e.g. IMAGE_FRONT.
        :param tag: Image reference.
        """
        line = EnvParser.format_line(env_key, tag)
        with open(self.images_file, "a") as f:
            f.write(line + "\n")
