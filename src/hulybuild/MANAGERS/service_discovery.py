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
Discovery of each service's build context inside a platform checkout.

`discover_context` is pure: it works on a precomputed list of directories
holding a Dockerfile, which `scan_recipe_dirs` produces from the filesystem.
"""
import os
import re
from typing import Iterable, List, Optional

from ..MODELS.artifacts import RECIPE_NAME
from ..MODELS.service_spec import ServiceSpec
from ..UTILS.fs import walk_dirs


def scan_recipe_dirs(source_root: str) -> List[str]:
    """
    Lists every directory under source_root containing a Dockerfile.

    :param source_root: Checkout root.
    :return: Sorted paths relative to source_root, '/'-separated ('.' for the root).
    """
    found = []
    for dirpath in walk_dirs(source_root):
        if os.path.isfile(os.path.join(dirpath, RECIPE_NAME)):
            found.append(os.path.relpath(dirpath, source_root).replace(os.sep, "/"))
    return sorted(set(found))


def discover_context(spec: ServiceSpec,
                     recipe_dirs: Iterable[str],
                     preset_available: bool = False) -> Optional[str]:
    """
    Picks the build context for a service.

    :param spec: The service.
    :param recipe_dirs: Relative directories that contain a Dockerfile.
    :param preset_available: Whether the preset path has a Dockerfile.
    :return: Relative context directory, or None when nothing matches.
    """
    if preset_available:
        return spec.preset_path

    candidates = [d for d in recipe_dirs if d != "."]
    for pattern in spec.patterns:
        exact = re.compile(r'/' + re.escape(pattern) + r'(/|$)', re.IGNORECASE)
        for directory in candidates:
            if exact.search("/" + directory):
                return directory

    for pattern in spec.patterns:
        for directory in candidates:
            if pattern.lower() in directory.lower():
                return directory
    return None


class ServiceDiscovery:
    """
    Maps service names to absolute build-context paths in one checkout.
    """
    def __init__(self, source_root: str):
        """
        :param source_root: Checkout root.
        """
        self.source_root = source_root
        self._recipe_dirs: Optional[List[str]] = None

    @property
    def recipe_dirs(self) -> List[str]:
        # The tree is scanned at most once per run
        if self._recipe_dirs is None:
            self._recipe_dirs = scan_recipe_dirs(self.source_root)
        return self._recipe_dirs

    def find(self, spec: ServiceSpec) -> Optional[str]:
        """
        Finds the build context for a service.

        :param spec: The service.
        :return: Absolute context path, or None if the service is not in this checkout.
        """
        preset = os.path.join(self.source_root, spec.preset_path, RECIPE_NAME)
        relative = discover_context(spec, self.recipe_dirs, preset_available=os.path.isfile(preset))
        if relative is None:
            return None
        return os.path.normpath(os.path.join(self.source_root, relative))
