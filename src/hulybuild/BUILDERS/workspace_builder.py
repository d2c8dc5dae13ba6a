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
Full monorepo build ahead of per-service artifact resolution.
"""
from typing import Optional

from ..MODELS.build_config import BuildConfig
from ..RUNNERS.command_runner import CommandRunner
from .package_manager import RushWorkspace, has_workspace_manifest

FRONT_PACKAGE = "@hcengineering/prod"


class WorkspaceBuilder:
    """
    Installs and builds a Rush workspace when the checkout has one.
    """
    def __init__(self, config: BuildConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or CommandRunner("workspace")

    def build(self, source_root: str) -> bool:
        """
        Purges, installs and builds the workspace.

        Failures are reported but not raised: per-service resolution retries
        targeted builds later.

        :param source_root: Checkout root.
        :return: True if a workspace was found and built cleanly.
        """
        if not has_workspace_manifest(source_root):
            print("No rush.json found; skipping workspace build")
            return False

        print("Detected rush.json; installing dependencies and building the monorepo")
        if not self.runner.which(self.config.tools.npx):
            print("Warning: npx not found. Install Node.js (>=18) and npm to build the workspace.")
            return False

        rush = RushWorkspace(source_root, self.runner, self.config.tools)
        # A stale common/temp breaks installs after upstream lockfile changes
        rush.purge()
        if not rush.install().ok:
            print("Warning: workspace install failed; continuing with per-service builds")
            return False

        if self.config.warm_front:
            print(f"Building {FRONT_PACKAGE} first to warm front-end assets")
            rush.build(FRONT_PACKAGE)

        if not rush.build().ok:
            print("Warning: workspace build failed; continuing with per-service builds")
            return False
        return True
