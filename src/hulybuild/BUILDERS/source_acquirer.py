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
Acquisition of the platform source tree from a git remote or a local path.
"""
import os
from typing import Optional

from ..exceptions import AcquisitionError, CommandError
from ..MODELS.build_config import BuildConfig
from ..RUNNERS.command_runner import CommandRunner


class SourceAcquirer:
    """
    Resolves the platform source tree for a build.
    """
    def __init__(self, config: BuildConfig, runner: Optional[CommandRunner] = None):
        """
        Initializes the acquirer.

        :param config: Build configuration.
        :param runner: Command runner for git.
        """
        self.config = config
        self.runner = runner or CommandRunner("source")
        self.git = config.tools.git

    def acquire(self) -> str:
        """
        Clones/fetches the repository or resolves the local path.

        :return: Absolute path to the source tree.
        :raises AcquisitionError: If the tree cannot be obtained.
        """
        if self.config.repo:
            platform_dir = self._acquire_remote()
        else:
            platform_dir = self._acquire_local()
        print(f"Platform directory: {platform_dir}")
        return platform_dir

    def _acquire_local(self) -> str:
        platform_dir = os.path.abspath(os.path.expanduser(self.config.path))
        if not os.path.isdir(platform_dir):
            raise AcquisitionError(f"Source path does not exist: {self.config.path}")
        if self.config.ref:
            print("Warning: --ref is ignored when using --path")
        return platform_dir

    def _acquire_remote(self) -> str:
        platform_dir = self.config.checkout_dir
        os.makedirs(self.config.work_dir, exist_ok=True)
        try:
            if os.path.isdir(os.path.join(platform_dir, ".git")):
                print(f"Updating existing clone at {platform_dir}")
                self._git(platform_dir, "fetch", "--all", "--tags", check=True)
            else:
                print(f"Cloning {self.config.repo} into {platform_dir}")
                self.runner.run([self.git, "clone", self.config.repo, platform_dir], check=True)
            self._sync_submodules(platform_dir)

            if self.config.ref:
                print(f"Checking out {self.config.ref}")
                self._git(platform_dir, "checkout", self.config.ref, check=True)
                # Detached tags and diverged branches cannot fast-forward; checkout already holds the ref
                self._git(platform_dir, "pull", "--ff-only")
                print("Refreshing submodules after checkout")
                self._sync_submodules(platform_dir)
        except CommandError as e:
            raise AcquisitionError(str(e)) from e
        return platform_dir

    def _sync_submodules(self, platform_dir: str):
        jobs = str(self.config.tools.submodule_jobs)
        for args in (("submodule", "sync", "--recursive"),
                     ("submodule", "update", "--init", "--recursive", "--jobs", jobs)):
            result = self._git(platform_dir, *args)
            if not result.ok:
                print(f"Warning: git {' '.join(args[:2])} failed; continuing")

    def _git(self, platform_dir: str, *args: str, check: bool = False):
        return self.runner.run([self.git, "-C", platform_dir, *args], check=check)
