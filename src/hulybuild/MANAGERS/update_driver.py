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
Rebuilding from the recorded source and restarting the deployment.
"""
import os
from typing import Callable, Optional

from ..exceptions import HulyBuildError, MissingSnapshotError
from ..MODELS.build_config import BuildConfig, ToolchainSettings
from ..RUNNERS.command_runner import CommandRunner
from .build_pipeline import BuildPipeline, BuildReport
from .compose_manager import ComposeManager
from .state_recorder import StateRecorder
from .update_checker import CheckStatus, UpdateChecker
from .update_lock import UpdateLock


class UpdateDriver:
    """
    Re-runs the build pipeline with the parameters of the last build.
    Only one update may run at a time per deployment directory.
    """
    def __init__(self, root_dir: str,
                 force: bool = False,
                 tools: Optional[ToolchainSettings] = None,
                 runner: Optional[CommandRunner] = None,
                 pipeline_factory: Callable[..., BuildPipeline] = BuildPipeline):
        """
        :param root_dir: Deployment directory.
        :param force: Remove a stale update lock first.
        :param tools: Toolchain settings.
        :param runner: Runner shared by git, build and compose commands.
        :param pipeline_factory: Creates the pipeline from (config, runner).
        """
        self.root_dir = os.path.abspath(root_dir)
        self.force = force
        self.tools = tools or ToolchainSettings()
        self.runner = runner or CommandRunner("update")
        self.pipeline_factory = pipeline_factory

    def run(self) -> BuildReport:
        """
        Acquires the lock, rebuilds and restarts services.

        :return: The build report.
        :raises LockHeldError: If another update is running.
        :raises MissingSnapshotError: If no build has been recorded.
        """
        with UpdateLock(self.root_dir, force=self.force):
            state = StateRecorder(os.path.join(self.root_dir, ".build-source.json"))
            snapshot = state.read()
            if snapshot is None:
                raise MissingSnapshotError(f"No {state.state_file} found. Run `hulybuild build` first.")

            if snapshot.is_remote:
                ref = f" (ref: {snapshot.ref})" if snapshot.ref else ""
                print(f"Fetching latest from {snapshot.repo}{ref}")
                try:
                    status = UpdateChecker(self.root_dir, self.tools, self.runner).check().status
                except HulyBuildError as e:
                    print(f"Warning: update check failed: {e}")
                    status = None
                if status == CheckStatus.UP_TO_DATE:
                    print("No updates; rebuilding anyway (cache may apply)")
                else:
                    print("Updates found; proceeding to rebuild")
            else:
                print(f"Using local path: {snapshot.path}")

            config = BuildConfig.create(
                root_dir=self.root_dir,
                repo=snapshot.repo,
                path="" if snapshot.repo else snapshot.path,
                ref=snapshot.ref if snapshot.repo else "",
                registry_prefix=snapshot.registry_prefix,
                tools=self.tools,
            )
            report = self.pipeline_factory(config, self.runner).run()

            print("Restarting services (docker compose)")
            ComposeManager(self.root_dir, self.tools, self.runner).restart_with_overrides()
            print("Update complete.")
            return report
