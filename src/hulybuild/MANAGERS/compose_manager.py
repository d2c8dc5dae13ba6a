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
docker compose invocations for bringing the deployment up.
"""
from typing import Dict, List, Optional

from ..MODELS.build_config import ToolchainSettings
from ..RUNNERS.command_runner import CommandRunner, CommandResult
from .environment_manager import EnvironmentManager


class ComposeManager:
    """
    Runs docker compose in the deployment directory with its env files.
    """
    def __init__(self, root_dir: str,
                 tools: Optional[ToolchainSettings] = None,
                 runner: Optional[CommandRunner] = None):
        """
        :param root_dir: Deployment directory holding the compose file.
        :param tools: Toolchain settings (compose command).
        :param runner: Command runner.
        """
        self.environment = EnvironmentManager(root_dir)
        self.root_dir = self.environment.root_dir
        self.tools = tools or ToolchainSettings()
        self.runner = runner or CommandRunner("compose")

    def _command(self, env_files: List[str], *args: str) -> List[str]:
        command = list(self.tools.compose)
        for env_file in env_files:
            command += ["--env-file", env_file]
        return command + list(args)

    def pull(self, env_files: List[str], env: Optional[Dict[str, str]] = None) -> CommandResult:
        """Pulls images; failures are tolerated since locally built tags cannot be pulled."""
        result = self.runner.run(self._command(env_files, "pull", "--ignore-pull-failures"),
                                 cwd=self.root_dir, env=env)
        if not result.ok:
            print("Warning: docker compose pull failed; continuing")
        return result

    def up(self, env_files: List[str], *flags: str,
           env: Optional[Dict[str, str]] = None) -> CommandResult:
        """
        Starts or recreates the services.

        :raises CommandError: If compose fails.
        """
        return self.runner.run(self._command(env_files, "up", "-d", *flags),
                               cwd=self.root_dir, env=env, check=True)

    def restart_with_overrides(self) -> CommandResult:
        """Recreates services with .images.conf applied when present."""
        env_files = [f for f in self.environment.env_files() if f.endswith(".images.conf")]
        return self.up(env_files, "--force-recreate")
