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
Redeployment of the compose stack, optionally after a source build.
"""
import os
from typing import Callable, Optional

from ..MODELS.build_config import BuildConfig, ToolchainSettings
from ..RUNNERS.command_runner import CommandRunner
from .build_pipeline import BuildPipeline, BuildReport
from .compose_manager import ComposeManager


class RedeployDriver:
    """
    Pulls and recreates every compose service with the deployment's env files.
    """
    def __init__(self, root_dir: str,
                 tools: Optional[ToolchainSettings] = None,
                 runner: Optional[CommandRunner] = None,
                 pipeline_factory: Callable[..., BuildPipeline] = BuildPipeline):
        self.root_dir = os.path.abspath(root_dir)
        self.tools = tools or ToolchainSettings()
        self.runner = runner or CommandRunner("redeploy")
        self.pipeline_factory = pipeline_factory
        self.compose = ComposeManager(self.root_dir, self.tools, self.runner)

    def run(self, build_config: Optional[BuildConfig] = None) -> Optional[BuildReport]:
        """
        Redeploys the stack.

        :param build_config: When given, images are built from source first.
        :return: The build report if a build ran.
        :raises CommandError: If compose cannot bring the stack up.
        """
        env = self.compose.environment.deployment_environment()

        report = None
        if build_config is not None:
            print("Building images from source with unique tags to avoid stale cache...")
            report = self.pipeline_factory(build_config, self.runner).run()

        env_files = self.compose.environment.env_files()
        self.compose.pull(env_files, env=env)
        self.compose.up(env_files, "--force-recreate", "--remove-orphans", "--pull", "always", env=env)

        self._diagnostics(env.get("DOCKER_NAME") or os.environ.get("DOCKER_NAME", "huly"))
        print("Done.")
        return report

    def _diagnostics(self, project: str):
        """Best-effort report on the proxy and front containers."""
        docker = self.tools.docker
        print("Nginx container logs (last 50 lines):")
        self.runner.run([docker, "logs", f"{project}-nginx-1", "--tail", "50"])
        print("Front container image:")
        self.runner.run([docker, "inspect", "-f", "{{.Config.Image}}", f"{project}-front-1"])
        print("Check front index.html presence:")
        self.runner.run([docker, "exec", f"{project}-front-1", "sh", "-lc",
                         "ls -l /app/dist/index.html || true"])
