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
Builders that hand an assembled context to the container engine.
"""
from typing import List, Optional

from ..MODELS.build_config import BuildConfig
from ..RUNNERS.command_runner import CommandRunner, CommandResult
from .context_assembler import AssembledContext


class ImageBuilder:
    """
    Runs `docker build` for assembled service contexts.
    """
    def __init__(self, config: BuildConfig, runner: Optional[CommandRunner] = None):
        """
        Initializes the ImageBuilder.

        :param config: Build configuration (docker binary, cache mode).
        :param runner: Command runner.
        """
        self.config = config
        self.runner = runner or CommandRunner("docker")

    def command(self, context: AssembledContext, tag: str) -> List[str]:
        """
        Returns the docker invocation for a context.

        :param context: Assembled build context.
        :param tag: Image tag.
        :return: Command and arguments.
        """
        command = [self.config.tools.docker, "build", "-t", tag, "-f", context.dockerfile]
        if self.config.no_cache:
            command += ["--no-cache", "--pull"]
        command.append(context.path)
        return command

    def build(self, context: AssembledContext, tag: str) -> CommandResult:
        """
        Builds the image. A failure affects only this service.

        :param context: Assembled build context.
        :param tag: Image tag.
        :return: The docker command result.
        """
        print(f"Building {context.service} from {context.path} as {tag}")
        result = self.runner.run(self.command(context, tag))
        if not result.ok:
            print(f"Warning: docker build failed for {context.service} ({result.return_code})")
        return result
