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
Synchronous execution of external tools (git, npx, docker, kubectl).
"""
import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..exceptions import CommandError


@dataclass
class CommandResult:
    """Outcome of a single external command."""
    command: List[str]
    return_code: Optional[int]
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    tool_available: bool = True

    @property
    def ok(self) -> bool:
        """True when the tool was found and exited with status 0."""
        return self.tool_available and self.return_code == 0


class CommandRunner:
    """
    Runs one external command at a time and waits for it to exit.
    """
    def __init__(self, name: str = "run", echo: bool = True):
        """
        Initializes the runner.

        Args:
            name (str): Prefix used when narrating commands.
            echo (bool): Print each command before running it.
        """
        self.name = name
        self.echo = echo

    def run(self,
            command: Sequence[str],
            cwd: Optional[str] = None,
            env: Optional[Dict[str, str]] = None,
            check: bool = False,
            capture: bool = False) -> CommandResult:
        """
        Executes a command.

        Args:
            command (Sequence[str]): Command and arguments.
            cwd (Optional[str]): Working directory.
            env (Optional[Dict[str, str]]): Variables layered over the current environment.
            check (bool): Raise CommandError when the command fails.
            capture (bool): Capture stdout/stderr instead of streaming them.

        Returns:
            CommandResult: Exit status and captured output.
        """
        command = [str(part) for part in command]
        if self.echo:
            location = f" (in {cwd})" if cwd else ""
            print(f"[{self.name}] $ {' '.join(command)}{location}")

        merged_env = None
        if env:
            merged_env = os.environ.copy()
            merged_env.update(env)

        start = time.time()
        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                env=merged_env,
                capture_output=capture,
                text=True,
                shell=False
            )
        except FileNotFoundError:
            result = CommandResult(
                command=command,
                return_code=None,
                stderr=f"Command not found: {command[0]}",
                duration=time.time() - start,
                tool_available=False
            )
        else:
            result = CommandResult(
                command=command,
                return_code=completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                duration=time.time() - start
            )

        if check and not result.ok:
            raise CommandError(result)
        return result

    def which(self, tool: str) -> bool:
        """
        Checks whether an executable is available on PATH.

        Args:
            tool (str): Executable name.

        Returns:
            bool: True if found.
        """
        return shutil.which(tool) is not None
