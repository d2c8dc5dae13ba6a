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
Detection of upstream changes for the recorded source checkout.
"""
import os
import re
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel

from ..exceptions import ConfigurationError
from ..MODELS.build_config import ToolchainSettings
from ..RUNNERS.command_runner import CommandRunner
from .state_recorder import StateRecorder


class CheckStatus(IntEnum):
    """
    Results of an update check; the values are the process exit codes.
    """
    UP_TO_DATE = 0
    NO_SNAPSHOT = 2
    UNSUPPORTED = 3
    MISSING_CHECKOUT = 4
    UPDATE_AVAILABLE = 10


class CheckResult(BaseModel):
    status: CheckStatus
    message: str
    current: str = ""
    remote: str = ""


class UpdateChecker:
    """
    Compares the checked-out revision with the tip of the recorded ref.
    """
    def __init__(self, root_dir: str,
                 tools: Optional[ToolchainSettings] = None,
                 runner: Optional[CommandRunner] = None):
        """
        :param root_dir: Deployment directory holding .build-source.json.
        :param tools: Toolchain settings (git binary).
        :param runner: Command runner.
        """
        self.root_dir = os.path.abspath(root_dir)
        self.tools = tools or ToolchainSettings()
        self.runner = runner or CommandRunner("check")
        self.state = StateRecorder(os.path.join(self.root_dir, ".build-source.json"))

    def check(self) -> CheckResult:
        """
        Fetches the remote and compares revisions.

        :return: The status and both revisions when known.
        :raises CommandError: If git cannot fetch or resolve the target.
        """
        try:
            snapshot = self.state.read()
        except ConfigurationError as e:
            return CheckResult(status=CheckStatus.UNSUPPORTED, message=str(e))
        if snapshot is None:
            return CheckResult(
                status=CheckStatus.NO_SNAPSHOT,
                message=f"No {self.state.state_file} found. Run `hulybuild build` first."
            )
        if not snapshot.is_remote:
            return CheckResult(
                status=CheckStatus.UNSUPPORTED,
                message="State indicates a local path build; automatic update check needs --repo."
            )

        platform_dir = snapshot.platform_dir or os.path.join(self.root_dir, ".build", "platform")
        if not os.path.isdir(os.path.join(platform_dir, ".git")):
            return CheckResult(
                status=CheckStatus.MISSING_CHECKOUT,
                message=f"Missing clone at {platform_dir}; run `hulybuild build --repo {snapshot.repo}`"
            )

        current = self._rev_parse(platform_dir, "HEAD")
        self._git(platform_dir, "fetch", "--all", "--tags", check=True)
        remote = self._target_revision(platform_dir, snapshot.ref)

        if current == remote:
            return CheckResult(status=CheckStatus.UP_TO_DATE, message=f"Up to date: {current}",
                               current=current, remote=remote)
        return CheckResult(
            status=CheckStatus.UPDATE_AVAILABLE,
            message=f"Update available\nCurrent: {current}\nRemote : {remote}",
            current=current, remote=remote
        )

    def _target_revision(self, platform_dir: str, ref: str) -> str:
        if ref:
            # Branch names track origin after a fetch; tags and hashes resolve directly
            remote = self._rev_parse(platform_dir, f"origin/{ref}", check=False)
            return remote or self._rev_parse(platform_dir, ref)
        branch = self.default_branch(platform_dir)
        return self._rev_parse(platform_dir, f"origin/{branch}")

    def default_branch(self, platform_dir: str) -> str:
        """
        Reads the remote HEAD branch from `git remote show origin`.
        """
        result = self._git(platform_dir, "remote", "show", "origin", check=True)
        match = re.search(r'HEAD branch:\s*(\S+)', result.stdout)
        if not match:
            raise ConfigurationError("Cannot determine the default branch of origin")
        return match.group(1)

    def _rev_parse(self, platform_dir: str, rev: str, check: bool = True) -> str:
        result = self._git(platform_dir, "rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}", check=check)
        return result.stdout.strip() if result.ok else ""

    def _git(self, platform_dir: str, *args: str, check: bool = False):
        return self.runner.run([self.tools.git, "-C", platform_dir, *args], check=check, capture=True)
