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
Workspace (Rush) and plain package-manager invocations used to produce
JavaScript build artifacts.
"""
import os
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..MODELS.build_config import ToolchainSettings
from ..RUNNERS.command_runner import CommandRunner

WORKSPACE_MANIFEST = "rush.json"
RUSH = "@microsoft/rush"
RUSHX = "@microsoft/rushx"

# Scripts tried after install, most specific first.
BUILD_SCRIPTS = ["build", "bundle", "package", "compile"]

MANIFEST_FILES = ["package.json", "pnpm-lock.yaml", "yarn.lock",
                  "package-lock.json", "npm-shrinkwrap.json"]


class PackageManager(str, Enum):
    PNPM = "pnpm"
    YARN = "yarn"
    NPM = "npm"


def has_workspace_manifest(source_root: str) -> bool:
    return os.path.isfile(os.path.join(source_root, WORKSPACE_MANIFEST))


def choose_package_manager(context: str, source_root: Optional[str] = None) -> PackageManager:
    """
    Picks a package manager from the lockfiles of the context or source root.

    :param context: Package directory.
    :param source_root: Root of the checkout, also searched for lockfiles.
    :return: pnpm, yarn or npm.
    """
    dirs = [context] + ([source_root] if source_root else [])
    if any(os.path.isfile(os.path.join(d, "pnpm-lock.yaml")) for d in dirs):
        return PackageManager.PNPM
    if any(os.path.isfile(os.path.join(d, "yarn.lock")) for d in dirs):
        return PackageManager.YARN
    return PackageManager.NPM


def _install_commands(pm: PackageManager) -> List[List[str]]:
    if pm == PackageManager.PNPM:
        return [["pnpm", "install", "--frozen-lockfile"], ["pnpm", "install"]]
    if pm == PackageManager.YARN:
        return [["yarn", "install", "--frozen-lockfile"], ["yarn", "install"]]
    return [["npm", "ci"], ["npm", "install", "--no-audit", "--no-fund"]]


def _script_command(pm: PackageManager, script: str) -> List[str]:
    if pm == PackageManager.YARN:
        return ["yarn", script]
    return [pm.value, "run", script]


class RushWorkspace:
    """
    Thin driver for the Rush monorepo tool, run through npx.
    """
    def __init__(self, source_root: str, runner: CommandRunner, tools: ToolchainSettings):
        self.source_root = source_root
        self.runner = runner
        self.npx = tools.npx

    def rush(self, *args: str, cwd: Optional[str] = None):
        return self.runner.run([self.npx, "-y", RUSH, *args], cwd=cwd or self.source_root)

    def rushx(self, package_dir: str, script: str):
        return self.runner.run([self.npx, "-y", RUSHX, script], cwd=package_dir)

    def purge(self):
        return self.rush("purge")

    def install(self):
        return self.rush("install")

    def build(self, target: Optional[str] = None):
        if target:
            return self.rush("build", "-t", target)
        return self.rush("build")


class PackageManagerBuild:
    """
    Direct install-and-build of a single package without the workspace tool.
    """
    def __init__(self, runner: CommandRunner, tools: ToolchainSettings):
        self.runner = runner
        self.tools = tools

    def activate(self, pm: PackageManager):
        """
        Enables the package manager through corepack when available.
        Failures are ignored; a globally installed manager may still work.
        """
        if pm == PackageManager.NPM or not self.runner.which(self.tools.corepack):
            return
        self.runner.run([self.tools.corepack, "enable"])
        version = "pnpm@latest" if pm == PackageManager.PNPM else "yarn@stable"
        self.runner.run([self.tools.corepack, "prepare", version, "--activate"])

    def run(self, context: str, source_root: Optional[str] = None,
            done: Optional[Callable[[], bool]] = None) -> PackageManager:
        """
        Installs dependencies and runs build scripts until `done` reports success.

        :param context: Package directory.
        :param source_root: Checkout root, used for lockfile detection.
        :param done: Postcondition checked after each script.
        :return: The package manager that was used.
        """
        pm = choose_package_manager(context, source_root)
        print(f"[{os.path.basename(context)}] Building with {pm.value}")
        self.activate(pm)
        env: Dict[str, str] = {"CI": "1", "NODE_OPTIONS": self.tools.node_options}

        for command in _install_commands(pm):
            if self.runner.run(command, cwd=context, env=env).ok:
                break

        for script in BUILD_SCRIPTS:
            result = self.runner.run(_script_command(pm, script), cwd=context, env=env)
            if not result.ok:
                continue
            if done is None or done():
                break
        return pm
