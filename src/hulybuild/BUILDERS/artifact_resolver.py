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
Best-effort production of the artifacts a service recipe copies.

Resolution runs a cascade of steps. Every step may fail without raising;
after each one the filesystem is re-checked and the cascade stops as soon
as every required artifact exists.
"""
import json
import os
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from ..MODELS.artifacts import (
    ArtifactKind, ArtifactRequirement, StepOutcome, RECIPE_NAME,
    BUNDLE_FILE, BUNDLE_MAP_FILE, MODEL_FILE, ENTRY_PAGE, missing_artifacts,
)
from ..MODELS.build_config import BuildConfig
from ..MODELS.service_spec import ServiceSpec, SERVICE_REGISTRY
from ..PARSERS.dockerfile_parser import DockerfileParser
from ..RUNNERS.command_runner import CommandRunner
from ..UTILS.fs import find_files, copy_file, replace_dir
from .entry_page import synthesize_entry_page
from .package_manager import PackageManagerBuild, RushWorkspace, has_workspace_manifest

POD_PACKAGE_PREFIX = "@hcengineering/pod-"

# Directories used in place of a missing dist, in order.
DIST_SUBSTITUTES = ["lib", "build", "out"]


class ResolutionResult(BaseModel):
    """
    Outcome of resolving one build context.
    """
    context: str
    requirement: ArtifactRequirement
    outcomes: List[StepOutcome] = []
    missing: List[ArtifactKind] = []

    @property
    def ok(self) -> bool:
        return not self.missing


class ArtifactResolver:
    """
    Ensures the artifacts required by a context's Dockerfile exist on disk.
    """
    def __init__(self,
                 config: BuildConfig,
                 source_root: str,
                 runner: Optional[CommandRunner] = None,
                 registry: Optional[Dict[str, ServiceSpec]] = None):
        """
        Initializes the resolver.

        :param config: Build configuration.
        :param source_root: Root of the platform checkout.
        :param runner: Runner for rush / package-manager commands.
        :param registry: Known services; their preset paths are searched for model.json.
        """
        self.config = config
        self.source_root = source_root
        self.runner = runner or CommandRunner("artifacts")
        self.registry = registry or SERVICE_REGISTRY
        self.parser = DockerfileParser()

    def requirement_for(self, context: str) -> ArtifactRequirement:
        recipe = os.path.join(context, RECIPE_NAME)
        if not os.path.isfile(recipe):
            return ArtifactRequirement()
        return ArtifactRequirement.from_recipe(self.parser.parse(recipe))

    def resolve(self, context: str) -> ResolutionResult:
        """
        Runs the resolution cascade for one build context.

        :param context: Build-context directory containing a Dockerfile.
        :return: Requirement, per-step outcomes and anything still missing.
        """
        requirement = self.requirement_for(context)
        result = ResolutionResult(context=context, requirement=requirement)
        if requirement.empty:
            return result

        steps: List[Callable[[str, ArtifactRequirement], StepOutcome]] = [
            self._workspace_targeted_build,
            self._workspace_front_bundle,
            self._package_manager_build,
            self._search_filesystem,
            self._substitute_directories,
            self._synthesize_entry_page,
        ]
        name = os.path.basename(context)
        missing = missing_artifacts(context, requirement)
        for step in steps:
            if not missing:
                break
            print(f"[{name}] Missing {', '.join(k.value for k in missing)}; trying {step.__name__.lstrip('_')}")
            outcome = step(context, requirement)
            missing = missing_artifacts(context, requirement)
            outcome.satisfied = not missing
            result.outcomes.append(outcome)

        result.missing = missing
        if missing:
            print(f"Warning: could not produce {', '.join(k.value for k in missing)} in {context}")
        return result

    def package_name(self, context: str) -> str:
        """
        Returns the npm package name declared by the context, falling back to
        the pod naming convention.
        """
        manifest = os.path.join(context, "package.json")
        if os.path.isfile(manifest):
            try:
                with open(manifest, "r") as f:
                    name = json.load(f).get("name")
                if isinstance(name, str) and name:
                    return name
            except (OSError, ValueError):
                print(f"Warning: unreadable {manifest}")
        return POD_PACKAGE_PREFIX + os.path.basename(context)

    # Cascade steps

    def _workspace_targeted_build(self, context: str, requirement: ArtifactRequirement) -> StepOutcome:
        if not has_workspace_manifest(self.source_root):
            return StepOutcome(step="workspace-targeted", attempted=False, detail="no rush.json")
        package = self.package_name(context)
        rush = RushWorkspace(self.source_root, self.runner, self.config.tools)
        rush.build(package)
        for script in ("bundle", "build"):
            if not missing_artifacts(context, requirement):
                break
            rush.rushx(context, script)
        return StepOutcome(step="workspace-targeted", detail=package)

    def _workspace_front_bundle(self, context: str, requirement: ArtifactRequirement) -> StepOutcome:
        if "front" not in os.path.basename(os.path.normpath(context)).lower():
            return StepOutcome(step="workspace-front", attempted=False, detail="not a front-end context")
        if not has_workspace_manifest(self.source_root):
            return StepOutcome(step="workspace-front", attempted=False, detail="no rush.json")
        rush = RushWorkspace(self.source_root, self.runner, self.config.tools)
        for command in ("bundle", "package"):
            if not missing_artifacts(context, requirement):
                break
            rush.rush(command)
        return StepOutcome(step="workspace-front")

    def _package_manager_build(self, context: str, requirement: ArtifactRequirement) -> StepOutcome:
        if not os.path.isfile(os.path.join(context, "package.json")):
            return StepOutcome(step="package-manager", attempted=False, detail="no package.json")
        build = PackageManagerBuild(self.runner, self.config.tools)
        pm = build.run(context, self.source_root,
                       done=lambda: not missing_artifacts(context, requirement))
        return StepOutcome(step="package-manager", detail=pm.value)

    def _search_filesystem(self, context: str, requirement: ArtifactRequirement) -> StepOutcome:
        found = []
        bundle = os.path.join(context, BUNDLE_FILE)
        if requirement.needs_bundle and not os.path.isfile(bundle):
            matches = find_files(context, "bundle.js", exclude=os.path.abspath(bundle))
            if matches:
                copy_file(matches[0], bundle)
                source_map = matches[0] + ".map"
                if os.path.isfile(source_map):
                    copy_file(source_map, os.path.join(context, BUNDLE_MAP_FILE))
                found.append(os.path.relpath(matches[0], context))

        model = os.path.join(context, MODEL_FILE)
        if requirement.needs_model_json and not os.path.isfile(model):
            for root in self._model_search_roots(context):
                matches = find_files(root, "model.json", exclude=os.path.abspath(model))
                if matches:
                    copy_file(matches[0], model)
                    found.append(matches[0])
                    break
        return StepOutcome(step="filesystem-search", detail=", ".join(found))

    def _model_search_roots(self, context: str) -> List[str]:
        roots = [context]
        for spec in self.registry.values():
            candidate = os.path.join(self.source_root, spec.preset_path)
            if os.path.isdir(candidate) and os.path.abspath(candidate) != os.path.abspath(context):
                roots.append(candidate)
        return roots

    def _substitute_directories(self, context: str, requirement: ArtifactRequirement) -> StepOutcome:
        dist = os.path.join(context, "dist")
        lib = os.path.join(context, "lib")
        copied = []
        if requirement.needs_dist and not os.path.isdir(dist):
            for name in DIST_SUBSTITUTES:
                candidate = os.path.join(context, name)
                if os.path.isdir(candidate):
                    replace_dir(candidate, dist)
                    copied.append(f"{name} -> dist")
                    break
        if requirement.needs_lib and not os.path.isdir(lib) and os.path.isdir(dist):
            replace_dir(dist, lib)
            copied.append("dist -> lib")
        return StepOutcome(step="substitution", attempted=bool(copied), detail=", ".join(copied))

    def _synthesize_entry_page(self, context: str, requirement: ArtifactRequirement) -> StepOutcome:
        dist = os.path.join(context, "dist")
        if not requirement.needs_dist or os.path.isdir(dist):
            return StepOutcome(step="entry-page", attempted=False)
        if not os.path.isfile(os.path.join(context, BUNDLE_FILE)):
            return StepOutcome(step="entry-page", attempted=False, detail="no bundle")
        synthesize_entry_page(context)
        return StepOutcome(step="entry-page", detail=os.path.join("dist", ENTRY_PAGE))
