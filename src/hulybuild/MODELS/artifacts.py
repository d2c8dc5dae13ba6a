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
Models describing the build artifacts a service recipe expects.
"""
import os
import re
from enum import Enum
from typing import List
from pydantic import BaseModel

from .dockerfile_ast import DockerfileAST

RECIPE_NAME = "Dockerfile"
BUNDLE_FILE = os.path.join("bundle", "bundle.js")
BUNDLE_MAP_FILE = os.path.join("bundle", "bundle.js.map")
MODEL_FILE = os.path.join("bundle", "model.json")
ENTRY_PAGE = "index.html"

# Directories accepted as a distributable, in order of preference.
DIST_CANDIDATES = ["dist", "lib", "build", "out"]


class ArtifactKind(str, Enum):
    """
    Artifact categories a recipe can copy from its build context.
    """
    BUNDLE = "bundle"
    LIB = "lib"
    DIST = "dist"
    MODEL_JSON = "model_json"


_SOURCE_PATTERNS = {
    ArtifactKind.BUNDLE: re.compile(r'(^|/)bundle/bundle\.js$'),
    ArtifactKind.LIB: re.compile(r'^lib(/|$)'),
    ArtifactKind.DIST: re.compile(r'^dist(/|$)'),
    ArtifactKind.MODEL_JSON: re.compile(r'(^|/)bundle/model\.json$'),
}


def normalize_source(source: str) -> str:
    while source.startswith("./"):
        source = source[2:]
    return source


class ArtifactRequirement(BaseModel):
    """
    Which artifacts a recipe copies from its context. Each flag gates one
    resolution procedure.
    """
    needs_bundle: bool = False
    needs_lib: bool = False
    needs_dist: bool = False
    needs_model_json: bool = False

    @classmethod
    def from_recipe(cls, recipe: DockerfileAST) -> "ArtifactRequirement":
        """
        Derives requirements from the COPY/ADD sources of a recipe.

        :param recipe: Parsed recipe.
        :return: The requirement flags.
        """
        found = set()
        for inst in recipe.commands():
            for source in inst.copy_sources():
                source = normalize_source(source)
                for kind, pattern in _SOURCE_PATTERNS.items():
                    if pattern.search(source):
                        found.add(kind)
        return cls.of(found)

    @classmethod
    def of(cls, kinds) -> "ArtifactRequirement":
        kinds = set(kinds)
        return cls(
            needs_bundle=ArtifactKind.BUNDLE in kinds,
            needs_lib=ArtifactKind.LIB in kinds,
            needs_dist=ArtifactKind.DIST in kinds,
            needs_model_json=ArtifactKind.MODEL_JSON in kinds,
        )

    def kinds(self) -> List[ArtifactKind]:
        kinds = []
        if self.needs_bundle:
            kinds.append(ArtifactKind.BUNDLE)
        if self.needs_lib:
            kinds.append(ArtifactKind.LIB)
        if self.needs_dist:
            kinds.append(ArtifactKind.DIST)
        if self.needs_model_json:
            kinds.append(ArtifactKind.MODEL_JSON)
        return kinds

    @property
    def empty(self) -> bool:
        return not self.kinds()


def artifact_present(context: str, kind: ArtifactKind) -> bool:
    """
    Checks the on-disk postcondition for one artifact category.

    :param context: Build-context directory.
    :param kind: Artifact category.
    :return: True if the artifact exists.
    """
    if kind == ArtifactKind.BUNDLE:
        return os.path.isfile(os.path.join(context, BUNDLE_FILE))
    if kind == ArtifactKind.MODEL_JSON:
        return os.path.isfile(os.path.join(context, MODEL_FILE))
    if kind == ArtifactKind.LIB:
        return os.path.isdir(os.path.join(context, "lib"))
    return os.path.isdir(os.path.join(context, "dist"))


def missing_artifacts(context: str, requirement: ArtifactRequirement) -> List[ArtifactKind]:
    return [k for k in requirement.kinds() if not artifact_present(context, k)]


class StepOutcome(BaseModel):
    """
    Result of one best-effort resolution step. `satisfied` reflects the
    filesystem after the step, not the exit status of any tool it ran.
    """
    step: str
    attempted: bool = True
    satisfied: bool = False
    detail: str = ""
