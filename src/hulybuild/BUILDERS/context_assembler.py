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
Assembly of minimal docker build contexts from resolved artifacts.
"""
import os
from typing import Optional

from pydantic import BaseModel

from ..MODELS.artifacts import (
    ArtifactRequirement, normalize_source, RECIPE_NAME, BUNDLE_FILE, BUNDLE_MAP_FILE,
    MODEL_FILE, ENTRY_PAGE, DIST_CANDIDATES,
)
from ..MODELS.build_config import BuildConfig
from ..MODELS.dockerfile_ast import DockerfileAST, Instruction
from ..MODELS.service_spec import FRONT_SERVICE
from ..PARSERS.dockerfile_parser import DockerfileParser
from ..UTILS.fs import copy_file, merge_dir, replace_dir, reset_dir
from .entry_page import synthesize_entry_page
from .package_manager import MANIFEST_FILES

# Relative, so docker resolves it against the WORKDIR of the final stage
DIST_DESTINATION = "./dist/"


class AssembledContext(BaseModel):
    """
    A build context ready for `docker build`.
    """
    service: str
    path: str
    dockerfile: str
    recipe_rewritten: bool = False
    entry_page_synthesized: bool = False


class ContextAssembler:
    """
    Copies a service's recipe and artifacts into a fresh directory, so the
    image never picks up the rest of the checkout.
    """
    def __init__(self, config: BuildConfig):
        """
        Initializes the assembler.

        :param config: Build configuration; contexts go under its contexts_dir.
        """
        self.config = config
        self.parser = DockerfileParser()

    def assemble(self,
                 service: str,
                 context: str,
                 tag: str,
                 requirement: Optional[ArtifactRequirement] = None) -> AssembledContext:
        """
        Builds the minimal context for one service.

        :param service: Service name.
        :param context: Resolved build-context directory in the checkout.
        :param tag: Image tag the context is assembled for.
        :param requirement: Artifact requirement of the recipe.
        :return: The assembled context.
        """
        requirement = requirement or ArtifactRequirement()
        target = os.path.join(self.config.contexts_dir, service)
        reset_dir(target)
        print(f"[{service}] Assembling build context for {tag} in {target}")

        copy_file(os.path.join(context, RECIPE_NAME), os.path.join(target, RECIPE_NAME))

        for name in (BUNDLE_FILE, BUNDLE_MAP_FILE, MODEL_FILE):
            source = os.path.join(context, name)
            if os.path.isfile(source):
                copy_file(source, os.path.join(target, name))

        dist_source = self._dist_source(service, context)
        if dist_source:
            replace_dir(dist_source, os.path.join(target, "dist"))

        lib_source = os.path.join(context, "lib")
        if requirement.needs_lib and os.path.isdir(lib_source):
            replace_dir(lib_source, os.path.join(target, "lib"))

        for name in MANIFEST_FILES:
            source = os.path.join(context, name)
            if os.path.isfile(source):
                copy_file(source, os.path.join(target, name))

        # Empty .dockerignore: the checkout's ignore rules must not apply here
        with open(os.path.join(target, ".dockerignore"), "w"):
            pass

        assembled = AssembledContext(service=service, path=target,
                                     dockerfile=os.path.join(target, RECIPE_NAME))
        if service == FRONT_SERVICE:
            self._prepare_front(assembled)
        return assembled

    def _dist_source(self, service: str, context: str) -> Optional[str]:
        if service == FRONT_SERVICE and self.config.front_dist:
            front_dist = os.path.abspath(os.path.expanduser(self.config.front_dist))
            if os.path.isdir(front_dist):
                return front_dist
            print(f"Warning: --front-dist {self.config.front_dist} is not a directory; ignoring")
        for name in DIST_CANDIDATES:
            candidate = os.path.join(context, name)
            if os.path.isdir(candidate):
                return candidate
        return None

    def _prepare_front(self, assembled: AssembledContext):
        target = assembled.path
        dist = os.path.join(target, "dist")
        bundle_dir = os.path.join(target, "bundle")
        has_bundle = os.path.isfile(os.path.join(target, BUNDLE_FILE))

        if has_bundle and not os.path.isfile(os.path.join(dist, ENTRY_PAGE)):
            synthesize_entry_page(target)
            assembled.entry_page_synthesized = True

        if not os.path.isfile(os.path.join(dist, ENTRY_PAGE)):
            return

        if os.path.isdir(bundle_dir):
            merge_dir(bundle_dir, os.path.join(dist, "bundle"))

        recipe = self.parser.parse(assembled.dockerfile)
        if inject_dist_copy(recipe):
            with open(assembled.dockerfile, "w") as f:
                f.write(recipe.render())
            assembled.recipe_rewritten = True
            print(f"[{assembled.service}] Added COPY of dist to the Dockerfile")


def _copies_dist(inst: Instruction) -> bool:
    return any(normalize_source(s).split("/")[0] == "dist" for s in inst.copy_sources())


def _copies_artifact(inst: Instruction) -> bool:
    return any(normalize_source(s).split("/")[0] in ("bundle", "lib") for s in inst.copy_sources())


def inject_dist_copy(recipe: DockerfileAST) -> bool:
    """
    Adds a COPY of the dist directory unless the recipe already copies one.

    The instruction goes after the last artifact COPY, else before the first
    CMD/ENTRYPOINT, else at the end.

    :param recipe: Parsed recipe, modified in place.
    :return: True if the recipe changed.
    """
    if recipe.find_first(_copies_dist) is not None:
        return False

    anchor = recipe.find_last(_copies_artifact)
    if anchor is not None:
        inst = Instruction.copy("dist/", DIST_DESTINATION)
        recipe.insert_after(anchor, inst)
        return True

    entry = recipe.find_first(lambda i: i.instruction in ("CMD", "ENTRYPOINT"))
    if entry is not None:
        recipe.insert_before(entry, Instruction.copy("dist/", DIST_DESTINATION))
        return True

    recipe.append(Instruction.copy("dist/", DIST_DESTINATION))
    return True
