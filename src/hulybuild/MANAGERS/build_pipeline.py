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
Orchestration of a full build-from-source run.
"""
import os
from typing import Dict, Optional

from pydantic import BaseModel

from ..BUILDERS.artifact_resolver import ArtifactResolver
from ..BUILDERS.context_assembler import ContextAssembler
from ..BUILDERS.image_builder import ImageBuilder
from ..BUILDERS.source_acquirer import SourceAcquirer
from ..BUILDERS.workspace_builder import WorkspaceBuilder
from ..MODELS.build_config import BuildConfig
from ..MODELS.service_spec import ServiceSpec, service_registry
from ..RUNNERS.command_runner import CommandRunner
from .override_writer import OverrideWriter
from .service_discovery import ServiceDiscovery
from .state_recorder import StateRecorder


class BuildReport(BaseModel):
    """
    What a run built and what it skipped.
    """
    platform_dir: str
    built: Dict[str, str] = {}
    skipped: Dict[str, str] = {}


class BuildPipeline:
    """
    Source -> workspace build -> per service (discover, resolve, assemble,
    build, record). Services fail independently; only acquisition errors
    abort the run.
    """
    def __init__(self, config: BuildConfig, runner: Optional[CommandRunner] = None):
        """
        Initializes the pipeline.

        :param config: Build configuration.
        :param runner: Runner shared by every external command of the run.
        """
        self.config = config
        self.runner = runner or CommandRunner("build")
        self.registry: Dict[str, ServiceSpec] = service_registry(config.tools.service_paths)
        self.overrides = OverrideWriter(config.images_file)
        self.state = StateRecorder(config.state_file)

    def run(self) -> BuildReport:
        """
        Executes the pipeline.

        :return: Built tags and skip reasons per service.
        :raises AcquisitionError: If the source tree cannot be obtained.
        """
        platform_dir = SourceAcquirer(self.config, self.runner).acquire()
        self.state.write(self.config, platform_dir)

        WorkspaceBuilder(self.config, self.runner).build(platform_dir)

        report = BuildReport(platform_dir=platform_dir)
        self.overrides.reset()

        discovery = ServiceDiscovery(platform_dir)
        resolver = ArtifactResolver(self.config, platform_dir, self.runner, self.registry)
        assembler = ContextAssembler(self.config)
        builder = ImageBuilder(self.config, self.runner)

        for name, spec in self.registry.items():
            try:
                reason = self._build_service(spec, discovery, resolver, assembler, builder, report)
            except (OSError, ValueError) as e:
                # shutil.Error and UnicodeDecodeError land here too
                reason = f"failed to prepare build context: {e}"
            if reason:
                report.skipped[name] = reason
                print(f"Skipping {name} ({reason})")

        print(f"Written image overrides to {self.config.images_file}")
        print("To use with compose: docker compose --env-file .images.conf up -d")
        return report

    def _build_service(self, spec: ServiceSpec, discovery: ServiceDiscovery,
                       resolver: ArtifactResolver, assembler: ContextAssembler,
                       builder: ImageBuilder, report: BuildReport) -> Optional[str]:
        """Builds one service; returns a skip reason or None on success."""
        context = discovery.find(spec)
        if context is None:
            return "no Dockerfile found"
        print(f"[{spec.name}] Build context: {os.path.relpath(context, report.platform_dir)}")

        resolution = resolver.resolve(context)
        if not resolution.ok:
            missing = ", ".join(k.value for k in resolution.missing)
            return f"missing required artifacts: {missing}"

        tag = self.config.image_tag(spec.name)
        assembled = assembler.assemble(spec.name, context, tag, resolution.requirement)
        if not builder.build(assembled, tag).ok:
            return "docker build failed"

        self.overrides.record(spec.env_key, tag)
        report.built[spec.name] = tag
        return None
