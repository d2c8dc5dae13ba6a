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
Models for the configuration threaded through every build component.
"""
import os
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError
from ..UTILS.tags import new_tag_suffix


class ToolchainSettings(BaseModel):
    """
    Names of the external tools and tunables for package-manager builds.
    Loaded from hulybuild.yaml when present.
    """
    git: str = "git"
    docker: str = "docker"
    kubectl: str = "kubectl"
    npx: str = "npx"
    corepack: str = "corepack"
    compose: List[str] = ["docker", "compose"]
    node_options: str = "--max-old-space-size=4096"
    submodule_jobs: int = 4
    service_paths: Dict[str, str] = {}


class BuildConfig(BaseModel):
    """
    Parameters of a single build-from-source run.
    """
    root_dir: str = "."
    repo: str = ""
    path: str = ""
    ref: str = ""
    registry_prefix: str = ""
    no_cache: bool = False
    tag_suffix: str = Field(default_factory=new_tag_suffix)
    front_dist: Optional[str] = None
    warm_front: bool = False
    tools: ToolchainSettings = Field(default_factory=ToolchainSettings)

    @model_validator(mode="after")
    def _check_source(self):
        if not self.repo and not self.path:
            raise ValueError("Either --repo or --path must be provided")
        if self.repo and self.path:
            raise ValueError("--repo and --path are mutually exclusive")
        self.root_dir = os.path.abspath(self.root_dir)
        if not self.tag_suffix:
            self.tag_suffix = new_tag_suffix()
        return self

    @classmethod
    def create(cls, **values) -> "BuildConfig":
        """
        Builds a config, reporting invalid input as a ConfigurationError.

        :param values: Field values; None entries fall back to defaults.
        :return: A validated BuildConfig.
        """
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except ValidationError as e:
            messages = "; ".join(err["msg"].replace("Value error, ", "") for err in e.errors())
            raise ConfigurationError(messages) from e

    @property
    def work_dir(self) -> str:
        return os.path.join(self.root_dir, ".build")

    @property
    def checkout_dir(self) -> str:
        """Fixed location of the remote-mode clone."""
        return os.path.join(self.work_dir, "platform")

    @property
    def contexts_dir(self) -> str:
        return os.path.join(self.work_dir, "contexts")

    @property
    def images_file(self) -> str:
        return os.path.join(self.root_dir, ".images.conf")

    @property
    def state_file(self) -> str:
        return os.path.join(self.root_dir, ".build-source.json")

    def image_tag(self, service: str) -> str:
        """
        Computes the image reference for a service in this run.

        :param service: Service name.
        :return: e.g. 'registry.example.com/huly/front:local-20240101...'
        """
        name = f"huly/{service}:local-{self.tag_suffix}"
        prefix = self.registry_prefix.rstrip("/")
        return f"{prefix}/{name}" if prefix else name
