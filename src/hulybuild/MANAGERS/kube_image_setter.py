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
Applying image overrides to running Kubernetes deployments.
"""
from typing import Dict, List, Optional

from ..MODELS.build_config import ToolchainSettings
from ..MODELS.service_spec import KUBE_DEPLOYMENTS, SERVICE_REGISTRY
from ..RUNNERS.command_runner import CommandRunner


class KubeImageSetter:
    """
    Runs `kubectl set image` for every deployment with an override.
    """
    def __init__(self, namespace: str = "default",
                 tools: Optional[ToolchainSettings] = None,
                 runner: Optional[CommandRunner] = None):
        self.namespace = namespace
        self.tools = tools or ToolchainSettings()
        self.runner = runner or CommandRunner("kubectl")

    def apply(self, overrides: Dict[str, str], deployments: Optional[List[str]] = None) -> Dict[str, str]:
        """
        Updates deployment images.

        :param overrides: IMAGE_* variables.
        :param deployments: Deployment names; each container shares its deployment's name.
        :return: Deployment name to image for every deployment updated.
        :raises CommandError: If kubectl fails.
        """
        applied = {}
        for name in deployments or KUBE_DEPLOYMENTS:
            image = overrides.get(SERVICE_REGISTRY[name].env_key, "")
            if not image:
                print(f"No override for {name}; skipping")
                continue
            print(f"Setting image for deployment/{name} to {image} in namespace {self.namespace}")
            self.runner.run([self.tools.kubectl, "-n", self.namespace, "set", "image",
                             f"deployment/{name}", f"{name}={image}"], check=True)
            applied[name] = image
        return applied
