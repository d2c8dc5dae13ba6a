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
Managers for the deployment's environment files (huly.conf, .images.conf).
"""
import os
from typing import Dict, List, Optional
from ..PARSERS.env_parser import EnvParser

DEPLOYMENT_CONFIG = "huly.conf"
IMAGES_FILE = ".images.conf"
SECRET_FILE = ".huly.secret"
DEFAULT_DOCKER_NAME = "huly"


class EnvironmentManager:
    """
    Resolves the variables docker compose needs for a deployment directory.
    """
    def __init__(self, root_dir: str = "."):
        """
        Initializes the environment manager.

        :param root_dir: The deployment directory.
        """
        self.root_dir = os.path.abspath(root_dir)
        self.parser = EnvParser()

    def path(self, name: str) -> str:
        return os.path.join(self.root_dir, name)

    def env_files(self, include_images: bool = True) -> List[str]:
        """
        Lists the env files compose should load, deployment config first so
        image overrides win.

        :param include_images: Whether to include .images.conf.
        :return: Existing file paths.
        """
        names = [DEPLOYMENT_CONFIG] + ([IMAGES_FILE] if include_images else [])
        return [self.path(n) for n in names if os.path.isfile(self.path(n))]

    def deployment_environment(self) -> Dict[str, str]:
        """
        Variables from huly.conf plus the defaults compose relies on.

        :return: Variables to layer over the process environment.
        """
        env: Dict[str, str] = {}
        config = self.path(DEPLOYMENT_CONFIG)
        if os.path.isfile(config):
            env.update(self.parser.parse(config))

        if not env.get("DOCKER_NAME") and not os.environ.get("DOCKER_NAME"):
            env["DOCKER_NAME"] = DEFAULT_DOCKER_NAME

        secret = self.path(SECRET_FILE)
        if not env.get("SECRET") and not os.environ.get("SECRET") and os.path.isfile(secret):
            with open(secret, "r") as f:
                env["SECRET"] = f.read().strip()
        return env

    def image_overrides(self, env_file: Optional[str] = None) -> Dict[str, str]:
        """
        Reads IMAGE_* overrides from an env file.

        :param env_file: Explicit file; defaults to .images.conf in the deployment directory.
        :return: Non-empty overrides, or {} if the default file is absent.
        :raises FileNotFoundError: If an explicit env_file does not exist.
        """
        path = env_file or self.path(IMAGES_FILE)
        if env_file is None and not os.path.isfile(path):
            return {}
        return self.parser.image_overrides(self.parser.parse(path))
