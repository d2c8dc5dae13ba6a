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
Parsers for shell-style KEY=VALUE files (huly.conf, .images.conf).
"""
import re
from typing import Dict

ASSIGNMENT = re.compile(r'^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$')
IMAGE_PREFIX = "IMAGE_"


class EnvParser:
    """
    Parser for env files as written by setup and consumed by docker compose.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an env file from a path.

        Args:
            env_path (str): Path to the env file.

        Returns:
            Dict[str, str]: Variables in file order.
        """
        with open(env_path, 'r') as f:
            content = f.read()
        return EnvParser.parse_from_string(content)

    @staticmethod
    def parse_from_string(content: str) -> Dict[str, str]:
        """
        Parses variables from a string.
        Handles `export` prefixes, quotes, comments and escaped quotes.
        """
        env = {}
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            match = ASSIGNMENT.match(line)
            if not match:
                continue
            env[match.group(1)] = EnvParser._unquote(match.group(2).strip())
        return env

    @staticmethod
    def _unquote(value: str) -> str:
        if value[:1] in ('"', "'"):
            quote = value[0]
            end = 1
            while end < len(value):
                if value[end] == quote and value[end - 1] != '\\':
                    break
                end += 1
            return value[1:end].replace(f'\\{quote}', quote)
        # Unquoted: a ` #` starts a trailing comment
        return re.split(r'\s+#', value, maxsplit=1)[0].strip()

    @staticmethod
    def image_overrides(env: Dict[str, str]) -> Dict[str, str]:
        """
        Selects non-empty IMAGE_* variables.

        Args:
            env (Dict[str, str]): Parsed variables.

        Returns:
            Dict[str, str]: Only the image overrides.
        """
        return {k: v for k, v in env.items() if k.startswith(IMAGE_PREFIX) and v}

    @staticmethod
    def format_line(key: str, value: str) -> str:
        """
        Formats one plain KEY=VALUE assignment.

        Raises:
            ValueError: If the key is invalid or the value spans lines.
        """
        if not re.fullmatch(r'[A-Za-z_][A-Za-z0-9_]*', key):
            raise ValueError(f"Invalid variable name: {key!r}")
        if '\n' in value or '\r' in value:
            raise ValueError(f"Value for {key} must not contain newlines")
        return f"{key}={value}"
