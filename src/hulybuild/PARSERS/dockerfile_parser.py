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
Parsers for Dockerfiles, extracting instructions and arguments.
"""
import json
import re
from typing import List
from ..MODELS.dockerfile_ast import DockerfileAST, Instruction, TRIVIA

INSTRUCTION_PATTERN = re.compile(r'^\s*([A-Za-z]+)(?:\s+(.*))?$', re.DOTALL)


class DockerfileParser:
    """
    Parser for Dockerfile instructions.

    Unlike a plain instruction scan, every source line ends up in exactly one
    Instruction.raw, so the recipe can be edited and written back.
    """
    def parse(self, dockerfile_path: str) -> DockerfileAST:
        """
        Parses a Dockerfile from a file path.

        Args:
            dockerfile_path (str): Path to the Dockerfile.

        Returns:
            DockerfileAST: Ordered instructions, comments included.
        """
        with open(dockerfile_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> DockerfileAST:
        """
        Parses a Dockerfile from a string content.

        Args:
            content (str): Content of the Dockerfile.

        Returns:
            DockerfileAST: Ordered instructions, comments included.
        """
        instructions: List[Instruction] = []
        lines = content.splitlines()
        i = 0
        while i < len(lines):
            line = lines[i]
            stripped = line.strip()
            if not stripped or stripped.startswith('#'):
                instructions.append(Instruction(instruction=TRIVIA, arguments=[], raw=line))
                i += 1
                continue

            # Gather the logical line across `\` continuations
            raw_lines = [line]
            segments = []
            current = line
            while current.rstrip().endswith('\\') and i + 1 < len(lines):
                segments.append(current.rstrip()[:-1].strip())
                i += 1
                current = lines[i]
                raw_lines.append(current)
                if current.strip().startswith('#'):
                    # comment lines inside a continuation are dropped by docker
                    current = '\\'
            if current != '\\':
                segments.append(current.rstrip().rstrip('\\').strip())
            i += 1

            logical = ' '.join(s for s in segments if s)
            match = INSTRUCTION_PATTERN.match(logical)
            if not match:
                instructions.append(Instruction(instruction=TRIVIA, arguments=[], raw='\n'.join(raw_lines)))
                continue

            inst = match.group(1).upper()
            args_str = (match.group(2) or '').strip()
            instructions.append(Instruction(
                instruction=inst,
                arguments=self._parse_arguments(inst, args_str),
                raw='\n'.join(raw_lines)
            ))

        return DockerfileAST(instructions=instructions)

    def _parse_arguments(self, inst: str, args_str: str) -> List[str]:
        """
        Splits instruction arguments, handling JSON/exec form vs shell form.
        """
        if not args_str:
            return []
        if args_str.startswith('[') and args_str.endswith(']'):
            try:
                return [str(a) for a in json.loads(args_str)]
            except json.JSONDecodeError:
                return [args_str]
        if inst == "ENV" and '=' in args_str:
            return re.findall(r'(\S+=\S+)', args_str)
        if inst == "ENV":
            return args_str.split(None, 1)
        return [args_str]
