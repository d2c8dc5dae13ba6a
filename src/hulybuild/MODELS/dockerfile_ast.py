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
Models for the Dockerfile Abstract Syntax Tree.
"""
import shlex
from typing import Callable, List, Optional
from pydantic import BaseModel

# Comments and blank lines are kept as trivia so a recipe renders back unchanged.
TRIVIA = "#"


class Instruction(BaseModel):
    """
    Represents a single instruction in a Dockerfile.
    """
    instruction: str
    arguments: List[str]
    raw: str

    @property
    def is_trivia(self) -> bool:
        return self.instruction == TRIVIA

    def copy_sources(self) -> List[str]:
        """
        Returns the build-context sources of a COPY or ADD instruction.

        Flags are skipped; a copy from another build stage has no context sources.
        """
        if self.instruction not in ("COPY", "ADD"):
            return []
        if len(self.arguments) > 1:
            parts = list(self.arguments)
        else:
            try:
                parts = shlex.split(self.arguments[0]) if self.arguments else []
            except ValueError:
                parts = self.arguments[0].split()
        if any(p.startswith("--from") for p in parts):
            return []
        parts = [p for p in parts if not p.startswith("--")]
        return parts[:-1]

    @classmethod
    def copy(cls, source: str, destination: str) -> "Instruction":
        """Creates a COPY instruction in shell form."""
        return cls(instruction="COPY", arguments=[f"{source} {destination}"],
                   raw=f"COPY {source} {destination}")


class DockerfileAST(BaseModel):
    """
    Represents the complete Abstract Syntax Tree of a Dockerfile.
    """
    instructions: List[Instruction] = []

    def commands(self) -> List[Instruction]:
        """Instructions without comments and blank lines."""
        return [i for i in self.instructions if not i.is_trivia]

    def find_first(self, predicate: Callable[[Instruction], bool]) -> Optional[int]:
        for index, inst in enumerate(self.instructions):
            if not inst.is_trivia and predicate(inst):
                return index
        return None

    def find_last(self, predicate: Callable[[Instruction], bool]) -> Optional[int]:
        found = None
        for index, inst in enumerate(self.instructions):
            if not inst.is_trivia and predicate(inst):
                found = index
        return found

    def insert_after(self, index: int, inst: Instruction):
        self.instructions.insert(index + 1, inst)

    def insert_before(self, index: int, inst: Instruction):
        self.instructions.insert(index, inst)

    def append(self, inst: Instruction):
        self.instructions.append(inst)

    def render(self) -> str:
        """Serializes the recipe back to Dockerfile text."""
        return "\n".join(i.raw for i in self.instructions) + "\n"
