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
Filesystem helpers for searching and copying build artifacts.
"""
import os
import shutil
from typing import Iterable, List, Optional

# Never descended into when searching a checkout.
SKIP_DIRS = {".git", "node_modules", ".rush", "common/temp"}


def walk_dirs(root: str) -> Iterable[str]:
    """
    Yields every directory under root (root included) in sorted order,
    skipping VCS metadata and dependency folders.
    """
    for dirpath, dirnames, _ in os.walk(root):
        rel = os.path.relpath(dirpath, root).replace(os.sep, "/")
        prefix = "" if rel == "." else rel + "/"
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in SKIP_DIRS and prefix + d not in SKIP_DIRS
        )
        yield dirpath


def find_files(root: str, name: str, exclude: Optional[str] = None) -> List[str]:
    """
    Finds files called `name` under root, nearest first.

    :param root: Directory to search.
    :param name: File name to match.
    :param exclude: Absolute path that never counts as a match.
    :return: Matching paths ordered by depth, then path.
    """
    if not os.path.isdir(root):
        return []
    matches = []
    for dirpath in walk_dirs(root):
        candidate = os.path.join(dirpath, name)
        if os.path.isfile(candidate) and os.path.abspath(candidate) != exclude:
            matches.append(candidate)
    return sorted(matches, key=lambda p: (p.count(os.sep), p))


def replace_dir(source: str, destination: str):
    """Copies a directory tree, discarding whatever was at destination."""
    if os.path.islink(destination) or os.path.isfile(destination):
        os.remove(destination)
    elif os.path.isdir(destination):
        shutil.rmtree(destination)
    shutil.copytree(source, destination, symlinks=False)


def merge_dir(source: str, destination: str):
    """Copies a directory tree into destination, merging with what is already there."""
    shutil.copytree(source, destination, symlinks=False, dirs_exist_ok=True)


def copy_file(source: str, destination: str):
    """Copies a file, creating the destination's parent directory."""
    parent = os.path.dirname(destination)
    if parent:
        os.makedirs(parent, exist_ok=True)
    shutil.copy2(source, destination)


def reset_dir(path: str):
    """Empties a directory, creating it if needed."""
    if os.path.isdir(path):
        shutil.rmtree(path)
    os.makedirs(path)
