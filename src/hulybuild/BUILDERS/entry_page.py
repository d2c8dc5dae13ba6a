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
Minimal static entry page for a front-end that only has a compiled bundle.
"""
import os
from jinja2 import Template

from ..MODELS.artifacts import BUNDLE_FILE, ENTRY_PAGE
from ..UTILS.fs import copy_file

# Where the bundle is served from once injected under dist/
BUNDLE_SERVE_PATH = "/bundle/bundle.js"

ENTRY_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{ title }}</title>
</head>
<body>
  <div id="app"></div>
  <script src="{{ bundle_path }}" defer></script>
</body>
</html>
"""


def render_entry_page(bundle_path: str = BUNDLE_SERVE_PATH, title: str = "Huly") -> str:
    """
    Renders the entry page.

    :param bundle_path: URL path of the bundle script.
    :param title: Page title.
    :return: HTML text.
    """
    return Template(ENTRY_PAGE_TEMPLATE).render(bundle_path=bundle_path, title=title)


def synthesize_entry_page(root: str, dist_name: str = "dist") -> str:
    """
    Writes dist/index.html next to a copy of the bundle under dist/bundle.

    :param root: Directory holding bundle/bundle.js and the dist directory.
    :param dist_name: Name of the distributable directory.
    :return: Path of the written page.
    """
    dist_dir = os.path.join(root, dist_name)
    os.makedirs(dist_dir, exist_ok=True)
    bundle = os.path.join(root, BUNDLE_FILE)
    served = os.path.join(dist_dir, BUNDLE_FILE)
    if os.path.isfile(bundle) and not os.path.isfile(served):
        copy_file(bundle, served)
    page = os.path.join(dist_dir, ENTRY_PAGE)
    with open(page, "w") as f:
        f.write(render_entry_page())
    print(f"Synthesized {page} referencing {BUNDLE_SERVE_PATH}")
    return page
