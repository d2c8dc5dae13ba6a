import json
import os

import pytest

from hulybuild.BUILDERS.artifact_resolver import ArtifactResolver
from hulybuild.MODELS.artifacts import ArtifactKind
from hulybuild.MODELS.build_config import BuildConfig


@pytest.fixture
def config(deploy_dir, platform_dir):
    return BuildConfig.create(root_dir=str(deploy_dir), path=str(platform_dir), tag_suffix="test")


def make_resolver(config, platform_dir, runner):
    return ArtifactResolver(config, str(platform_dir), runner)


def emit_bundle(command, cwd):
    os.makedirs(os.path.join(cwd, "bundle"), exist_ok=True)
    with open(os.path.join(cwd, "bundle", "bundle.js"), "w") as f:
        f.write("bundle")


def test_empty_requirement_runs_nothing(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "services" / "rekoni"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY . .\n")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))
    assert result.ok
    assert result.outcomes == []
    assert fake_runner.commands == []


def test_dist_and_lib_substitution(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "account"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY lib /app/lib\nCOPY dist /app/dist\n")
    write_file(context / "build" / "index.js", "module.exports = {}")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert (context / "dist" / "index.js").is_file()
    assert (context / "lib" / "index.js").is_file()
    assert result.outcomes[-1].step == "substitution"
    assert result.outcomes[-1].satisfied
    # No workspace and no package.json: nothing to run
    assert fake_runner.commands == []


def tree(root):
    files = {}
    for dirpath, _, filenames in os.walk(str(root)):
        for name in filenames:
            path = os.path.join(dirpath, name)
            with open(path) as f:
                files[os.path.relpath(path, str(root))] = f.read()
    return files


def test_lib_substitutes_for_dist(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "account"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY dist /app/dist\n")
    write_file(context / "lib" / "index.js", "module.exports = 1")
    write_file(context / "lib" / "server" / "routes.js", "module.exports = 2")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert result.outcomes[-1].detail == "lib -> dist"
    assert tree(context / "dist") == tree(context / "lib")
    assert len(tree(context / "dist")) == 2


def test_dist_substitutes_for_lib(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "account"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY lib /app/lib\n")
    write_file(context / "dist" / "index.js", "module.exports = 1")
    write_file(context / "dist" / "server" / "routes.js", "module.exports = 2")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert result.outcomes[-1].detail == "dist -> lib"
    assert tree(context / "lib") == tree(context / "dist")
    assert len(tree(context / "lib")) == 2


def test_bundle_found_by_search(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "collaborator"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY bundle/bundle.js ./\n")
    write_file(context / "out" / "deep" / "bundle.js", "console.log(1)")
    write_file(context / "out" / "deep" / "bundle.js.map", "{}")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert (context / "bundle" / "bundle.js").read_text() == "console.log(1)"
    assert (context / "bundle" / "bundle.js.map").is_file()


def test_bundle_in_dependencies_is_ignored(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "collaborator"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY bundle/bundle.js ./\n")
    write_file(context / "node_modules" / "pkg" / "bundle.js")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert not result.ok
    assert result.missing == [ArtifactKind.BUNDLE]


def test_model_json_from_other_service(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "transactor"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY bundle/model.json ./\n")
    write_file(platform_dir / "apps" / "account" / "bundle" / "model.json", '{"model": []}')

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert (context / "bundle" / "model.json").read_text() == '{"model": []}'


def test_entry_page_synthesized_from_bundle(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "apps" / "front"
    write_file(context / "Dockerfile", "FROM nginx\nCOPY bundle/bundle.js ./\nCOPY dist/ /usr/share/nginx/html/\n")
    write_file(context / "bundle" / "bundle.js", "console.log('front')")

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    page = (context / "dist" / "index.html").read_text()
    assert '<script src="/bundle/bundle.js" defer></script>' in page
    assert (context / "dist" / "bundle" / "bundle.js").is_file()
    assert result.outcomes[-1].step == "entry-page"


def test_package_manager_build(config, platform_dir, write_file, fake_runner):
    context = platform_dir / "services" / "love"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY lib ./lib\n")
    write_file(context / "package.json", json.dumps({"name": "@hcengineering/love"}))
    write_file(platform_dir / "pnpm-lock.yaml")
    fake_runner.on("pnpm", "run", "build",
                   effect=lambda command, cwd: os.makedirs(os.path.join(cwd, "lib")))

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert fake_runner.ran("corepack", "enable")
    assert fake_runner.ran("pnpm", "install", "--frozen-lockfile")
    # Stops once lib exists
    assert not fake_runner.ran("pnpm", "run", "bundle")
    build_call = next(c for c in fake_runner.calls if c["command"] == ["pnpm", "run", "build"])
    assert build_call["env"]["CI"] == "1"
    assert build_call["env"]["NODE_OPTIONS"] == "--max-old-space-size=4096"


def test_workspace_targeted_build(config, platform_dir, write_file, fake_runner):
    write_file(platform_dir / "rush.json", "{}")
    context = platform_dir / "pods" / "account"
    write_file(context / "Dockerfile", "FROM node:20\nCOPY bundle/bundle.js ./\n")
    fake_runner.on("@microsoft/rushx", "bundle", effect=emit_bundle)

    result = make_resolver(config, platform_dir, fake_runner).resolve(str(context))

    assert result.ok
    assert fake_runner.commands[0] == ["npx", "-y", "@microsoft/rush", "build", "-t", "@hcengineering/pod-account"]
    assert fake_runner.commands[1] == ["npx", "-y", "@microsoft/rushx", "bundle"]
    assert len(fake_runner.commands) == 2


def test_package_name(config, platform_dir, write_file, fake_runner):
    resolver = make_resolver(config, platform_dir, fake_runner)
    write_file(platform_dir / "pods" / "server" / "package.json", json.dumps({"name": "@hcengineering/server"}))
    assert resolver.package_name(str(platform_dir / "pods" / "server")) == "@hcengineering/server"
    assert resolver.package_name(str(platform_dir / "pods" / "stats")) == "@hcengineering/pod-stats"
