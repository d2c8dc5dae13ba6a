import os

import pytest

from hulybuild.BUILDERS.package_manager import PackageManager, choose_package_manager
from hulybuild.BUILDERS.source_acquirer import SourceAcquirer
from hulybuild.BUILDERS.workspace_builder import WorkspaceBuilder
from hulybuild.exceptions import AcquisitionError
from hulybuild.MODELS.build_config import BuildConfig

REPO = "https://github.com/hcengineering/platform.git"


def remote_config(deploy_dir, ref=""):
    return BuildConfig.create(root_dir=str(deploy_dir), repo=REPO, ref=ref, tag_suffix="t")


def test_local_path(deploy_dir, platform_dir, fake_runner, capsys):
    config = BuildConfig.create(root_dir=str(deploy_dir), path=str(platform_dir), ref="main")
    assert SourceAcquirer(config, fake_runner).acquire() == str(platform_dir)
    assert fake_runner.commands == []
    assert "Warning: --ref is ignored when using --path" in capsys.readouterr().out


def test_local_path_missing(deploy_dir, tmp_path, fake_runner):
    config = BuildConfig.create(root_dir=str(deploy_dir), path=str(tmp_path / "missing"))
    with pytest.raises(AcquisitionError, match="does not exist"):
        SourceAcquirer(config, fake_runner).acquire()


def test_clone_with_ref(deploy_dir, fake_runner):
    config = remote_config(deploy_dir, ref="v0.6.500")
    checkout = config.checkout_dir

    assert SourceAcquirer(config, fake_runner).acquire() == checkout
    assert fake_runner.commands == [
        ["git", "clone", REPO, checkout],
        ["git", "-C", checkout, "submodule", "sync", "--recursive"],
        ["git", "-C", checkout, "submodule", "update", "--init", "--recursive", "--jobs", "4"],
        ["git", "-C", checkout, "checkout", "v0.6.500"],
        ["git", "-C", checkout, "pull", "--ff-only"],
        ["git", "-C", checkout, "submodule", "sync", "--recursive"],
        ["git", "-C", checkout, "submodule", "update", "--init", "--recursive", "--jobs", "4"],
    ]


def test_existing_clone_is_fetched(deploy_dir, fake_runner):
    config = remote_config(deploy_dir)
    os.makedirs(os.path.join(config.checkout_dir, ".git"))
    fake_runner.on("submodule", return_code=1)

    SourceAcquirer(config, fake_runner).acquire()

    assert fake_runner.commands[0] == ["git", "-C", config.checkout_dir, "fetch", "--all", "--tags"]
    assert not fake_runner.ran("clone")
    assert not fake_runner.ran("checkout")


@pytest.mark.parametrize("failing", ["clone", "checkout"])
def test_acquisition_failures(deploy_dir, fake_runner, failing):
    fake_runner.on(failing, return_code=128)
    with pytest.raises(AcquisitionError):
        SourceAcquirer(remote_config(deploy_dir, ref="main"), fake_runner).acquire()


def test_pull_failure_is_tolerated(deploy_dir, fake_runner):
    fake_runner.on("pull", "--ff-only", return_code=1)
    SourceAcquirer(remote_config(deploy_dir, ref="v1"), fake_runner).acquire()
    assert fake_runner.commands[-1][-1] == "4"


def workspace_config(deploy_dir, platform_dir, **values):
    return BuildConfig.create(root_dir=str(deploy_dir), path=str(platform_dir), **values)


def test_workspace_build_skipped_without_manifest(deploy_dir, platform_dir, fake_runner):
    assert not WorkspaceBuilder(workspace_config(deploy_dir, platform_dir), fake_runner).build(str(platform_dir))
    assert fake_runner.commands == []


def test_workspace_build(deploy_dir, platform_dir, fake_runner):
    (platform_dir / "rush.json").write_text("{}")
    config = workspace_config(deploy_dir, platform_dir, warm_front=True)

    assert WorkspaceBuilder(config, fake_runner).build(str(platform_dir))
    rush = ["npx", "-y", "@microsoft/rush"]
    assert fake_runner.commands == [
        rush + ["purge"],
        rush + ["install"],
        rush + ["build", "-t", "@hcengineering/prod"],
        rush + ["build"],
    ]
    assert all(call["cwd"] == str(platform_dir) for call in fake_runner.calls)


def test_workspace_install_failure(deploy_dir, platform_dir, fake_runner):
    (platform_dir / "rush.json").write_text("{}")
    fake_runner.on("@microsoft/rush", "install", return_code=1)

    assert not WorkspaceBuilder(workspace_config(deploy_dir, platform_dir), fake_runner).build(str(platform_dir))
    assert not fake_runner.ran("@microsoft/rush", "build")


def test_workspace_build_without_npx(deploy_dir, platform_dir, fake_runner):
    (platform_dir / "rush.json").write_text("{}")
    fake_runner.missing_tools = {"npx"}

    assert not WorkspaceBuilder(workspace_config(deploy_dir, platform_dir), fake_runner).build(str(platform_dir))
    assert fake_runner.commands == []


def test_choose_package_manager(platform_dir):
    context = platform_dir / "services" / "love"
    context.mkdir(parents=True)
    assert choose_package_manager(str(context), str(platform_dir)) == PackageManager.NPM

    (context / "yarn.lock").write_text("")
    assert choose_package_manager(str(context), str(platform_dir)) == PackageManager.YARN

    (platform_dir / "pnpm-lock.yaml").write_text("")
    assert choose_package_manager(str(context), str(platform_dir)) == PackageManager.PNPM
