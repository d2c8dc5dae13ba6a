import json
import os

import pytest
from click.testing import CliRunner

from hulybuild.CLI.main import cli
from hulybuild.MANAGERS.update_lock import LOCK_NAME


@pytest.fixture
def invoke(deploy_dir, fake_runner):
    def _invoke(*args):
        runner = CliRunner()
        return runner.invoke(cli, ['--root', str(deploy_dir)] + list(args), obj={'runner': fake_runner})
    return _invoke


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    for command in ('build', 'check', 'update', 'redeploy', 'set-images'):
        assert command in result.output


def test_cli_build_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['build', '--help'])
    assert result.exit_code == 0
    assert '--tag-suffix' in result.output
    assert '--front-dist' in result.output


def test_build_requires_source(invoke):
    result = invoke('build')
    assert result.exit_code == 1
    assert 'Error: Either --repo or --path must be provided' in result.output


def test_build_rejects_both_sources(invoke, platform_dir):
    result = invoke('build', '--repo', 'https://example.com/platform.git', '--path', str(platform_dir))
    assert result.exit_code == 1
    assert 'mutually exclusive' in result.output


def test_build_missing_path_leaves_overrides(invoke, deploy_dir, tmp_path):
    result = invoke('build', '--path', str(tmp_path / 'nonexistent'))
    assert result.exit_code == 1
    assert 'Source path does not exist' in result.output
    assert not (deploy_dir / '.images.conf').exists()


def test_build(invoke, deploy_dir, platform_dir, write_file, fake_runner):
    service = platform_dir / 'services' / 'rekoni'
    write_file(service / 'Dockerfile', 'FROM node:20\nCOPY . .\n')

    result = invoke('build', '--path', str(platform_dir), '--tag-suffix', 'cli1', '--registry', 'ghcr.io/acme')

    assert result.exit_code == 0
    assert 'Built 1 service(s)' in result.output
    assert (deploy_dir / '.images.conf').read_text() == 'IMAGE_REKONI=ghcr.io/acme/huly/rekoni:local-cli1\n'
    assert fake_runner.ran('docker', 'build', '-t', 'ghcr.io/acme/huly/rekoni:local-cli1')


def test_check_without_snapshot(invoke):
    result = invoke('check')
    assert result.exit_code == 2
    assert 'Run `hulybuild build` first' in result.output


def test_check_local_source(invoke, deploy_dir, platform_dir):
    (deploy_dir / '.build-source.json').write_text(json.dumps({'path': str(platform_dir)}))
    assert invoke('check').exit_code == 3


def test_update_when_locked(invoke, deploy_dir):
    (deploy_dir / LOCK_NAME).mkdir()
    result = invoke('update')
    assert result.exit_code == 1
    assert 'Another update is in progress' in result.output


def test_update_without_snapshot(invoke):
    result = invoke('update', '--force')
    assert result.exit_code == 2


def test_set_images(invoke, tmp_path, fake_runner):
    env_file = tmp_path / 'prod.images.conf'
    env_file.write_text('IMAGE_ACCOUNT=ghcr.io/acme/huly/account:local-1\nIMAGE_LOVE=ghcr.io/acme/huly/love:local-1\n')

    result = invoke('set-images', '--env-file', str(env_file), '--namespace', 'huly')

    assert result.exit_code == 0
    assert fake_runner.commands == [
        ['kubectl', '-n', 'huly', 'set', 'image', 'deployment/account',
         'account=ghcr.io/acme/huly/account:local-1'],
    ]


def test_set_images_missing_env_file(invoke, tmp_path):
    result = invoke('set-images', '--env-file', str(tmp_path / 'missing.conf'))
    assert result.exit_code == 2


def test_redeploy(invoke, deploy_dir, fake_runner):
    result = invoke('redeploy')
    assert result.exit_code == 0
    assert fake_runner.ran('up', '-d', '--force-recreate', '--remove-orphans', '--pull', 'always')
    assert 'Done.' in result.output


def test_settings_file_is_used(invoke, deploy_dir, fake_runner):
    (deploy_dir / 'hulybuild.yaml').write_text('compose: podman-compose\n')
    result = invoke('redeploy')
    assert result.exit_code == 0
    assert fake_runner.commands[0][0] == 'podman-compose'


def test_invalid_settings_file(invoke, deploy_dir):
    (deploy_dir / 'hulybuild.yaml').write_text('submodule_jobs: many\n')
    result = invoke('check')
    assert result.exit_code == 1
    assert 'Error: Invalid settings' in result.output


def test_redeploy_from_source_requires_source(invoke, fake_runner):
    result = invoke('redeploy', '--from-source')
    assert result.exit_code == 1
    assert fake_runner.commands == []


def test_build_uses_cwd_root(platform_dir, tmp_path, write_file, fake_runner):
    write_file(platform_dir / 'services' / 'love' / 'Dockerfile', 'FROM node:20\n')
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=str(tmp_path)):
        result = runner.invoke(cli, ['build', '--path', str(platform_dir), '--tag-suffix', 'x'],
                               obj={'runner': fake_runner})
        assert result.exit_code == 0
        assert os.path.isfile('.images.conf')
