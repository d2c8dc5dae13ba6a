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
Command Line Interface for hulybuild.
"""
import functools
import os

import click

from ..exceptions import HulyBuildError
from ..MANAGERS.build_pipeline import BuildPipeline
from ..MANAGERS.environment_manager import EnvironmentManager
from ..MANAGERS.kube_image_setter import KubeImageSetter
from ..MANAGERS.redeploy_driver import RedeployDriver
from ..MANAGERS.update_checker import UpdateChecker
from ..MANAGERS.update_driver import UpdateDriver
from ..MODELS.build_config import BuildConfig
from ..PARSERS.settings_parser import SettingsParser


def build_options(f):
    """Flags shared by `build` and `redeploy --from-source`."""
    options = [
        click.option('--repo', help='Git repository URL to clone and build'),
        click.option('--path', 'local_path', help='Local platform checkout to build'),
        click.option('--ref', help='Branch, tag or commit to check out (with --repo)'),
        click.option('--registry', 'registry_prefix', help='Registry/user prefix for built images'),
        click.option('--no-cache', is_flag=True, help='Build without cache and pull base images'),
        click.option('--tag-suffix', help='Tag suffix instead of the UTC timestamp'),
        click.option('--front-dist', type=click.Path(), help='Prebuilt front-end dist directory'),
        click.option('--warm-front', is_flag=True, help='Build the front-end package before the full workspace build'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def handle_errors(f):
    """Reports HulyBuildError as `Error: ...` and exits with its status."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except HulyBuildError as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(e.exit_code)
    return wrapper


def _build_config(ctx, repo, local_path, ref, registry_prefix, no_cache,
                  tag_suffix, front_dist, warm_front) -> BuildConfig:
    return BuildConfig.create(
        root_dir=ctx.obj['root'],
        repo=repo or "",
        path=local_path or "",
        ref=ref or "",
        registry_prefix=registry_prefix or "",
        no_cache=no_cache,
        tag_suffix=tag_suffix,
        front_dist=front_dist,
        warm_front=warm_front,
        tools=ctx.obj['tools'],
    )


@click.group()
@click.option('--root', '-C', default='.', type=click.Path(file_okay=False),
              help='Deployment directory (holds .images.conf and .build-source.json)')
@click.pass_context
@handle_errors
def cli(ctx, root):
    """
    hulybuild - build Huly images from source and deploy them.

    Builds service images from a platform checkout, writes .images.conf
    overrides and keeps a compose or Kubernetes deployment current.
    """
    ctx.ensure_object(dict)
    ctx.obj['root'] = os.path.abspath(root)
    if 'tools' not in ctx.obj:
        ctx.obj['tools'] = SettingsParser().load(ctx.obj['root'])
    ctx.obj.setdefault('runner', None)


@cli.command()
@build_options
@click.pass_context
@handle_errors
def build(ctx, **options):
    """Build images from source and write .images.conf."""
    config = _build_config(ctx, **options)
    report = BuildPipeline(config, ctx.obj['runner']).run()

    click.echo(f"Built {len(report.built)} service(s), skipped {len(report.skipped)}")
    for name, tag in report.built.items():
        click.echo(f"  {name:15} {tag}")
    for name, reason in report.skipped.items():
        click.echo(f"  {name:15} skipped: {reason}")


@cli.command()
@click.pass_context
@handle_errors
def check(ctx):
    """
    Check the recorded source for upstream changes.

    Exit status: 0 up to date, 2 no snapshot, 3 local-path or unreadable
    snapshot, 4 missing checkout, 10 update available.
    """
    result = UpdateChecker(ctx.obj['root'], ctx.obj['tools'], ctx.obj['runner']).check()
    click.echo(result.message, err=result.status in (2, 3, 4))
    ctx.exit(int(result.status))


@cli.command()
@click.option('--force', is_flag=True, help='Remove a stale update lock first')
@click.pass_context
@handle_errors
def update(ctx, force):
    """Rebuild from the recorded source and restart services."""
    UpdateDriver(ctx.obj['root'], force=force, tools=ctx.obj['tools'],
                 runner=ctx.obj['runner']).run()


@cli.command()
@click.option('--from-source', is_flag=True, help='Build images from source before redeploying')
@build_options
@click.pass_context
@handle_errors
def redeploy(ctx, from_source, **options):
    """Pull and recreate all services, optionally building from source first."""
    config = _build_config(ctx, **options) if from_source else None
    RedeployDriver(ctx.obj['root'], ctx.obj['tools'], ctx.obj['runner']).run(config)


@cli.command('set-images')
@click.option('--env-file', type=click.Path(), help='Env file with IMAGE_* overrides (default: .images.conf)')
@click.option('--namespace', default='default', show_default=True, help='Kubernetes namespace')
@click.pass_context
@handle_errors
def set_images(ctx, env_file, namespace):
    """Apply image overrides to Kubernetes deployments."""
    if env_file and not os.path.isfile(env_file):
        raise click.BadParameter(f"{env_file} not found", param_hint='--env-file')
    overrides = EnvironmentManager(ctx.obj['root']).image_overrides(env_file)
    KubeImageSetter(namespace, ctx.obj['tools'], ctx.obj['runner']).apply(overrides)
    click.echo("Done.")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
