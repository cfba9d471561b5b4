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
Command Line Interface for mlcompat.
"""
import logging

import click
import yaml

from ..BUILDERS.environment_resolver import EnvironmentResolver
from ..exceptions import CompatibilityError, TableLoadError
from ..PARSERS.build_config_parser import BuildConfigParser
from ..PARSERS.table_parser import load_default_tables
from ..RESOLVER.compatibility_resolver import CompatibilityResolver
from ..UTILS.settings import Settings


@click.group()
@click.option('--tables-dir', default=None, help='Directory with compatibility table JSON files')
@click.option('--env-file', default=None, help='Path to a .env file with MLCOMPAT_* settings')
@click.pass_context
def cli(ctx, tables_dir, env_file):
    """
    mlcompat - ML framework compatibility resolver.

    Answers which CUDA, cuDNN, base image and package index go with a
    TensorFlow or PyTorch version.
    """
    ctx.ensure_object(dict)
    try:
        settings = Settings.from_env(env_file)
    except ValueError as e:
        raise click.ClickException(f"Invalid settings: {e}") from e
    if tables_dir:
        settings = settings.model_copy(update={'tables_dir': tables_dir})
    logging.basicConfig(
        level=settings.log_level,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        tables = load_default_tables(settings)
    except TableLoadError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj['settings'] = settings
    ctx.obj['resolver'] = CompatibilityResolver(tables, settings.cuda_repository)


@cli.command('tf-cuda')
@click.argument('version')
@click.pass_context
def tf_cuda(ctx, version):
    """CUDA and CuDNN for a TensorFlow version."""
    try:
        cuda, cudnn = ctx.obj['resolver'].cuda_for_tf(version)
    except CompatibilityError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"cuda={cuda}")
    click.echo(f"cudnn={cudnn}")


@cli.command('torch-cudas')
@click.argument('version')
@click.option('--latest', is_flag=True, help='Only print the latest CUDA version')
@click.pass_context
def torch_cudas(ctx, version, latest):
    """CUDA versions with a GPU build of a torch version."""
    resolver = ctx.obj['resolver']
    try:
        cudas = resolver.cudas_for_torch(version)
        if latest:
            cudas = [resolver.latest_cuda(cudas)]
    except CompatibilityError as e:
        raise click.ClickException(str(e)) from e
    for cuda in cudas:
        click.echo(cuda)


@cli.command()
@click.argument('cuda')
@click.pass_context
def cudnns(ctx, cuda):
    """CuDNN versions available in base images for a CUDA version."""
    for cudnn in ctx.obj['resolver'].cudnns_for_cuda(cuda):
        click.echo(cudnn)


@cli.command('base-image')
@click.argument('cuda')
@click.argument('cudnn', required=False)
@click.pass_context
def base_image(ctx, cuda, cudnn):
    """Base image for a CUDA version and CuDNN (latest CuDNN if omitted)."""
    resolver = ctx.obj['resolver']
    try:
        if not cudnn:
            cudnn = resolver.latest_cudnn_for_cuda(cuda)
        click.echo(resolver.cuda_base_image_for(cuda, cudnn))
    except CompatibilityError as e:
        raise click.ClickException(str(e)) from e


@cli.command('latest-tf')
@click.pass_context
def latest_tf(ctx):
    """Latest TensorFlow version and its CUDA and CuDNN."""
    try:
        entry = ctx.obj['resolver'].latest_tf()
    except CompatibilityError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"tensorflow={entry.tf}")
    click.echo(f"cuda={entry.cuda}")
    click.echo(f"cudnn={entry.cudnn}")


@cli.command()
@click.argument('framework', type=click.Choice(['tensorflow', 'torch', 'torchvision']))
@click.argument('version')
@click.option('--cuda', default=None, help='CUDA version for a GPU build')
@click.pass_context
def package(ctx, framework, version, cuda):
    """Pinned package and index URL for a framework version."""
    try:
        pkg = ctx.obj['resolver'].package(framework, version, cuda)
    except CompatibilityError as e:
        raise click.ClickException(str(e)) from e
    click.echo(pkg.requirement)
    if pkg.index_url:
        click.echo(f"--extra-index-url {pkg.index_url}")


@cli.command()
@click.argument('config', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def resolve(ctx, config):
    """Resolve a YAML build configuration."""
    try:
        build_config = BuildConfigParser().parse(config)
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid build configuration {config}: {e}") from e

    environment_resolver = EnvironmentResolver(ctx.obj['resolver'], ctx.obj['settings'])
    try:
        environment = environment_resolver.resolve(build_config)
    except CompatibilityError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"base_image={environment.base_image}")
    click.echo(f"python={environment.python_version}")
    if environment.gpu:
        click.echo(f"cuda={environment.cuda}")
        click.echo(f"cudnn={environment.cudnn}")
    for url in environment.index_urls:
        click.echo(f"--extra-index-url {url}")
    for requirement in environment.requirements:
        click.echo(requirement)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
