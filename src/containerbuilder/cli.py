import click
import logging
import signal
import traceback
from pathlib import Path
from typing import Optional, Tuple

from click.core import ParameterSource

from . import constants, __version__
from .backends import create_backend
from .builder import Builder, Resolver, ArtifactGate
from .ci import RunContext
from .config import Config
from .datacls import BuildRequest, RegistryRef
from .utils import setup_logger, parse_levels
from .exceptions import (
    ContainerBuilderError,
    ConfigurationError,
    ResolutionError,
)


def setup_logging(debug: bool, log_levels: Optional[str] = None, log_file: Optional[str] = None):
    """Setup logger with debug and module-level configuration"""
    setup_logger(debug=debug, module_levels=parse_levels(log_levels), log_file=log_file)


def handle_errors(func):
    """Decorator mapping application errors to exit codes"""
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            return func(*args, **kwargs)
        except ConfigurationError as e:
            logging.error(f"Configuration error: {e}")
            if ctx.obj.get('debug'):
                traceback.print_exc()
            ctx.exit(constants.EXIT_BAD_INPUT)
        except ResolutionError as e:
            logging.error(f"Resolution error: {e}")
            if ctx.obj.get('debug'):
                traceback.print_exc()
            ctx.exit(constants.EXIT_BAD_INPUT)
        except ContainerBuilderError as e:
            logging.error(f"An unexpected application error occurred: {e}")
            if ctx.obj.get('debug'):
                traceback.print_exc()
            ctx.exit(constants.EXIT_FAILED)
    return wrapper


def load_config(config_file: Optional[str], prefix: Optional[str], definitions_dir: Optional[str]) -> Config:
    return Config(config_file, overrides={'prefix': prefix, 'definitions_dir': definitions_dir})


def pick_registry(context: RunContext, url: Optional[str], tags: Tuple[str, ...]) -> Optional[RegistryRef]:
    """Explicit --registry/--tag win over what the CI provider exposes."""
    if url:
        return RegistryRef(url=url, tags=tags or (context.registry.tags if context.registry else (constants.LATEST_TAG,)))
    if context.registry is not None and tags:
        return RegistryRef(url=context.registry.url, tags=tags)
    return context.registry


@handle_errors
def do_build(targets, config_file, parallel, force, test, push, fail_fast, dry_run, output_dir,
             cache_dir, no_cache, tmpdir, prefix, definitions_dir, backend, privilege,
             ci, read_only, registry, tags):
    """Execute build command"""
    ctx = click.get_current_context()
    if no_cache and ctx.get_parameter_source('cache_dir') == ParameterSource.COMMANDLINE:
        raise ConfigurationError("--cache-dir and --no-cache cannot be used together.")

    config = load_config(config_file, prefix, definitions_dir)
    run_context = RunContext.detect(provider=ci)
    if read_only is None:
        read_only = run_context.read_only

    request = BuildRequest.create(
        names=tuple(targets),
        parallel=parallel,
        force=force,
        test=test,
        push=push,
        fail_fast=fail_fast,
        read_only=read_only,
        output_dir=Path(output_dir) if output_dir else config.catalog.definitions_dir,
        cache_dir=None if no_cache else Path(cache_dir).expanduser(),
        tmp_dir=Path(tmpdir),
        privilege=privilege,
        registry=pick_registry(run_context, registry, tuple(tags)),
        work_dir=config.catalog.definitions_dir.parent,
    )

    if dry_run:
        show_plan(config, request)
        return

    builder = Builder(request, config.catalog, create_backend(backend, smoke=config.smoke))
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: builder.cancel())
    try:
        summary = builder.run()
    finally:
        signal.signal(signal.SIGTERM, previous)

    click.echo(summary.render())
    ctx.exit(summary.exit_code)


def show_plan(config: Config, request: BuildRequest):
    gate = ArtifactGate(force=request.force)
    for target in Resolver(config.catalog, request.output_dir).resolve(request.names):
        click.echo(f"{target.name}\t{gate.decide(target).value}\t{target.definition} -> {target.output}")


@handle_errors
def do_targets(config_file, prefix, definitions_dir):
    """Execute targets command"""
    config = load_config(config_file, prefix, definitions_dir)
    catalog = config.catalog
    click.echo("Targets:")
    for name in catalog.targets:
        definition = catalog.definition_path(name)
        marker = "" if definition.is_file() else "  (missing)"
        click.echo(f"  {name}\t{definition}{marker}")
    click.echo("Groups:")
    for group, members in catalog.all_groups.items():
        click.echo(f"  {group}\t{' '.join(members)}")


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('-l', '--log-levels', help="Comma-separated per-module log levels (e.g., 'sched=DEBUG,app=INFO')")
@click.option('-f', '--log-file', help='Path to log file')
@click.version_option(version=__version__, prog_name='containerbuilder')
@click.pass_context
def cli(ctx, debug, log_levels, log_file):
    """Container Builder - Build, test and publish container images

    \b
    Examples:
      cbuild build                     Build all containers
      cbuild build rocky8              Build only the Rocky 8 container
      cbuild build --parallel 2        Build containers in parallel
      cbuild build --force rocky9      Force rebuild of the Rocky 9 container
    """
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    setup_logging(debug, log_levels, log_file)


def catalog_options(func):
    func = click.option('-c', '--config', 'config_file', type=click.Path(dir_okay=False),
                        help='Target catalog YAML file')(func)
    func = click.option('--prefix', envvar='CONTAINER_PREFIX', help='Prefix for container names')(func)
    func = click.option('-d', '--definitions-dir', help='Directory holding the definition files')(func)
    return func


@cli.command()
@click.argument('targets', nargs=-1)
@catalog_options
@click.option('-p', '--parallel', type=int, default=constants.DEFAULT_PARALLEL, envvar='BUILD_PARALLEL',
              show_default=True, help='Build N containers in parallel')
@click.option('--force', is_flag=True, help='Force rebuild even if the artifact exists')
@click.option('--test', is_flag=True, help='Run container tests after build')
@click.option('--push', is_flag=True, help='Push built containers to the registry')
@click.option('--fail-fast', is_flag=True, help='Stop every target after its current stage on the first failure')
@click.option('-n', '--dry-run', is_flag=True, help='Show what would be built and exit')
@click.option('-o', '--output-dir', help='Output directory for artifacts (default: definitions directory)')
@click.option('--cache-dir', default=constants.DEFAULT_CACHE_DIR, envvar='APPTAINER_CACHE_DIR',
              show_default=True, help='Build cache directory')
@click.option('--no-cache', is_flag=True, help='Disable the build cache')
@click.option('-t', '--tmpdir', default=constants.DEFAULT_TMPDIR, envvar='TMPDIR',
              show_default=True, help='Temporary directory for builds')
@click.option('--backend', type=click.Choice(['auto', *constants.APPTAINER_TOOLS]), default='auto',
              show_default=True, help='Container tool to use')
@click.option('--privilege', type=click.Choice([m.value for m in constants.PrivilegeMode]),
              default=constants.PrivilegeMode.UNPRIVILEGED.value, show_default=True,
              help="'elevated' builds through sudo, 'unprivileged' uses fakeroot when available")
@click.option('--ci', type=click.Choice(['auto'] + [p.value for p in constants.CIProvider]), default='auto',
              show_default=True, help='CI provider to read the run context from')
@click.option('--read-only/--no-read-only', default=None,
              help='Force or forbid read-only mode (default: derived from the CI context)')
@click.option('--registry', help='Registry namespace to push to, e.g. ghcr.io/acme')
@click.option('--tag', 'tags', multiple=True, help='Tag to push (repeatable, in order)')
@click.option('--debug', is_flag=True, help='Enable debug logging for this command')
@click.pass_context
def build(ctx, targets, config_file, prefix, definitions_dir, parallel, force, test, push, fail_fast,
          dry_run, output_dir, cache_dir, no_cache, tmpdir, backend, privilege, ci, read_only,
          registry, tags, debug):
    """Build containers for TARGETS (default: all)

    \b
    Exit status: 0 all built or skipped, 1 a target failed,
    2 invalid target, missing definition or bad configuration.
    """
    if debug and not ctx.obj.get('debug'):
        ctx.obj['debug'] = True
        logging.getLogger().setLevel(logging.DEBUG)
    do_build(targets, config_file, parallel, force, test, push, fail_fast, dry_run, output_dir,
             cache_dir, no_cache, tmpdir, prefix, definitions_dir, backend, privilege,
             ci, read_only, registry, tags)


@cli.command()
@catalog_options
@click.pass_context
def targets(ctx, config_file, prefix, definitions_dir):
    """List buildable targets and groups"""
    do_targets(config_file, prefix, definitions_dir)
