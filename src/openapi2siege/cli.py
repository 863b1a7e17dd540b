import sys
import click
import logging
from typing import Optional

from .config.settings import ConversionSettings, load_settings
from .errors import ConversionError
from .ir.models import APISpec
from .parser.openapi import load_from_file
from .resolver.engine import convert as convert_spec
from .siege.url_list import render
from .siege.writer import PlanWriter


# Setup simplified logging for CLI
def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    format_str = '%(levelname)s: %(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    logging.basicConfig(level=level, format=format_str)


def _load(conf: Optional[str], spec: Optional[str]):
    try:
        settings = load_settings(conf)
    except ConversionError as e:
        click.echo(f"Error loading settings: {e}", err=True)
        sys.exit(1)

    if spec:
        settings.spec = spec

    try:
        api_spec = load_from_file(settings.spec)
    except Exception as e:
        click.echo(f"Error parsing {settings.spec}: {e}", err=True)
        sys.exit(1)

    return settings, api_spec


def _convert(api_spec: APISpec, settings: ConversionSettings):
    try:
        return convert_spec(api_spec, settings)
    except ConversionError as e:
        click.echo(f"Error during conversion: {e}", err=True)
        sys.exit(2)


@click.group()
@click.version_option(package_name="openapi2siege")
def cli():
    """OpenAPI to Siege URLs file converter."""
    pass


@cli.command()
@click.option('--conf', '-c', type=click.Path(), help='Settings file to use (default: oa2s.yaml)')
@click.option('--spec', '-s', type=click.Path(exists=True), help='Path to the OpenAPI JSON/YAML file')
@click.option('--urls', help='Path of the urls.txt to generate')
@click.option('--cookies', help='Path of the cookies.txt to generate')
@click.option('--config', 'config_path', help='Path of the siege.conf to generate')
@click.option('--server-description', help='Use the server matching this description')
@click.option('--use-first-server', is_flag=True, help='Use the first server in the document')
@click.option('--dry-run', is_flag=True, help='Simulate actions without writing files')
@click.option('--verbose', is_flag=True, help='Print detailed logs')
def convert(
    conf: Optional[str],
    spec: Optional[str],
    urls: Optional[str],
    cookies: Optional[str],
    config_path: Optional[str],
    server_description: Optional[str],
    use_first_server: bool,
    dry_run: bool,
    verbose: bool,
):
    """Convert an OpenAPI document into Siege URLs, config and cookie files."""
    setup_logging(verbose)
    settings, api_spec = _load(conf, spec)

    if urls:
        settings.siege.urls = urls
    if cookies:
        settings.siege.cookies = cookies
    if config_path:
        settings.siege.config = config_path
    if server_description:
        settings.server.description = server_description
    if use_first_server:
        settings.server.use_first = True

    plan = _convert(api_spec, settings)

    try:
        written = PlanWriter(settings.siege, dry_run=dry_run).write(plan)
    except OSError as e:
        click.echo(f"Error writing output: {e}", err=True)
        sys.exit(2)

    click.echo(f"\nConverted {len(plan.requests)} request(s) from {api_spec.title} v{api_spec.version}")
    if dry_run:
        click.echo("  [DRY RUN] No files were actually written.")
    for output in written:
        click.echo(f"To use, run\n\t{output.command}")


@cli.command()
@click.option('--conf', '-c', type=click.Path(), help='Settings file to use (default: oa2s.yaml)')
@click.option('--spec', '-s', type=click.Path(exists=True), help='Path to the OpenAPI JSON/YAML file')
@click.option('--verbose', is_flag=True, help='Print detailed logs')
def plan(conf: Optional[str], spec: Optional[str], verbose: bool):
    """Print the URLs file that would be generated."""
    setup_logging(verbose)
    settings, api_spec = _load(conf, spec)
    click.echo(render(_convert(api_spec, settings).requests))


def main():
    cli()


if __name__ == "__main__":
    main()
