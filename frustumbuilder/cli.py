"""Click CLI commands for FrustumBuilder."""

import logging

import click

from .builder import FrustumBuilder
from .constants import SUPPORTED_DATASETS, SUPPORTED_FORMATS, SUPPORTED_ORIENTATIONS
from .exceptions import FrustumError
from .export import export_frustum

logger = logging.getLogger(__name__)


def _click_error(action: str, error: FrustumError) -> click.ClickException:
    """Log the structured error and wrap its message and code for click."""
    details = error.to_error_dict()
    logger.error(f"Error {action} Frustum: {details['category']}/{details['code']} "
                 f"(stage={details['stage'] or '-'})")
    return click.ClickException(f"{details['message']} [{details['code']}]")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--root', type=click.Path(file_okay=False), default=None,
              help='Directory holding generated Frustums')
@click.pass_context
def cli(ctx, verbose: bool, root):
    """Generate, inspect and export Frustums (terrain plus buildings)."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')
    ctx.obj = FrustumBuilder(root=root)


@cli.command()
@click.argument('name')
@click.argument('dataset', type=click.Choice(SUPPORTED_DATASETS))
@click.argument('top', type=float)
@click.argument('left', type=float)
@click.argument('bottom', type=float)
@click.argument('right', type=float)
@click.pass_obj
def generate(builder: FrustumBuilder, name: str, dataset: str,
             top: float, left: float, bottom: float, right: float):
    """Generate a Frustum, e.g. 'st-gallen srtmgl1 47.327618 9.295821 47.126480 9.621767'."""
    try:
        frustum = builder.generate(name, dataset, top, left, bottom, right)
    except FrustumError as e:
        raise _click_error("generating", e) from e

    columns, rows = frustum.get_size()
    click.echo(f"Generated {frustum.name}: {columns}x{rows} grid, "
               f"{len(frustum.footprints)} buildings")


@cli.command()
@click.argument('name')
@click.argument('fmt', metavar='FORMAT', type=click.Choice(SUPPORTED_FORMATS))
@click.argument('orientation', type=click.Choice(SUPPORTED_ORIENTATIONS))
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), default=None,
              help='Export directory')
@click.pass_obj
def export(builder: FrustumBuilder, name: str, fmt: str, orientation: str, output_dir):
    """Export a generated Frustum as a 3D model."""
    try:
        frustum = builder.load(name)
        path = export_frustum(frustum, fmt, orientation, output_dir)
    except FrustumError as e:
        raise _click_error("exporting", e) from e

    click.echo(f"Exported {path}")


@cli.command()
@click.argument('name')
@click.pass_obj
def info(builder: FrustumBuilder, name: str):
    """Print the size and mesh statistics of a generated Frustum."""
    try:
        frustum = builder.load(name)
    except FrustumError as e:
        raise _click_error("loading", e) from e

    columns, rows = frustum.get_size()
    b = frustum.bounds
    click.echo(f"{frustum.name} ({frustum.dataset})")
    click.echo(f"  bounds:    {b.describe()}")
    click.echo(f"  size:      {columns}x{rows}")
    click.echo(f"  buildings: {len(frustum.footprints)}")
    for label, mesh in (("terrain", frustum.get_terrain_mesh()),
                        ("buildings", frustum.get_buildings_mesh()),
                        ("base", frustum.get_base_mesh())):
        click.echo(f"  {label + ':':<10} {mesh.vertex_count} verts, "
                   f"{len(mesh.indices) // 3} faces")


if __name__ == '__main__':
    cli()
