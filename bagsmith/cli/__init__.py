"""
bagsmith CLI.

Command-line interface for creating, validating and inspecting bags.
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from bagsmith import __version__
from bagsmith.core.errors import BagError

console = Console(stderr=True)
logger = logging.getLogger("bagsmith")


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


def _parse_info(pairs: tuple[str, ...]) -> list[tuple[str, str]]:
    fields = []
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--info")
        key, value = pair.split("=", 1)
        fields.append((key.strip(), value.strip()))
    return fields


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
def main(verbose: bool, quiet: bool) -> None:
    """bagsmith: BagIt bag creation and integrity checks."""
    _configure_logging(verbose, quiet)


@main.command()
@click.argument("location", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("name")
@click.argument("sources", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--algorithm", "-a", "algorithms", multiple=True, help="Checksum algorithm (repeatable)")
@click.option("--tag-manifests/--no-tag-manifests", default=None, help="Write tag manifests")
@click.option("--follow-symlinks/--no-follow-symlinks", default=None, help="Follow symlinks in source directories")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Bag config YAML")
@click.option("--info", "info", multiple=True, help="bag-info.txt field as KEY=VALUE (repeatable)")
def create(
    location: Path,
    name: str,
    sources: tuple[Path, ...],
    algorithms: tuple[str, ...],
    tag_manifests: bool | None,
    follow_symlinks: bool | None,
    config_path: Path | None,
    info: tuple[str, ...],
) -> None:
    """Create a bag NAME under LOCATION from SOURCES."""
    from bagsmith.bag.bag import Bag
    from bagsmith.core.config import BAG_INFO_TXT, BagConfig

    try:
        config = BagConfig.load(config_path) if config_path else BagConfig()
        overrides = {}
        if algorithms:
            overrides["algorithms"] = list(algorithms)
        if follow_symlinks is not None:
            overrides["follow_symlinks"] = follow_symlinks
        if overrides:
            config = BagConfig.model_validate({**config.model_dump(), **overrides})
    except (OSError, ValueError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        raise SystemExit(1)

    info_fields = _parse_info(info)

    errors: list[BagError] = []
    try:
        bag = Bag.create(location, name, tag_manifests=tag_manifests, config=config)

        for source in sources:
            if source.is_dir():
                errors.extend(bag.add_directory(source))
            else:
                try:
                    bag.add_file(source, source.name)
                except BagError as e:
                    logger.error(f"Failed to add {source}: {e}")
                    errors.append(e)

        if info_fields:
            bag_info = bag.add_tag_file(BAG_INFO_TXT)
            for key, value in info_fields:
                bag_info.set_field(key, value)

        errors.extend(bag.save())
    except BagError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if errors:
        click.echo(f"Bag {bag.root} is incomplete ({len(errors)} errors):", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        raise SystemExit(1)

    click.echo(f"Created bag: {bag.root}")


@main.command()
@click.argument("bag_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print a JSON report")
@click.option("--fast", is_flag=True, help="Only check presence, not checksums")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Bag config YAML")
def validate(bag_path: Path, as_json: bool, fast: bool, config_path: Path | None) -> None:
    """Validate a bag's manifests, checksums and completeness."""
    from rich.table import Table

    from bagsmith.bag.bag import Bag
    from bagsmith.bag.report import BagReport
    from bagsmith.core.config import BagConfig

    try:
        config = BagConfig.load(config_path) if config_path else BagConfig()
        bag, errors = Bag.open(bag_path, config=config)
        result = bag.validate(verify_content=not fast)
    except (BagError, OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    errors.extend(result.errors)
    report = BagReport.from_bag(bag, errors)

    if as_json:
        click.echo(report.to_json(indent=True))
    else:
        out = Console()
        table = Table(title=f"Bag: {report.path}")
        table.add_column("Manifest")
        table.add_column("Algorithm")
        table.add_column("Entries", justify="right")
        for summary in report.manifests:
            table.add_row(summary.filename, summary.algorithm, str(summary.entries))
        out.print(table)
        out.print(f"Files checked: {result.files_checked}, valid: {result.files_valid}")
        for orphan in report.orphans:
            out.print(f"[yellow]orphan[/yellow] {orphan}")
        for warning in report.warnings:
            out.print(f"[yellow]warning[/yellow] {warning.message}")
        for error in report.errors:
            out.print(f"[red]{error.kind}[/red] {error.message}")
        out.print("[green]Bag is valid[/green]" if report.valid else "[red]Bag is invalid[/red]")

    if not report.valid:
        raise SystemExit(1)


@main.command()
@click.argument("bag_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
def orphans(bag_path: Path) -> None:
    """List files in a bag that nothing accounts for."""
    from bagsmith.bag.bag import Bag

    try:
        bag, errors = Bag.open(bag_path)
    except BagError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    for error in errors:
        click.echo(f"Warning: {error}", err=True)

    found = bag.orphans()
    if found:
        for orphan in found:
            click.echo(orphan)
    else:
        click.echo("No orphaned files", err=True)


if __name__ == "__main__":
    main()
