import sys
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer

from dotenv import load_dotenv, find_dotenv

from crdexport import settings
from crdexport.crd.assembler import assemble, validate_document, write_document
from crdexport.crd.errors import CRDExportError, InstallError
from crdexport.crd.registry import CRDRegistry

load_dotenv(find_dotenv())

app = typer.Typer(
    help="crdexport: export and install Kubernetes CustomResourceDefinitions",
    add_completion=False,
)


class DialectChoice(str, Enum):
    auto = "auto"
    structural = "structural"
    legacy = "legacy"


def _dialect(choice):
    return None if choice == DialectChoice.auto else choice.value


def _descriptors():
    registry = CRDRegistry.default()
    registry.discover_models(settings.model_packages())
    return registry.list()


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Logging level")
    ] = None,
):
    settings.configure_logging(log_level)


@app.command("export")
def export(
    output: Annotated[
        Optional[Path], typer.Option("-o", "--output", help="Output file")
    ] = None,
    dialect: Annotated[
        DialectChoice,
        typer.Option(
            "--dialect", help="Dialect to export; auto guards both for the chart"
        ),
    ] = DialectChoice.auto,
    force: Annotated[bool, typer.Option("--force", help="Rewrite unchanged output")] = False,
    validate: Annotated[
        bool, typer.Option("--validate", help="Validate the written document")
    ] = False,
):
    """Write all registered CRDs to one chart template."""
    output = output or Path(settings.output_path())

    try:
        document = assemble(_descriptors(), dialect=_dialect(dialect))
        if write_document(document, output, force=force):
            typer.echo(f"CRDs written to {output}")
        else:
            typer.echo(f"{output} unchanged")

        if validate:
            found = validate_document(output.read_text(encoding="utf-8"))
            for names in found.values():
                if sorted(names) != sorted(document.names):
                    typer.echo("CRD validation failed")
                    sys.exit(1)
            typer.echo("CRD validation passed")

    except CRDExportError as e:
        typer.echo(f"Failed to export CRDs: {e}")
        sys.exit(1)


@app.command("install")
def install(
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Seconds to wait for Established"),
    ] = None,
    dialect: Annotated[
        DialectChoice,
        typer.Option("--dialect", help="Dialect to install; auto probes the cluster"),
    ] = DialectChoice.auto,
):
    """Install all registered CRDs into the current cluster."""
    from crdexport.crd.client import CRDClient
    from crdexport.crd.installer import CRDInstaller

    try:
        installer = CRDInstaller(CRDClient(), timeout=timeout)
        result = installer.install(_descriptors(), dialect=_dialect(dialect))
    except InstallError as e:
        for outcome in e.outcomes:
            typer.echo(f"  {outcome.name}: {outcome.state.value} {outcome.message}".rstrip())
        typer.echo(f"Failed to install CRDs: {e}")
        raise typer.Exit(1)
    except CRDExportError as e:
        typer.echo(f"Failed to install CRDs: {e}")
        raise typer.Exit(1)

    for outcome in result.outcomes:
        typer.echo(f"  {outcome.name}: {outcome.state.value}")
    typer.echo(f"Installed {len(result.outcomes)} CRDs ({result.dialect.api_version})")


@app.command("list")
def list_resources():
    """List registered resources without generating anything."""
    descriptors = _descriptors()
    typer.echo(f"{len(descriptors)} registered resources")
    for descriptor in descriptors:
        typer.echo(f"  - {descriptor.key} ({descriptor.crd_name}, {descriptor.scope})")
