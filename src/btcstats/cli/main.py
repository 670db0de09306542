"""btcstats CLI.

Command-line interface for computing texture statistics of image sets.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from btcstats import __version__
from btcstats.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="btcstats",
    help="btcstats: ternary texture statistics of image sets",
    add_completion=False,
)


class AverageMethod(str, Enum):
    """Block averaging statistic."""

    mean = "mean"
    median = "median"


class QuantMethod(str, Enum):
    """Quantization method."""

    equalize = "equalize"  # Equal-occupancy levels
    uniform = "uniform"  # Equal-width bins


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"btcstats {__version__}")


@app.command()
def analyze(  # noqa: PLR0913
    images: Annotated[
        list[Path],
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Image files to analyze",
        ),
    ],
    mask: Annotated[
        list[Path] | None,
        typer.Option(
            "--mask",
            "-m",
            exists=True,
            dir_okay=False,
            help="Mask file, one per image, in image order (repeatable)",
        ),
    ] = None,
    n_levels: Annotated[
        int, typer.Option("--n-levels", "-n", min=2, help="Quantization levels")
    ] = 3,
    block_af: Annotated[
        int, typer.Option("--block-af", "-b", min=1, help="Block averaging factor")
    ] = 1,
    patch_size: Annotated[
        int | None,
        typer.Option("--patch-size", "-p", min=1, help="Patch size (whole image if unset)"),
    ] = None,
    overlapping: Annotated[
        bool, typer.Option("--overlapping", help="One patch centered on every pixel")
    ] = False,
    min_patch_used: Annotated[
        float,
        typer.Option(
            "--min-patch-used", min=0.0, max=1.0, help="Minimum valid fraction of a patch"
        ),
    ] = 0.0,
    do_log: Annotated[
        bool, typer.Option("--log", help="Log-transform images before averaging")
    ] = False,
    average_type: Annotated[
        AverageMethod, typer.Option("--average-type", help="Block averaging statistic")
    ] = AverageMethod.mean,
    quant_type: Annotated[
        QuantMethod, typer.Option("--quant-type", help="Quantization method")
    ] = QuantMethod.equalize,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Save columns to .npz")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"
        ),
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Compute texture statistics for a set of images."""
    from btcstats.cli.runners import run_analysis  # noqa: PLC0415

    _configure_logging(verbose)
    logger = get_logger(__name__)

    logger.info(
        "Starting analysis",
        images=len(images),
        masks=len(mask) if mask else 0,
        n_levels=n_levels,
        patch_size=patch_size,
    )

    try:
        summary = run_analysis(
            images=images,
            masks=mask or None,
            n_levels=n_levels,
            block_af=block_af,
            patch_size=patch_size,
            overlapping=overlapping,
            min_patch_used=min_patch_used,
            do_log=do_log,
            average_type=average_type,
            quant_type=quant_type,
            output=output,
        )

        if json_output:
            typer.echo(json.dumps(summary.to_dict(), indent=2))
        else:
            typer.echo(f"Images: {summary.n_images}")
            typer.echo(f"Patches: {summary.n_patches}")
            typer.echo(f"Features per patch: {summary.n_features}")
            typer.echo(f"Objects: {summary.n_objects}")
            typer.echo(
                "Rejected: "
                + ", ".join(f"{k}={v}" for k, v in summary.rejected.items())
            )
            if summary.output_path is not None:
                typer.echo(f"Saved: {summary.output_path}")

        raise typer.Exit(0)

    except typer.Exit:
        raise
    except Exception as e:
        logger.exception("Analysis failed")
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """btcstats: ternary texture statistics of image sets."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":  # pragma: no cover
    app()
