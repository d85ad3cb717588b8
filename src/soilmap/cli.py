"""Command line interface for soilmap.

Usage:
    soilmap grid --step 0.2 --output grid.csv           # Build the sample grid
    soilmap fetch --layer moisture --output samples.csv # Fetch current samples
    soilmap fetch --layer temperature --days 7 --day 2  # Fetch one forecast day
    soilmap render --layer moisture --output map.png    # Render an overlay PNG
    soilmap serve --port 8000                           # Run the HTTP API
"""

import argparse
import logging
import sys
from pathlib import Path

from soilmap.api.service import SoilDataService
from soilmap.cache import LAYERS
from soilmap.pipelines import BoundaryPipeline, OpenMeteoPipeline
from soilmap.pipelines.boundary import DEFAULT_REGION
from soilmap.spatial import CURRENT_GRID_STEP, generate_grid, grid_to_dataframe
from soilmap.utils import BoundingBox
from soilmap.visualization import Viewport

logger = logging.getLogger(__name__)


def _boundary_pipeline(args) -> BoundaryPipeline:
    return BoundaryPipeline(
        region=args.region,
        path=args.boundary_path,
        url=args.boundary_url,
    )


def _service(args) -> SoilDataService:
    return SoilDataService(
        boundary_pipeline=_boundary_pipeline(args),
        client=OpenMeteoPipeline(),
    )


def cmd_grid(args) -> int:
    """Generate the sample grid and write it as CSV."""
    boundary = _boundary_pipeline(args).load()
    points = generate_grid(args.step, boundary)
    df = grid_to_dataframe(points)

    if args.output:
        df.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(df)} grid points to {args.output}")
    else:
        print(df.to_csv(index=False), end="")

    print(f"{len(points)} grid points at {args.step} degree step", file=sys.stderr)
    return 0


def cmd_fetch(args) -> int:
    """Fetch samples for a layer and write them as CSV."""
    service = _service(args)
    samples = service.samples_for(args.layer, args.days, args.day)

    df = OpenMeteoPipeline.to_dataframe(samples)
    if args.output:
        df.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(df)} samples to {args.output}")
    else:
        print(df.to_csv(index=False), end="")

    if df.empty:
        logger.error(f"No {args.layer} samples could be fetched")
        return 1

    print(
        f"{len(df)} samples, {args.layer} "
        f"min={df['value'].min():.2f} max={df['value'].max():.2f} mean={df['value'].mean():.2f}",
        file=sys.stderr,
    )
    return 0


def cmd_render(args) -> int:
    """Render an overlay PNG (and optionally a pydeck HTML map)."""
    service = _service(args)
    boundary = service.get_boundary()

    if args.bounds:
        west, south, east, north = args.bounds
        bounds = BoundingBox(west=west, south=south, east=east, north=north)
    else:
        bounds = boundary.bbox

    viewport = Viewport(width=args.width, height=args.height, bounds=bounds, zoom=args.zoom)
    overlay = service.render(viewport, args.layer, args.days, args.day)

    if overlay is None or overlay.is_empty:
        logger.error("Nothing to draw: no samples inside the viewport")
        return 1

    args.output.write_bytes(overlay.to_png())
    logger.info(
        f"Wrote {args.output} ({overlay.painted_cells} cells, {overlay.resolution}px blocks)"
    )

    if args.html:
        from soilmap.visualization.layers import create_overlay_deck

        deck = create_overlay_deck(overlay, viewport, boundary)
        deck.to_html(str(args.html), open_browser=False)
        logger.info(f"Wrote {args.html}")

    return 0


def cmd_serve(args) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from soilmap.api.app import create_app

    app = create_app(_service(args))
    uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if args.verbose else "info")
    return 0


def _day_window(value: str) -> int:
    days = int(value)
    if days < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return days


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="soilmap",
        description="Soil moisture / temperature heat map for North Kazakhstan",
        epilog="""
Examples:
  soilmap grid --step 0.3                       # Forecast grid to stdout
  soilmap fetch --layer moisture -o now.csv     # Current moisture samples
  soilmap render --layer temperature --days 7 --day 3 -o day3.png
  soilmap serve --port 8000
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors",
    )
    parser.add_argument(
        "--region",
        default=DEFAULT_REGION,
        help=f"Region name to select from the boundary source (default: {DEFAULT_REGION})",
    )
    parser.add_argument(
        "--boundary-path",
        type=Path,
        default=None,
        help="Local GeoJSON boundary file",
    )
    parser.add_argument(
        "--boundary-url",
        default=None,
        help="Remote GeoJSON boundary URL",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    grid = subparsers.add_parser("grid", help="Generate the sample grid")
    grid.add_argument("--step", type=float, default=CURRENT_GRID_STEP, help="Grid step in degrees")
    grid.add_argument("-o", "--output", type=Path, default=None, help="CSV output path")
    grid.set_defaults(func=cmd_grid)

    def add_layer_args(sub):
        sub.add_argument("--layer", choices=LAYERS, default="moisture")
        sub.add_argument("--days", type=_day_window, default=1, help="Forecast window in days")
        sub.add_argument("--day", type=int, default=0, help="Forecast day (0 = today)")

    fetch = subparsers.add_parser("fetch", help="Fetch samples from Open-Meteo")
    add_layer_args(fetch)
    fetch.add_argument("-o", "--output", type=Path, default=None, help="CSV output path")
    fetch.set_defaults(func=cmd_fetch)

    render = subparsers.add_parser("render", help="Render an overlay PNG")
    add_layer_args(render)
    render.add_argument("--width", type=int, default=800)
    render.add_argument("--height", type=int, default=600)
    render.add_argument("--zoom", type=float, default=7.0)
    render.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        metavar=("WEST", "SOUTH", "EAST", "NORTH"),
        default=None,
        help="Viewport bounds (default: boundary bounding box)",
    )
    render.add_argument("-o", "--output", type=Path, default=Path("overlay.png"))
    render.add_argument("--html", type=Path, default=None, help="Also write a pydeck HTML map")
    render.set_defaults(func=cmd_render)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if hasattr(args, "day") and not 0 <= args.day < args.days:
        parser.error(f"--day must be between 0 and {args.days - 1}")

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
