"""
Command-line interface for framecanvas.

Provides commands for plotting expressions inside a frame and writing the
default configuration.
"""

import argparse
import math
import sys

from framecanvas.config import load_config, save_default_config
from framecanvas.tracer import configure_tracer, get_tracer


def _add_trace_arguments(parser):
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    parser.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )


def build_parser():
    """Argument parser with the plot and init-config commands."""
    parser = argparse.ArgumentParser(
        description="framecanvas: plot curves inside nested, zoomable coordinate frames",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Plot command
    plot_parser = subparsers.add_parser("plot", help="Render plots in one frame to SVG")
    plot_parser.add_argument(
        "--function", "-f",
        action="append",
        default=[],
        metavar="EXPR",
        help="Explicit plot y = EXPR in x (repeatable)",
    )
    plot_parser.add_argument(
        "--parametric", "-p",
        action="append",
        nargs=2,
        default=[],
        metavar=("X_EXPR", "Y_EXPR"),
        help="Parametric plot in t (repeatable)",
    )
    plot_parser.add_argument(
        "--implicit",
        action="append",
        default=[],
        metavar="EQUATION",
        help="Implicit plot EQUATION = 0 in x and y (repeatable)",
    )
    plot_parser.add_argument(
        "--vector",
        action="append",
        nargs=2,
        type=float,
        default=[],
        metavar=("X", "Y"),
        help="Vector from the frame origin (repeatable)",
    )
    plot_parser.add_argument("--x-range", nargs=2, type=float, default=[-5.0, 5.0], metavar=("MIN", "MAX"))
    plot_parser.add_argument("--y-range", nargs=2, type=float, default=[-5.0, 5.0], metavar=("MIN", "MAX"))
    plot_parser.add_argument("--t-range", nargs=2, type=float, default=[0.0, 2 * math.pi], metavar=("MIN", "MAX"))
    plot_parser.add_argument(
        "--zoom",
        type=float,
        default=None,
        help="Root viewport zoom in pixels per unit",
    )
    plot_parser.add_argument(
        "--frame-zoom",
        type=float,
        default=1.0,
        help="Zoom of the plotted frame's own viewport",
    )
    plot_parser.add_argument(
        "--basis",
        nargs=4,
        type=float,
        default=[1.0, 0.0, 0.0, 1.0],
        metavar=("IX", "IY", "JX", "JY"),
        help="Frame basis vectors",
    )
    plot_parser.add_argument(
        "--origin",
        nargs=2,
        type=float,
        default=[0.0, 0.0],
        metavar=("X", "Y"),
        help="Frame origin in world coordinates",
    )
    plot_parser.add_argument("--width", type=int, default=None, help="Canvas width in pixels")
    plot_parser.add_argument("--height", type=int, default=None, help="Canvas height in pixels")
    plot_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Output SVG path",
    )
    plot_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    _add_trace_arguments(plot_parser)

    # Init config command
    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="framecanvas_config.yaml",
        help="Output path for config file",
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    # Handle commands
    if args.command == "plot":
        return handle_plot(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def _clamp(value, lower, upper):
    return max(lower, min(upper, value))


def build_frame(args, config):
    """A single top-level frame holding every plot named on the command line."""
    from framecanvas.models import (
        CoordinateFrame, FunctionPlot, ImplicitPlot, ParametricPlot, Vector, ViewportState,
        generate_frame_id, generate_plot_id,
    )

    ix, iy, jx, jy = args.basis
    origin = tuple(args.origin)
    frame_zoom = _clamp(args.frame_zoom, config.canvas.frame_min_zoom, config.canvas.frame_max_zoom)
    x_min, x_max = args.x_range
    y_min, y_max = args.y_range
    t_min, t_max = args.t_range

    return CoordinateFrame(
        id=generate_frame_id(origin, (ix, iy), (jx, jy)),
        origin=origin,
        base_i=(ix, iy),
        base_j=(jx, jy),
        viewport=ViewportState(zoom=frame_zoom),
        vectors=[
            Vector(id=generate_plot_id("vector", v, i), end=tuple(v))
            for i, v in enumerate(args.vector)
        ],
        functions=[
            FunctionPlot(id=generate_plot_id("function", expr, i), expression=expr,
                         x_min=x_min, x_max=x_max)
            for i, expr in enumerate(args.function)
        ],
        parametric_plots=[
            ParametricPlot(id=generate_plot_id("parametric", (xe, ye), i),
                           x_expression=xe, y_expression=ye, t_min=t_min, t_max=t_max)
            for i, (xe, ye) in enumerate(args.parametric)
        ],
        implicit_plots=[
            ImplicitPlot(id=generate_plot_id("implicit", eq, i), equation=eq,
                         x_min=x_min, x_max=x_max, y_min=y_min, y_max=y_max)
            for i, eq in enumerate(args.implicit)
        ],
    )


def handle_plot(args):
    """Handle the plot command."""
    config = load_config(args.config)

    # Configure tracing
    configure_tracer(
        enabled=args.trace or config.tracing.enabled,
        level=args.trace_level if args.trace else config.tracing.level,
        file_path=args.trace_file or config.tracing.file_path,
        json_output=args.trace_json or config.tracing.json_output,
    )

    tracer = get_tracer()

    try:
        from framecanvas.frames.registry import FrameRegistry
        from framecanvas.models import ViewportState
        from framecanvas.render.pipeline import make_cache, render_scene
        from framecanvas.render.svg_emit import emit_scene_svg, save_svg

        with tracer.span("cli_plot", module="cli"):
            frame = build_frame(args, config)
            registry = FrameRegistry([frame])

            zoom = args.zoom if args.zoom is not None else config.canvas.zoom
            root_viewport = ViewportState(zoom=_clamp(zoom, config.canvas.min_zoom, config.canvas.max_zoom))
            width = args.width or config.canvas.width
            height = args.height or config.canvas.height

            rendered = render_scene(registry, root_viewport, (width, height), config, make_cache(config))
            drawing = emit_scene_svg(rendered, width, height, config.stroke)
            save_svg(drawing, args.out)

        print(f"\nRendered {len(rendered)} of {frame.plot_count} plots.")
        print(f"  Segments: {sum(len(r.segments) for r in rendered)}")
        print(f"  Points: {sum(r.point_count for r in rendered)}")
        print(f"\nSVG saved to: {args.out}")

        if len(rendered) < frame.plot_count:
            print("\n[!] Some plots failed to render. Run with --trace for details.")
            return 1

        return 0

    except Exception as e:
        tracer.event(f"Plot failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
