"""Command-line entry point for slicing sprite sheets into frames."""

import argparse
import logging
import os
import sys
from pathlib import Path

from .core import ExportSettings, GridSettings, IslandSettings, ProcessingSettings, Rect, Size, SliceMode, SliceSettings
from .core import frame_extractor, image_io, manifest_writer
from .core.errors import InvalidImageError, ProcessingError, ValidationError
from .core.session import SliceSession
from .utils import file_tools, validators

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spriteslice",
        description="Slice a sprite sheet into individual frame PNGs and an atlas manifest.",
    )
    parser.add_argument("input", type=Path, help="Path to the sprite sheet image")
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        help="Directory that receives the frame PNGs (default: <input>_frames next to the image)",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SliceMode],
        default=SliceMode.GRID.value,
        help="How rectangles are found (default: grid)",
    )
    parser.add_argument(
        "--grid-size",
        type=int,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        default=(32, 32),
        help="Grid cell size in px (default: 32 32)",
    )
    parser.add_argument("--margin", type=int, nargs=2, metavar=("X", "Y"), default=(0, 0), help="Grid margin in px")
    parser.add_argument("--spacing", type=int, nargs=2, metavar=("X", "Y"), default=(0, 0), help="Grid spacing in px")
    parser.add_argument(
        "--min-size",
        type=int,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        default=(5, 5),
        help="Smallest island kept in islands mode (default: 5 5)",
    )
    parser.add_argument(
        "--rect",
        type=int,
        nargs=4,
        action="append",
        default=[],
        metavar=("X", "Y", "W", "H"),
        help="Manual rectangle, drawn on top of grid or island rects (repeatable)",
    )
    parser.add_argument("--hide", action="append", default=[], metavar="ID", help="Rect id to exclude (repeatable)")
    parser.add_argument("--trim", action="store_true", help="Crop each frame to its opaque bounds")
    parser.add_argument(
        "--key-color",
        action="append",
        default=[],
        metavar="HEX",
        help="Background color to make transparent, e.g. #ff00ff (repeatable)",
    )
    parser.add_argument("--tolerance", type=float, default=10.0, help="Color key distance tolerance (default: 10)")
    parser.add_argument("--feather", type=float, default=0.0, help="Soft edge band beyond the tolerance (0-50)")
    parser.add_argument("--prefix", default="sprite", help="Frame filename prefix (default: sprite)")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads used to extract frames (default: SPRITESLICE_WORKERS or 1)",
    )
    parser.add_argument(
        "--manifest",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write data.json describing each frame (default: on)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the rectangles that would be extracted without writing files",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def settings_from_args(args: argparse.Namespace) -> SliceSettings:
    """Translate parsed arguments into validated slice settings."""

    parsed_colors = (validators.parse_hex_color(value) for value in args.key_color)
    key_colors = [color.to_hex() for color in parsed_colors if color is not None]
    validators.validate_tolerance(args.tolerance)
    validators.validate_feather(args.feather)
    validators.validate_min_size(*args.min_size)
    if args.workers is not None and args.workers < 1:
        raise ValidationError("Workers must be at least 1")

    grid = GridSettings(
        width=args.grid_size[0],
        height=args.grid_size[1],
        margin_x=args.margin[0],
        margin_y=args.margin[1],
        spacing_x=args.spacing[0],
        spacing_y=args.spacing[1],
    )
    validators.validate_grid(grid)
    return SliceSettings(
        mode=SliceMode(args.mode),
        grid=grid,
        islands=IslandSettings(min_width=args.min_size[0], min_height=args.min_size[1]),
        processing=ProcessingSettings(
            auto_trim=args.trim,
            color_key_enabled=bool(key_colors),
            color_key_colors=key_colors,
            color_key_tolerance=args.tolerance,
            color_key_feather=args.feather,
        ),
        export=ExportSettings(prefix=args.prefix),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = settings_from_args(args)
        image = image_io.load_image(args.input)
        session = SliceSession(settings)
        session.load_image(image)
        for x, y, w, h in args.rect:
            session.add_rect(Rect.manual(x, y, w, h))
        session.delete_frames(args.hide)
        rects = session.collect_rects()

        if args.dry_run:
            for rect in rects:
                print(f"{rect.id}\t{rect.x}\t{rect.y}\t{rect.w}\t{rect.h}")
            return 0

        workers = args.workers or validators.parse_optional_int(os.environ.get("SPRITESLICE_WORKERS"), "SPRITESLICE_WORKERS")
        frames = frame_extractor.extract_frames(image, rects, settings.processing, workers=workers or 1)
        if not frames:
            logger.warning("No frames found in %s", args.input)
            return 1

        output_dir = args.output or file_tools.default_output_dir(args.input)
        manifest_writer.write_frames(frames, output_dir, settings.export.prefix)
        if args.manifest:
            manifest = manifest_writer.build_manifest(frames, Size(image.width, image.height), settings.export.prefix)
            manifest_writer.write_manifest(manifest, output_dir / manifest_writer.MANIFEST_FILENAME)
    except (InvalidImageError, ValidationError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except ProcessingError as exc:
        logger.error("Slicing failed: %s", exc)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
