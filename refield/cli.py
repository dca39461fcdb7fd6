"""
Command line front end for the form re-authoring pipeline.

Usage:
    refield extract form.pdf > overlays.json
    refield flatten form.pdf -o flat.pdf
    refield apply form.pdf --overlays overlays.json -o out.pdf
    refield render form.pdf -o pages/
    refield selftest
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys

from refield.config import LOG_FORMAT
from refield.model.field import FieldOverlay
from refield.pdf.flattener import flatten_document
from refield.pdf.loader import PdfLoadError
from refield.pdf.saver import PdfSaveError
from refield.pdf.writer import ApplyIndexError
from refield.selftest import run_self_test
from refield.state.pipeline import FormPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="refield", description=__doc__.split("\n\n")[0].strip())
    parser.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    extract = commands.add_parser("extract", help="print existing widgets as overlay JSON")
    extract.add_argument("pdf", type=Path)

    flatten = commands.add_parser("flatten", help="write a copy with all form structure removed")
    flatten.add_argument("pdf", type=Path)
    flatten.add_argument("-o", "--output", type=Path, required=True)

    apply = commands.add_parser("apply", help="flatten and re-author the form")
    apply.add_argument("pdf", type=Path)
    apply.add_argument("--overlays", type=Path, help="overlay JSON (default: extracted widgets)")
    apply.add_argument("-o", "--output", type=Path)

    render = commands.add_parser("render", help="render flattened pages to PNG")
    render.add_argument("pdf", type=Path)
    render.add_argument("-o", "--output", type=Path, required=True, help="output directory")

    commands.add_parser("selftest", help="run the built-in round-trip checks")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        if args.command == "selftest":
            return _selftest()
        if args.command == "flatten":
            return _flatten(args.pdf, args.output)
        return asyncio.run(_run_pipeline(args))
    except (PdfLoadError, ApplyIndexError, PdfSaveError, OSError, KeyError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


async def _run_pipeline(args: argparse.Namespace) -> int:
    pipeline = FormPipeline()
    session = await pipeline.open_document(args.pdf.name, args.pdf.read_bytes())
    if session is None:
        return 1

    try:
        if args.command == "extract":
            json.dump([overlay.to_dict() for overlay in session.overlays], sys.stdout, indent=2)
            sys.stdout.write("\n")
            return 0

        if args.command == "render":
            args.output.mkdir(parents=True, exist_ok=True)
            for number, image in enumerate(await pipeline.render_pages(), start=1):
                (args.output / f"page-{number:03d}.png").write_bytes(image)
            return 0

        if args.overlays is not None:
            raw = json.loads(args.overlays.read_text(encoding="utf-8"))
            session.overlays[:] = [FieldOverlay.from_dict(item) for item in raw]
        result = await pipeline.finalize()
        output = args.output or args.pdf.with_name(result.filename)
        output.write_bytes(result.data)
        logger.info("Saved: %s (%d field(s))", output, len(session.overlays))
        return 0
    finally:
        await pipeline.close()


def _flatten(source: Path, output: Path) -> int:
    result = flatten_document(source.read_bytes())
    output.write_bytes(result.data)
    if result.diagnostics:
        logger.warning("Flattened with %d cleanup warning(s)", len(result.diagnostics))
    logger.info("Saved: %s", output)
    return 0


def _selftest() -> int:
    report = run_self_test()
    for line in report.lines():
        print(line)
    return 0 if report.passed else 1


if __name__ == "__main__":
    raise SystemExit(main())
