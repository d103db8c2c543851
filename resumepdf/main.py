"""
resumepdf entrypoint - renders a JSON resume to PDF.

Usage:
    resumepdf <input.json> [output.pdf] [--template=onyx] [--format=a4]
"""

import argparse
import asyncio
import json
import re
import sys
from pathlib import Path
from typing import Any, NoReturn

from resumepdf.config import get_settings
from resumepdf.modules.render import RenderService, build_request
from resumepdf.modules.render.schemas import VALID_FORMATS, VALID_TEMPLATES, validate_overrides
from resumepdf.shared.errors import InputError, ResumePdfError
from resumepdf.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


EPILOG = f"""\
templates: {", ".join(VALID_TEMPLATES)}
formats:   {", ".join(VALID_FORMATS)}

environment:
  CHROME_PATH         Path to Chrome/Chromium executable (auto-detected if unset)
  PRINTER_ENDPOINT    URL of a remote browser instance
                      (e.g. ws://localhost:4000?token=1234567890)

examples:
  resumepdf resume.json
  resumepdf resume.json output.pdf --template=chikorita
  resumepdf resume.json --format=letter --template=bronzor
"""


class CliParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def build_parser() -> CliParser:
    parser = CliParser(
        prog="resumepdf",
        description="Render a JSON resume to PDF with a headless browser.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", nargs="?", help="Resume JSON file")
    parser.add_argument("output", nargs="?", help="Output PDF (default: input with .pdf extension)")
    parser.add_argument("--template", help='Override the template (default: from JSON or "onyx")')
    parser.add_argument("--format", help='Override the page format (default: from JSON or "a4")')
    parser.add_argument("--margin-x", type=float, help="Override the horizontal print margin (pt)")
    parser.add_argument("--margin-y", type=float, help="Override the vertical print margin (pt)")
    return parser


def default_output_path(input_path: Path) -> Path:
    """``resume.json`` -> ``resume.pdf``; other names get ``.pdf`` appended."""
    name = re.sub(r"\.json$", ".pdf", input_path.name, flags=re.IGNORECASE)
    if name == input_path.name:
        name = f"{name}.pdf"
    return input_path.with_name(name)


def load_payload(path: Path) -> dict[str, Any]:
    """
    Read and parse the resume JSON.

    Raises:
        InputError: unreadable file, invalid JSON, or not a JSON object
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InputError(f'Failed to read or parse "{path}": {e}') from e
    if not isinstance(payload, dict):
        raise InputError(f'Expected a JSON object in "{path}", got {type(payload).__name__}')
    return payload


def report_error(error: dict[str, Any]) -> None:
    print(f"Error: {error.get('message', 'unknown error')}", file=sys.stderr)
    remediation = (error.get("details") or {}).get("remediation")
    if remediation:
        print("Options:", file=sys.stderr)
        for i, option in enumerate(remediation, start=1):
            print(f"  {i}. {option}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.input is None:
        parser.print_help()
        return 1

    settings = get_settings()
    setup_logging(settings.log_level)

    input_path = Path(args.input).resolve()
    output_path = Path(args.output).resolve() if args.output else default_output_path(input_path)

    try:
        validate_overrides(args.template, args.format)
        logger.info(f"Reading: {input_path}")
        request = build_request(
            load_payload(input_path),
            template=args.template,
            page_format=args.format,
            margin_x=args.margin_x,
            margin_y=args.margin_y,
        )
    except ResumePdfError as e:
        report_error(e.to_dict())
        return 1

    result = asyncio.run(RenderService(settings).render(request, output_path))
    if not result.success:
        report_error(result.error or {})
        return 1

    print(f"PDF saved to: {result.artifact.path}")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
