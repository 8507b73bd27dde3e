"""
Command-line entry point.

    marksheet-ocr scan.jpg
    marksheet-ocr result.pdf --no-vision --json
    marksheet-ocr scan.png --form

The input file is never deleted.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .config import get_config
from .logger import get_logger, log_timing
from .models import ExtractedMarksheet, ExtractionFailure
from .processors import MarksheetExtractor
from .utils.timing import format_duration

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marksheet-ocr",
        description="Extract student name, register number and subject marks from a marksheet scan",
    )
    parser.add_argument("file", type=Path, help="Marksheet image, PDF or text file")
    parser.add_argument("--media-type", help="Declared media type (default: guessed from the extension)")
    parser.add_argument("--no-vision", action="store_true", help="Skip the vision model, use local OCR only")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="Print the full record as JSON")
    output.add_argument("--form", action="store_true", help="Print the review-form / CRUD payload as JSON")
    return parser


def render_marksheet(marksheet: ExtractedMarksheet) -> None:
    """Print a marksheet as a rich table with a short header."""
    console.print(f"[bold]Student:[/bold] {marksheet.student_name or '-'}")
    console.print(f"[bold]Register No:[/bold] {marksheet.register_number or '-'}")

    table = Table(title=f"Subjects ({marksheet.method})")
    table.add_column("Subject")
    table.add_column("Type")
    table.add_column("Internal", justify="right")
    table.add_column("External", justify="right")
    table.add_column("Marks", justify="right")
    table.add_column("Result")

    for s in marksheet.subjects:
        result = s.result.value if s.result else "-"
        if s.result_is_computed:
            result += " *"
        table.add_row(
            s.subject_name,
            s.paper_type.value,
            "" if s.internal_marks is None else str(s.internal_marks),
            "" if s.external_marks is None else str(s.external_marks),
            str(s.marks),
            result,
        )
    console.print(table)

    overall = marksheet.overall_result.value if marksheet.overall_result else "-"
    console.print(f"[bold]Total:[/bold] {marksheet.total_marks or '-'}   [bold]Result:[/bold] {overall}")
    console.print(
        f"Confidence {marksheet.confidence}%  "
        f"({format_duration(marksheet.stats.duration_sec)}, * = computed result)"
    )
    if marksheet.warning:
        console.print(f"[yellow]{marksheet.warning}[/yellow]")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    logger = get_logger("marksheet_ocr.cli")

    if not args.file.exists():
        logger.error(f"File not found: {args.file}")
        return 1

    if args.no_vision:
        # Copy so the process-wide config keeps its AI settings
        config = dataclasses.replace(config, ai=dataclasses.replace(config.ai, enabled=False))
    extractor = MarksheetExtractor(config)
    outcome = extractor.extract(args.file, args.media_type, remove_after=False)

    if isinstance(outcome, ExtractionFailure):
        if args.json or args.form:
            print(json.dumps(outcome.to_dict(), indent=2))
        else:
            console.print(f"[red]{outcome.message}[/red]")
            for reason in outcome.details.get("reasons", []):
                console.print(f"  - {reason}")
        return 1

    log_timing(logger, "Extraction", outcome.stats.duration_sec)
    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    elif args.form:
        print(json.dumps(outcome.to_form_dict(), indent=2, ensure_ascii=False))
    else:
        render_marksheet(outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
