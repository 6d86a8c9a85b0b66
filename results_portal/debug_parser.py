#!/usr/bin/env python3
"""
Debug script to show what the grade extractor sees in a result sheet.
Prints the grade tokens found in a PDF and, for one index number, the
surrounding normalized text, to help track down missed or misread grades.
"""

import argparse
import re
import sys
from pathlib import Path

from results_portal.grade_parser import GRADE_PATTERN, DecodeError, clean_text, extract_pdf_text


def show_context(cleaned: str, index_number: str, width: int = 40) -> bool:
    """Print the text around every occurrence of an index number."""
    found = False
    for match in re.finditer(re.escape(index_number), cleaned):
        found = True
        start = max(match.start() - width, 0)
        end = min(match.end() + width, len(cleaned))
        print(f"  ...{cleaned[start:end]}...")
    return found


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(
        prog="debug-grades", description="Dump grade tokens found in a result-sheet PDF"
    )
    ap.add_argument("pdf", help="Path to PDF")
    ap.add_argument("--student", help="Index number to show context for", default=None)
    args = ap.parse_args(argv)

    path = Path(args.pdf)
    if not path.exists():
        print(f"PDF file not found: {path}")
        return 1

    try:
        cleaned = clean_text(extract_pdf_text(path.read_bytes()))
    except DecodeError as e:
        print(f"Could not read {path}: {e}")
        return 1

    matches = list(GRADE_PATTERN.finditer(cleaned))
    print(f"Reading {path}...")
    print(f"{len(cleaned)} characters, {len(matches)} grade tokens")
    for match in matches:
        print(f"MATCH: {match.group(1)} {match.group(2)}  @ {match.start()}")

    if args.student:
        print(f"\n{'=' * 60}")
        print(f"CONTEXT FOR: {args.student}")
        print(f"{'=' * 60}")
        if not show_context(cleaned, args.student):
            print(f"Student {args.student} not found in PDF")
    return 0


if __name__ == "__main__":
    sys.exit(main())
