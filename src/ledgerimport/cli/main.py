#!/usr/bin/env python3
"""
ledgerimport CLI - preview and import bank statements into a JSON ledger.

Usage:
    ledgerimport preview statement.csv --ledger ledger.json
    ledgerimport preview statement.pdf --password-prompt --json
    ledgerimport import statement.xlsx --ledger ledger.json
"""

import argparse
import getpass
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from ledgerimport.core.exceptions import LedgerImportError
from ledgerimport.core.ledger import InMemoryLedgerStore, JsonLedgerStore
from ledgerimport.core.preferences import ImportPreferences
from ledgerimport.services.commit import commit_rows
from ledgerimport.services.pipeline import ImportPipeline, ImportPreview

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PASSWORD_REQUIRED = 2

MAX_PASSWORD_RETRIES = 3


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def prompt_password(filename: str) -> str:
    """Ask for a PDF password without echoing it."""
    return getpass.getpass(f"Enter password for {filename}: ")


def run_preview(pipeline: ImportPipeline, path: Path, password_prompt: bool) -> ImportPreview:
    """
    Preview a statement, prompting for a password when the PDF needs one.

    The password only lives for the duration of one preview call.
    """
    preview = pipeline.preview_file(path)
    if not preview.password_required or not password_prompt:
        return preview

    for attempt in range(1, MAX_PASSWORD_RETRIES + 1):
        preview = pipeline.preview_file(path, password=prompt_password(path.name))
        if not preview.password_required:
            return preview
        remaining = MAX_PASSWORD_RETRIES - attempt
        if remaining:
            print(f"Incorrect password. {remaining} attempt(s) remaining.")

    print("Maximum password attempts reached.")
    return preview


def _row_dict(row) -> dict:
    data = asdict(row)
    data["type"] = row.type.value
    data["amount"] = str(row.amount)
    for key in ("raw_debit", "raw_credit"):
        if data[key] is not None:
            data[key] = str(data[key])
    return data


def print_preview(preview: ImportPreview, as_json: bool = False):
    """Print preview rows, duplicate flags and defects."""
    if as_json:
        payload = {
            "success": preview.success,
            "password_required": preview.password_required,
            "errors": preview.errors,
            "warnings": preview.warnings,
            "rows": [_row_dict(row) for row in preview.rows],
            "defects": preview.defects,
        }
        print(json.dumps(payload, indent=2))
        return

    for warning in preview.warnings:
        print(f"Warning: {warning}")
    for error in preview.errors:
        print(f"Error: {error}")

    if not preview.rows:
        return

    print(f"\n{'ID':<12} {'Date':<11} {'Type':<8} {'Amount':>12}  Description")
    print("-" * 72)
    for row in preview.rows:
        flags = []
        if row.is_duplicate:
            flags.append(f"duplicate of {row.duplicate_of}")
        flags.extend(preview.defects.get(row.id, []))
        suffix = f"  [{'; '.join(flags)}]" if flags else ""
        print(
            f"{row.id:<12} {row.date or '-':<11} {row.type.value:<8} "
            f"{row.amount:>12,.2f}  {row.description}{suffix}"
        )

    print(f"\nRows: {len(preview.rows)}  Duplicates: {preview.duplicate_count}  "
          f"With defects: {len(preview.defects)}")


def _open_store(ledger: Optional[str]):
    if ledger:
        return JsonLedgerStore(Path(ledger))
    return InMemoryLedgerStore()


def _preview_exit_code(preview: ImportPreview) -> Optional[int]:
    if preview.password_required:
        return EXIT_PASSWORD_REQUIRED
    if not preview.success:
        return EXIT_FAILURE
    return None


def cmd_preview(args, preferences: ImportPreferences) -> int:
    """Handle preview command."""
    pipeline = ImportPipeline(_open_store(args.ledger), preferences)
    preview = run_preview(pipeline, Path(args.file), args.password_prompt)
    print_preview(preview, as_json=args.json)

    code = _preview_exit_code(preview)
    return EXIT_OK if code is None else code


def cmd_import(args, preferences: ImportPreferences) -> int:
    """Handle import command."""
    store = JsonLedgerStore(Path(args.ledger))
    pipeline = ImportPipeline(store, preferences)
    preview = run_preview(pipeline, Path(args.file), args.password_prompt)

    code = _preview_exit_code(preview)
    if code is not None:
        print_preview(preview, as_json=args.json)
        return code

    result = commit_rows(preview.rows, store, skip_duplicates=not args.include_duplicates)

    if args.json:
        print(json.dumps(asdict(result), indent=2))
    else:
        print(f"Imported: {result.imported_income} income, {result.imported_expenses} expenses")
        print(f"Skipped:  {result.skipped_duplicates} duplicates, {result.skipped_excluded} excluded")
        for error in result.errors:
            print(f"Error: {error}")

    return EXIT_OK if result.success else EXIT_FAILURE


# ============================================================================
# Main Entry Point
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ledgerimport command."""
    parser = argparse.ArgumentParser(
        prog='ledgerimport',
        description='Import bank statements (CSV, Excel, PDF) into an income/expense ledger',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ledgerimport preview statement.csv --ledger ledger.json
  ledgerimport preview statement.pdf --password-prompt
  ledgerimport import statement.xlsx --ledger ledger.json --include-duplicates
        """
    )

    # Global arguments
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug output')
    parser.add_argument('--config', '-c', help='Import preferences JSON file')

    # Options shared by both commands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('file', help='Statement file (CSV, Excel or PDF)')
    common.add_argument('--password-prompt', '-p', action='store_true',
                        help='Prompt for the password of a protected PDF')
    common.add_argument('--json', action='store_true', help='Print JSON output')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # preview command
    preview_parser = subparsers.add_parser('preview', parents=[common],
                                           help='Show parsed rows without importing')
    preview_parser.add_argument('--ledger', '-l', help='Ledger JSON file to check for duplicates')

    # import command
    import_parser = subparsers.add_parser('import', parents=[common],
                                          help='Import statement rows into a ledger')
    import_parser.add_argument('--ledger', '-l', required=True, help='Ledger JSON file')
    import_parser.add_argument('--include-duplicates', action='store_true',
                               help='Import rows flagged as duplicates too')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    setup_logging(args.verbose, args.debug)

    try:
        preferences = ImportPreferences.load(Path(args.config) if args.config else None)

        if args.command == 'preview':
            return cmd_preview(args, preferences)
        elif args.command == 'import':
            return cmd_import(args, preferences)
        else:
            parser.print_help()
            return EXIT_FAILURE
    except LedgerImportError as e:
        print(f"Error: {e.message}")
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
