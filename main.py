#!/usr/bin/env python3
"""
Document Parser - Main Entry Point.

Command-line access to the document pipeline. Every processing command
prints its result as JSON on stdout and can additionally write it to a
JSON or Excel file.

Usage:
    Command Line:
        python main.py extract invoice.pdf --type invoice
        python main.py compare a.pdf b.pdf --type angebotsvergleich -o vergleich.xlsx
        python main.py register a.pdf b.pdf --type angebotserfassung
        python main.py verify pass.pdf vertrag.pdf --type austrian_passport real_estate_contract
        python main.py types

    Python:
        from main import run_command
        result = run_command(args)

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import ConfigurationManager
from document_parser.utils.logger import APP_LOGGER_NAME, get_logger, setup_logger_from_config
from document_parser.utils.exceptions import DocumentParserError, ValidationError
from document_parser.input_handler import ExtractionJob
from document_parser.registry import ChecklistRegistry, DocumentTypeRegistry
from document_parser.output_handler import OutputHandler
from document_parser.pipeline import DocumentPipeline

PROCESSING_COMMANDS = ("extract", "compare", "register", "verify")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list; defaults to ``sys.argv[1:]``.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="LLM-assisted document parser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Extract one document:
        python main.py extract rechnung.pdf --type invoice

    Compare loan offers and export to Excel:
        python main.py compare a.pdf b.pdf --type angebotsvergleich -o vergleich.xlsx

    Verify identity documents:
        python main.py verify pass.png --type austrian_passport
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract structured data from one document")
    extract.add_argument("file", type=str, help="Document to process")
    extract.add_argument("--type", "-t", required=True, dest="document_type", help="Document type id")

    compare = subparsers.add_parser("compare", help="Compare several loan offers")
    compare.add_argument("files", nargs="+", help="Offer documents, in display order")
    compare.add_argument("--type", "-t", required=True, dest="document_type", help="Document type id")

    register = subparsers.add_parser("register", help="Extract loan offers and store them")
    register.add_argument("files", nargs="+", help="Offer documents")
    register.add_argument("--type", "-t", required=True, dest="document_type", help="Document type id")
    register.add_argument("--database", type=str, default=None, help="SQLite database file")

    verify = subparsers.add_parser("verify", help="Verify documents against checklists")
    verify.add_argument("files", nargs="+", help="Documents to verify")
    verify.add_argument(
        "--type", "-t",
        required=True,
        nargs="+",
        dest="document_types",
        help="Checklist id per file, or one id for all files"
    )

    subparsers.add_parser("types", help="List document types")
    subparsers.add_parser("checklists", help="List verification checklists")

    for sub in (extract, compare, register, verify):
        sub.add_argument(
            "--output", "-o",
            type=str,
            default=None,
            help="Also write the result to this .json or .xlsx file"
        )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Load configuration and set up logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)
    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(APP_LOGGER_NAME).setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(APP_LOGGER_NAME).setLevel(logging.WARNING)

    logger.debug(f"{config.get('project.name', 'document-parser')} {config.get('project.version', '1.0.0')}")
    return config


def load_jobs(paths: List[str], document_type: str) -> List[ExtractionJob]:
    """
    Read input files into extraction jobs.

    Raises:
        ValidationError: If a path is not a readable file.
    """
    jobs = []
    for name in paths:
        path = Path(name)
        if not path.is_file():
            raise ValidationError(f"Input file not found: {path}", {"file": str(path)})
        jobs.append(ExtractionJob.from_path(path, document_type))
    return jobs


def build_pipeline(args: argparse.Namespace) -> DocumentPipeline:
    """Wire the production pipeline for a processing command."""
    store = None
    if getattr(args, "database", None):
        from document_parser.output_handler import LoanOfferStore

        store = LoanOfferStore(args.database)
    return DocumentPipeline.from_config(store=store)


def run_command(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Execute one CLI command.

    Args:
        args: Parsed arguments.

    Returns:
        JSON-serialisable result.

    Raises:
        DocumentParserError: On any pipeline failure.
    """
    if args.command == "types":
        registry = DocumentTypeRegistry.from_config()
        return {"documentTypes": [definition.to_dict() for definition in registry.all()]}

    if args.command == "checklists":
        checklists = ChecklistRegistry.from_config()
        return {
            "checklists": [
                {
                    "id": checklist.document_type,
                    "name": checklist.name,
                    "items": [item.id for item in checklist.items],
                }
                for checklist in (checklists.require(t) for t in checklists.supported_types())
            ]
        }

    pipeline = build_pipeline(args)

    if args.command == "extract":
        job = load_jobs([args.file], args.document_type)[0]
        return pipeline.process_single(job).to_dict()

    if args.command == "compare":
        jobs = load_jobs(args.files, args.document_type)
        return pipeline.process_comparison(jobs, args.document_type).to_dict()

    if args.command == "register":
        jobs = load_jobs(args.files, args.document_type)
        return pipeline.process_registration(jobs, args.document_type).to_dict()

    # verify
    document_types = list(args.document_types)
    if len(document_types) == 1 and len(args.files) > 1:
        document_types = document_types * len(args.files)
    jobs = load_jobs(args.files, document_types[0])
    return pipeline.verify(jobs, document_types).to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_arguments(argv)

    try:
        initialize_system(args)
        logger = get_logger(__name__)

        result = run_command(args)

        if getattr(args, "output", None):
            path = OutputHandler().save(result, args.output)
            logger.info(f"Result written to {path}")

        print(json.dumps(result, indent=2, ensure_ascii=False))
        return 0

    except DocumentParserError as e:
        error = {"success": False, "error": {"kind": e.kind, "message": e.message}}
        print(json.dumps(error, ensure_ascii=False), file=sys.stderr)
        return 1

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
