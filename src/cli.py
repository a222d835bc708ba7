"""Command-line interface for single-document extraction and batch CSV export.

``extract`` prints (or writes) the per-page JSON result for one PDF.
``batch`` runs every PDF in a folder and writes one CSV row per document.
"""

import argparse
import csv
import sys
import time
from pathlib import Path

from src.ocr.document_processor import DocumentProcessor
from src.ocr.errors import DocumentPipelineError, PageProcessingFailed
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.pdf",)
_META_COLUMNS = [
    "filename",
    "status",
    "page_count",
    "failed_pages",
    "processing_time_s",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all PDF files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _apply_overrides(
    config: AppConfig, continue_on_error: bool = False, workers: int | None = None
) -> AppConfig:
    """Return a copy of ``config`` with CLI flags applied."""
    updates: dict[str, object] = {}
    if continue_on_error:
        updates["failure_policy"] = "continue"
    if workers is not None:
        updates["max_workers"] = workers
    if not updates:
        return config
    pipeline = config.pipeline.model_copy(update=updates)
    return config.model_copy(update={"pipeline": pipeline})


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all PDFs in a folder and export results to CSV.

    Args:
        input_dir: Directory containing PDF files.
        output_csv: Path for the output CSV file.
        config: Pipeline configuration; loaded from disk when omitted.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    processor = DocumentProcessor(config or load_config())

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            result = _process_single_file(file_path, processor)
            result["processing_time_s"] = round(time.time() - start_time, 2)
            results.append(result)
            successful += 1
        except DocumentPipelineError as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _process_single_file(
    file_path: Path, processor: DocumentProcessor
) -> dict[str, object]:
    """Run one document and flatten it into a CSV row.

    Key-value pairs from all pages are merged; a label found on a later
    page overwrites the same label from an earlier one.
    """
    doc_result = processor.process(file_path)

    merged: dict[str, str] = {}
    for page in doc_result.pages:
        merged.update(page.key_value_pairs)

    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "partial" if doc_result.failed_pages else "success",
        "page_count": doc_result.page_count,
        "failed_pages": ";".join(str(p) for p in doc_result.failed_pages),
        "error": None,
    }
    row.update({k: v for k, v in merged.items() if k not in _META_COLUMNS})
    return row


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(file_path: Path, config: AppConfig | None = None) -> str:
    """Process a single document and return its JSON page list.

    Args:
        file_path: Path to the PDF file.
        config: Pipeline configuration; loaded from disk when omitted.

    Returns:
        JSON string with one object per page.
    """
    processor = DocumentProcessor(config or load_config())
    return processor.process(file_path).to_json()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="PDF page OCR and field extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: configs/config.yaml)",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Record failed pages instead of aborting the document",
    )
    parser.add_argument(
        "-w", "--workers", type=int, default=None, help="Pages processed in parallel"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of PDFs")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with PDFs")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single PDF")
    single_parser.add_argument("file", type=Path, help="PDF file to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")

    config = _apply_overrides(
        load_config(args.config), args.continue_on_error, args.workers
    )
    setup_logging(config.log_level, stream=sys.stderr)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            output_str = extract_single(args.file, config)
        except PageProcessingFailed as exc:
            print(
                f"Error: page {exc.page_index} of {args.file} failed: {exc.cause}",
                file=sys.stderr,
            )
            sys.exit(1)
        except DocumentPipelineError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)


if __name__ == "__main__":
    main()
