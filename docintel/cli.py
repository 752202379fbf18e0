"""Command-line interface for running documents through the pipeline.

Provides subcommands for processing a single document and for batch
processing a folder with a worker pool and CSV export.
"""

import argparse
import csv
import json
import sys
from pathlib import Path

from docintel.pipeline.job import JobStatusReport
from docintel.pipeline.orchestrator import PipelineOrchestrator
from docintel.pipeline.result_sink import InMemoryResultSink, JsonDirectoryResultSink
from docintel.utils.config import AppConfig, load_config
from docintel.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp")
_DOCUMENT_TYPES = ["NIC", "BirthCertificate", "generic"]
_META_COLUMNS = [
    "filename",
    "job_id",
    "status",
    "attempts",
    "document_type",
    "detected_type",
    "ocr_confidence",
    "is_authentic",
    "is_suspicious",
    "reasons",
    "failure_reason",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

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


def _report_row(filename: str, report: JobStatusReport) -> dict[str, object]:
    """Flatten a job status report into one CSV row."""
    row: dict[str, object] = {
        "filename": filename,
        "job_id": report.job_id,
        "status": str(report.status),
        "attempts": report.attempts,
        "failure_reason": report.failure_reason,
    }
    outcome = report.result
    if outcome is not None:
        row.update(
            {
                "document_type": outcome.document_type,
                "detected_type": outcome.classification.detected_type,
                "ocr_confidence": round(outcome.extraction.confidence, 3),
                "is_authentic": outcome.authenticity.is_authentic,
                "is_suspicious": outcome.suspicion.is_suspicious,
                "reasons": "; ".join(outcome.suspicion.reasons),
            }
        )
        row.update(outcome.fields)
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig,
    declared_type: str | None = None,
    language: str | None = None,
    workers: int | None = None,
    results_dir: Path | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export a CSV summary.

    Args:
        input_dir: Directory containing document images.
        output_csv: Path for the output CSV file.
        config: Application configuration.
        declared_type: Document type declared for every file, if known.
        language: OCR language set; the configured default if omitted.
        workers: Worker thread count; the configured count if omitted.
        results_dir: Directory for per-document JSON outcomes.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, completed, failed, and suspicious counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "completed": 0, "failed": 0, "suspicious": 0}

    logger.info("Found %d documents to process", len(files))
    sink = JsonDirectoryResultSink(results_dir or Path(config.storage.results_dir))
    orchestrator = PipelineOrchestrator.from_config(config, sink)

    job_files: dict[str, str] = {}
    for file_path in files:
        job_id = orchestrator.submit(
            str(file_path),
            language_hint=language,
            declared_type=declared_type,
            metadata={"document_id": file_path.name},
        )
        job_files[job_id] = file_path.name

    orchestrator.run_until_empty(workers or config.pipeline.workers)

    rows: list[dict[str, object]] = []
    summary = {"total": len(files), "completed": 0, "failed": 0, "suspicious": 0}
    for report in orchestrator.list_jobs():
        filename = job_files[report.job_id]
        if verbose:
            print(f"{filename}: {report.status}")
        if report.result is not None:
            summary["completed"] += 1
            if report.result.suspicion.is_suspicious:
                summary["suspicious"] += 1
        else:
            summary["failed"] += 1
        rows.append(_report_row(filename, report))

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)
    _print_summary(summary, output_csv)
    return summary


def extract_single(
    file_path: Path,
    config: AppConfig,
    declared_type: str | None = None,
    language: str | None = None,
) -> dict[str, object]:
    """Run one document through the pipeline in the calling thread.

    Args:
        file_path: Path to the document image.
        config: Application configuration.
        declared_type: Expected document type, if known.
        language: OCR language set; the configured default if omitted.

    Returns:
        The job status report as a dictionary.
    """
    orchestrator = PipelineOrchestrator.from_config(config, InMemoryResultSink())
    job_id = orchestrator.submit(
        str(file_path), language_hint=language, declared_type=declared_type
    )
    while orchestrator.process_next() is not None:
        pass

    report = orchestrator.get_status(job_id)
    result = report.to_dict() if report else {"job_id": job_id}
    result["filename"] = file_path.name
    return result


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write result rows to a CSV file, meta columns first."""
    if not rows:
        return

    all_keys: set[str] = set()
    for r in rows:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Completed:  {summary['completed']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Suspicious: {summary['suspicious']}")
    print(f"Output:     {output_csv}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Government Document Intelligence Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="Configuration YAML file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t", "--type", choices=_DOCUMENT_TYPES, dest="doc_type", help="Declared type"
    )
    batch_parser.add_argument("-l", "--lang", help="OCR language set, e.g. sin+eng")
    batch_parser.add_argument("-w", "--workers", type=int, help="Worker threads")
    batch_parser.add_argument(
        "--results-dir", type=Path, help="Directory for per-document JSON results"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "-t", "--type", choices=_DOCUMENT_TYPES, dest="doc_type", help="Declared type"
    )
    single_parser.add_argument("-l", "--lang", help="OCR language set, e.g. sin+eng")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            config,
            declared_type=args.doc_type,
            language=args.lang,
            workers=args.workers,
            results_dir=args.results_dir,
            verbose=args.verbose,
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file, config, args.doc_type, args.lang)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
