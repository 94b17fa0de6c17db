"""Command-line interface for scanning ID documents.

Provides subcommands for scanning a single image to JSON and for
processing folders of images into a CSV summary.
"""

import argparse
import csv
import json
import sys
import time
from dataclasses import asdict
from pathlib import Path

from src.ocr.document_processor import DocumentProcessor, DocumentResult
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp", "*.webp")
_META_COLUMNS = [
    "filename",
    "status",
    "quality",
    "is_valid",
    "detected",
    "missing",
    "processing_time_s",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for images.

    Returns:
        Sorted list of image file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def result_to_dict(result: DocumentResult) -> dict[str, object]:
    """Convert a scan result to JSON-serializable data (crops excluded)."""
    return {
        "filename": result.source_file,
        "template": result.template_name,
        "image": {
            "width": result.image_width,
            "height": result.image_height,
            "quality": asdict(result.image_quality),
        },
        "anchors": {key: asdict(anchor) for key, anchor in result.anchors.items()},
        "rois": {key: roi.to_dict() for key, roi in result.rois.items()},
        "quality": result.quality.to_dict(),
    }


def _result_row(result: DocumentResult) -> dict[str, object]:
    row: dict[str, object] = {
        "filename": result.source_file,
        "status": "success",
        "quality": round(result.quality.quality, 3),
        "is_valid": result.quality.is_valid,
        "detected": ";".join(result.quality.detected),
        "missing": ";".join(result.quality.missing),
        "error": None,
    }
    for field_key, roi in result.rois.items():
        row[field_key] = f"{roi.x},{roi.y},{roi.width},{roi.height}"
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    template: str,
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Scan all images in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document images.
        output_csv: Path for the output CSV file.
        template: Name of the document template to apply.
        verbose: Whether to print per-file progress.
        config: Application configuration; loaded from disk if omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d images to process", len(files))
    processor = DocumentProcessor(config or load_config())

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    try:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Processing [{i}/{len(files)}]: {file_path.name}")

            start_time = time.time()
            try:
                scan = processor.process(file_path, template, file_path.name)
                row = _result_row(scan)
                row["processing_time_s"] = round(time.time() - start_time, 2)
                results.append(row)
                successful += 1
            except Exception as exc:
                logger.error("Failed to process %s: %s", file_path.name, exc)
                results.append(
                    {
                        "filename": file_path.name,
                        "status": "failed",
                        "error": str(exc),
                    }
                )
                failed += 1
    finally:
        processor.close()

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write scan results to a CSV file.

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
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed documents.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Scan Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def scan_single(
    file_path: Path,
    template: str,
    crops_dir: Path | None = None,
    config: AppConfig | None = None,
) -> dict[str, object]:
    """Scan a single document and return structured results.

    Args:
        file_path: Path to the document image.
        template: Name of the document template to apply.
        crops_dir: Directory to write field crops to, if any.
        config: Application configuration; loaded from disk if omitted.

    Returns:
        Dictionary with anchors, ROIs, quality report and crop paths.
    """
    processor = DocumentProcessor(config or load_config())
    try:
        result = processor.process(file_path, template, file_path.name)
    finally:
        processor.close()

    output = result_to_dict(result)
    if crops_dir is not None:
        paths = processor.cropper.save(result.crops, crops_dir, file_path.stem)
        output["crops"] = [str(p) for p in paths]
    return output


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="ID Document Anchor Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, help="Configuration YAML (default: configs/config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="Scan a single document image")
    scan_parser.add_argument("file", type=Path, help="Document image to scan")
    scan_parser.add_argument(
        "-t", "--template", required=True, help="Document template name"
    )
    scan_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    scan_parser.add_argument(
        "--crops-dir", type=Path, help="Directory to write field crops to"
    )
    scan_parser.add_argument(
        "--no-preprocess", action="store_true", help="Skip image preprocessing"
    )

    batch_parser = subparsers.add_parser("batch", help="Scan a folder of images")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with images")
    batch_parser.add_argument(
        "-t", "--template", required=True, help="Document template name"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "--no-preprocess", action="store_true", help="Skip image preprocessing"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)
    if getattr(args, "no_preprocess", False):
        config.preprocessing.enabled = False

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            args.template,
            args.verbose,
            config,
        )
    elif args.command == "scan":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = scan_single(args.file, args.template, args.crops_dir, config)
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
