"""
Command-line interface for one-off validation and export.

Usage:
    python -m inventory_export.cli.export_cli validate --data-type <type> --input <file> [options]
    python -m inventory_export.cli.export_cli export --data-type <type> --input <file> --format <format> [options]
    python -m inventory_export.cli.export_cli rules --data-type <type> [--rules <file>]
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from inventory_export.config import load_settings
from inventory_export.core.errors import ConfigurationError
from inventory_export.core.models import EXPORT_FORMATS, ColumnSpec, ExportConfig, ExportOptions
from inventory_export.core.rules import RuleEngine
from inventory_export.export import Exporter
from inventory_export.observability.logger import configure_logging, get_logger
from inventory_export.pipeline import ExportPipeline
from inventory_export.service import build_registry
from inventory_export.utils.validation import validate_data_type, validate_file_path
from inventory_export.validation import ExportValidator, IntegrityChecker

logger = get_logger(__name__)


def load_document(path: str) -> Any:
    """Load a JSON or YAML document."""
    with open(path, "r", encoding="utf-8") as f:
        if path.endswith((".yaml", ".yml")):
            return yaml.safe_load(f)
        return json.load(f)


def load_records(path: str) -> list[dict[str, Any]]:
    data = load_document(path)
    if isinstance(data, dict) and isinstance(data.get("records"), list):
        data = data["records"]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of records")
    return data


def load_columns(path: str | None) -> list[ColumnSpec]:
    if not path:
        return []
    return [ColumnSpec.model_validate(column) for column in load_document(path)]


def print_validation(result) -> None:
    stats = result.statistics
    quality = result.data_quality

    print(f"\n{'=' * 60}")
    print(f"VALIDATION {'PASSED' if result.is_valid else 'FAILED'}")
    print(f"{'=' * 60}")
    print(f"Total records:     {stats.total_records}")
    print(f"Valid records:     {stats.valid_records}")
    print(f"Invalid records:   {stats.invalid_records}")
    print(f"Duplicate records: {stats.duplicate_records}")
    print(f"Missing fields:    {stats.missing_fields}")
    print(
        f"Quality: completeness {quality.completeness}%, consistency {quality.consistency}%, "
        f"accuracy {quality.accuracy}%, overall {quality.overall}%"
    )

    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  - {error}")
    if result.warnings:
        print(f"\nWarnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  - {warning}")
    print()


def validate_command(args) -> int:
    """
    Validate a record file against a data type's rules.

    Returns:
        Exit code (0 when the records are valid)
    """
    logger.info(f"Validating {args.input} as {args.data_type}")

    records = load_records(args.input)
    validator = ExportValidator(build_registry(args.rules))
    export_config = ExportConfig(format=args.format, options=ExportOptions(delimiter=args.delimiter))
    result = validator.validate(records, args.data_type, export_config)

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print_validation(result)
    return 0 if result.is_valid else 1


def export_command(args) -> int:
    """
    Validate, export and verify a record file.

    Returns:
        Exit code (0 when the artifact was produced and verified)
    """
    logger.info(f"Exporting {args.input} as {args.format}")

    records = load_records(args.input)
    columns = load_columns(args.columns)
    options = ExportOptions(
        filename=args.filename,
        filename_prefix=args.filename_prefix,
        title=args.title,
        include_headers=not args.no_headers,
        include_metadata=args.include_metadata,
        delimiter=args.delimiter,
        output_dir=args.output_dir,
    )

    pipeline = ExportPipeline(
        validator=ExportValidator(build_registry(args.rules)),
        exporter=Exporter(),
        integrity_checker=IntegrityChecker(),
    )
    result = pipeline.run(
        records,
        args.data_type,
        args.format,
        columns=columns,
        options=options,
        skip_validation=args.skip_validation,
        verify=not args.no_verify,
    )

    print_validation(result.validation)
    export = result.export
    if export is not None:
        print(f"{'=' * 60}")
        print(f"EXPORT {'COMPLETE' if export.success else 'FAILED'}")
        print(f"{'=' * 60}")
        if export.success:
            print(f"Artifact:  {export.artifact_path or export.artifact_name}")
            print(f"Records:   {export.record_count}")
            print(f"Size:      {export.size} bytes")
            print(f"Checksum:  {export.checksum}")
        else:
            print(f"Error: {export.error}")
    if result.integrity is not None:
        print(f"Integrity: {'verified' if result.integrity.is_valid else 'FAILED'}")
        for check in result.integrity.checks:
            print(f"  [{'x' if check.passed else ' '}] {check.name}: {check.message}")
    print()

    return 0 if result.success else 1


def rules_command(args) -> int:
    """Show the rules and required fields configured for a data type."""
    registry = build_registry(args.rules)

    if args.data_type not in registry.data_types():
        print(f"\nNo rules configured for data type: {args.data_type}")
        print(f"Known data types: {', '.join(registry.data_types())}")
        return 1

    rules = registry.rules_for(args.data_type)
    summary = RuleEngine(list(rules)).get_rule_summary()

    print(f"\nRules for {args.data_type}")
    print(f"Required fields: {', '.join(registry.required_fields_for(args.data_type)) or '-'}")
    print(f"\n{'Field':<20} {'Kind':<10} {'Severity':<10} {'Name'}")
    print(f"{'-' * 60}")
    for rule in rules:
        print(f"{rule.field:<20} {rule.kind:<10} {rule.severity:<10} {rule.name}")
    print(f"\nSummary: {json.dumps(summary)}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inventory export validation and export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate hardware records before exporting them
  python -m inventory_export.cli.export_cli validate --data-type hardware --input data/hardware.json

  # Export to CSV with a metadata banner
  python -m inventory_export.cli.export_cli export --data-type hardware --input data/hardware.json \\
      --format csv --output-dir exports --title "Hardware Inventory" --include-metadata

  # Show the rules applied to software records
  python -m inventory_export.cli.export_cli rules --data-type software
        """
    )
    parser.add_argument(
        "--env-file",
        help="Load settings from a .env file first"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Options shared by validate and export
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--data-type",
        required=True,
        help="Data type of the records (hardware, software, employees, ...)"
    )
    common.add_argument(
        "--input",
        required=True,
        help="JSON or YAML file containing a list of records"
    )
    common.add_argument(
        "--rules",
        help="YAML rule file merged over the built-in rules (default: EXPORT_RULES_PATH)"
    )
    common.add_argument(
        "--delimiter",
        default=",",
        help="Field delimiter for csv output (default: ,)"
    )

    # validate command
    validate_parser = subparsers.add_parser("validate", parents=[common], help="Validate a record file")
    validate_parser.add_argument(
        "--format",
        default="csv",
        choices=EXPORT_FORMATS,
        help="Target format whose limits are checked (default: csv)"
    )
    validate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the validation result as JSON"
    )

    # export command
    export_parser = subparsers.add_parser("export", parents=[common], help="Validate, export and verify a record file")
    export_parser.add_argument(
        "--format",
        required=True,
        choices=EXPORT_FORMATS,
        help="Export format"
    )
    export_parser.add_argument(
        "--output-dir",
        help="Directory to write the artifact to (default: EXPORT_OUTPUT_DIR)"
    )
    export_parser.add_argument("--filename", help="Artifact file name")
    export_parser.add_argument(
        "--filename-prefix",
        default="export",
        help="Prefix of the generated file name (default: export)"
    )
    export_parser.add_argument("--title", help="Title of the metadata banner")
    export_parser.add_argument(
        "--include-metadata",
        action="store_true",
        help="Write title, generation time and record count before the data"
    )
    export_parser.add_argument(
        "--no-headers",
        action="store_true",
        help="Omit the header row"
    )
    export_parser.add_argument(
        "--columns",
        help="JSON or YAML file with column definitions (inferred from the records otherwise)"
    )
    export_parser.add_argument(
        "--skip-validation",
        action="store_true",
        help="Export even when validation reports errors"
    )
    export_parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip integrity verification of the artifact"
    )

    # rules command
    rules_parser = subparsers.add_parser("rules", help="Show the validation rules of a data type")
    rules_parser.add_argument("--data-type", required=True, help="Data type to describe")
    rules_parser.add_argument("--rules", help="YAML rule file merged over the built-in rules")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        settings = load_settings(args.env_file)
        configure_logging(settings.log_level, settings.log_format, sys.stderr)

        args.data_type = validate_data_type(args.data_type)
        args.rules = args.rules or settings.rules_path
        if getattr(args, "input", None):
            args.input = validate_file_path(args.input, "input")
        if args.command == "export":
            args.output_dir = args.output_dir or settings.output_dir
            if args.output_dir:
                args.output_dir = validate_file_path(args.output_dir, "output_dir")

        if args.command == "validate":
            exit_code = validate_command(args)
        elif args.command == "export":
            exit_code = export_command(args)
        elif args.command == "rules":
            exit_code = rules_command(args)
        else:
            parser.print_help()
            exit_code = 1

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        print(f"\nError: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        print(f"\nError: {e}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
