"""
Command-line interface for pushing rows to RabbitMQ.

Usage:
    mqpusher --config config.yaml [--csv-file <file.csv.gz>] [--script <convert.py>]
"""

import argparse
import sys

from mqpusher.core.config import ConfigLoader
from mqpusher.core.errors import ConfigurationError
from mqpusher.observability.logger import get_logger, setup_logger
from mqpusher.observability.metrics import start_metrics_server
from mqpusher.pipeline import build_pipeline

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mqpusher",
        description="Publish rows from a CSV file or a database query to RabbitMQ",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push the source configured in config.yaml
  mqpusher --config config.yaml

  # Push a compressed CSV file instead of the configured source
  mqpusher --config config.yaml --csv-file data/users.csv.gz

  # Convert every row with a script before publishing
  mqpusher --config config.yaml --script scripts/convert.py
        """
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Config file path (default: config.yaml)"
    )
    parser.add_argument(
        "--csv-file",
        default="",
        help=".csv or .csv.gz source file path; overrides the configured source"
    )
    parser.add_argument(
        "--script",
        default="",
        help="Conversion script path; overrides the configured script"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL env var or INFO)"
    )
    parser.add_argument(
        "--log-format",
        default="json",
        choices=["json", "text"],
        help="Log output format (default: json)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port"
    )
    return parser


def push_command(args: argparse.Namespace) -> int:
    """
    Execute a push run.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        config = ConfigLoader(args.config).load(
            csv_file=args.csv_file or None,
            script_file=args.script or None,
        )
        pipeline = build_pipeline(config)
    except ConfigurationError as e:
        logger.error(f"invalid config: {e}", extra={"fields": e.fields} if e.fields else {})
        return 1

    metrics_port = args.metrics_port or config.metrics_port
    if metrics_port:
        start_metrics_server(metrics_port)
        logger.info(f"Serving metrics on port {metrics_port}")

    result = pipeline.run()
    return 0 if result.succeeded else 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger(level=args.log_level, format_type=args.log_format)

    return push_command(args)


if __name__ == "__main__":
    sys.exit(main())
