"""Command-line entry point: go-deepcopy."""

from __future__ import annotations

import argparse
import logging
import sys

from deepcopygen.config import GeneratorConfig
from deepcopygen.errors import DeepCopyGenError, OutputError
from deepcopygen.generator import run

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"


def build_arg_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(
        prog="go-deepcopy",
        description="Generate DeepCopy methods for Go types",
    )
    arg_parser.add_argument(
        "package",
        nargs="*",
        help="Path to the Go package directory",
    )
    arg_parser.add_argument(
        "-type", "--type",
        action="append",
        help="The concrete type. Multiple flags can be specified",
    )
    arg_parser.add_argument(
        "-skip", "--skip",
        action="append",
        help="Comma-separated field/slice/map selectors to shallow copy. "
             "Multiple flags can be specified",
    )
    arg_parser.add_argument(
        "-pointer-receiver", "--pointer-receiver",
        action="store_true",
        help="Generate methods with pointer receivers",
    )
    arg_parser.add_argument(
        "-o", "--output",
        help="The output file to write to. Defaults to stdout",
    )
    arg_parser.add_argument(
        "--method-name",
        default="DeepCopy",
        help="Name of the generated and reused copy method (default: DeepCopy)",
    )
    arg_parser.add_argument(
        "--gofmt",
        action="store_true",
        help="Format the output with gofmt found on PATH",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )
    return arg_parser


def configure_logging(verbose: bool = False) -> None:
    """Send the package's log records to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger("deepcopygen")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def write_output(destination: str | None, content: str) -> None:
    """Write the generated source to a file, or stdout for None, "" or "-"."""
    if destination in (None, "", "-"):
        sys.stdout.write(content)
        sys.stdout.flush()
        return
    try:
        with open(destination, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise OutputError(f"writing {destination}: {e}") from e
    logger.debug("Wrote %s", destination)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = build_arg_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = arg_parser.parse_args(argv)
    config = GeneratorConfig.from_args(args)
    configure_logging(config.verbose)

    try:
        config.validate()
        content = run(
            config.package,
            config.types,
            config.skips,
            config.pointer_receiver,
            method_name=config.method_name,
            command=" ".join([arg_parser.prog, *argv]),
            gofmt=config.gofmt_path(),
        )
        write_output(config.output, content)
    except DeepCopyGenError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
