"""modelverify CLI.

Commands:
  modelverify check <file>     Verify every class of a model file
  modelverify version          Print the version

Exit codes of ``check``: 0 when every class verifies, 1 when a contract
violation or a timeout is found, 2 when the model cannot be loaded.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

from modelverify import __version__
from modelverify.analysis_logger import create_logger, null_logger
from modelverify.config import RecursionPolicy, VerifierConfig, load_config
from modelverify.errors import MalformedModelError, ModelLoadError
from modelverify.manager import verify_file


EXIT_OK = 0
EXIT_VIOLATION = 1
EXIT_LOAD_ERROR = 2


def _build_config(args: argparse.Namespace) -> VerifierConfig:
    config = load_config(args.config, start_dir=os.path.dirname(os.path.abspath(args.file)))
    if args.max_depth is not None:
        config.max_depth = args.max_depth
    if args.max_duration is not None:
        config.max_duration = args.max_duration
    if args.recursion is not None:
        config.recursion = RecursionPolicy(args.recursion)
    if args.format is not None:
        config.format = args.format
    if args.log_file is not None:
        config.log_file = args.log_file
    if args.verbose:
        config.log_level = "debug"
    return config


def cmd_check(args: argparse.Namespace) -> int:
    """Verify every class declared in a model file."""
    source_path = args.file
    if not os.path.exists(source_path):
        print(json.dumps({"error": f"File not found: {source_path}"}))
        return EXIT_LOAD_ERROR

    config = _build_config(args)
    if config.log_file or args.verbose:
        logger = create_logger(config.log_level, config.log_file or None)
    else:
        logger = null_logger()

    try:
        results = verify_file(source_path, config, logger)
    except ModelLoadError as e:
        print(e.to_json())
        return EXIT_LOAD_ERROR
    except MalformedModelError as e:
        print(json.dumps({"error": str(e)}))
        return EXIT_LOAD_ERROR

    if config.format == "json":
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            print(result)
            if result.call_sequence:
                print(f"  call sequence: {', '.join(result.call_sequence)}")
            if result.model:
                for line in result.model.splitlines():
                    print(f"  {line}")

    if all(r.is_success for r in results):
        return EXIT_OK
    return EXIT_VIOLATION


def cmd_version(args: argparse.Namespace) -> int:
    print(f"modelverify {__version__}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modelverify",
        description="modelverify: bounded model checking of contract-annotated classes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # check
    p_check = subparsers.add_parser("check", help="Verify every class of a model file")
    p_check.add_argument("file", help="Model source file")
    p_check.add_argument("--max-depth", type=int, dest="max_depth", help="Longest call sequence explored")
    p_check.add_argument("--max-duration", type=float, dest="max_duration", help="Wall-clock budget in seconds")
    p_check.add_argument("--recursion", choices=[p.value for p in RecursionPolicy],
                         help="Reject recursive methods or abstract them past the inline depth")
    p_check.add_argument("--format", choices=["text", "json"], help="Output format")
    p_check.add_argument("--log-file", dest="log_file", help="Write the analysis log to this file")
    p_check.add_argument("--verbose", "-v", action="store_true", help="Log every assertion")
    p_check.add_argument("--config", help="Configuration file (default: nearest .modelverifyrc.*)")
    p_check.set_defaults(func=cmd_check)

    # version
    p_version = subparsers.add_parser("version", help="Print the version")
    p_version.set_defaults(func=cmd_version)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
