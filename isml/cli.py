#!/usr/bin/env python
"""
Precompile check for ISML template directories.

Usage:
    isml-check cartridge/templates
    isml-check cartridge/templates --fail-on-warning --workers 8
    isml-check cartridge/templates --json > report.json

Exit status: 0 when every template parses cleanly, 1 when any template has
errors (or warnings with --fail-on-warning) or cannot be read, 2 on usage
errors.
"""

import argparse
import json
import logging
import sys

from isml.config import Config, ParserConfig
from isml.parser.exceptions import ISMLError
from isml.services.precompile import TemplatePrecompiler

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='isml-check',
        description='Parse every ISML template below a source directory and report syntax problems'
    )
    parser.add_argument('src_dir', help='Template source directory holding the language directories')
    parser.add_argument('--encoding', '-e', default=Config.ISML_TEMPLATE_ENCODING,
                        help='Template file encoding (default: %(default)s)')
    parser.add_argument('--workers', '-w', type=int, default=Config.ISML_MAX_WORKERS,
                        help='Number of parallel workers')
    parser.add_argument('--fail-on-warning', action='store_true', default=Config.ISML_FAIL_ON_WARNING,
                        help='Treat warnings as errors')
    parser.add_argument('--isml-only', action='store_true',
                        help='Only <is...> tags are elements; HTML is plain text')
    parser.add_argument('--no-hash-expressions', action='store_true',
                        help='Do not recognize legacy #...# expressions in attribute values')
    parser.add_argument('--json', action='store_true', help='Print the full report as JSON')
    return parser


def print_report(result, stream=None):
    stream = stream or sys.stdout
    for report in result.reports:
        problems = report.errors + (report.warnings if result.fail_on_warning else [])
        for problem in sorted(problems, key=lambda d: (d['line'], d['column'])):
            print(
                f"{report.source_name}:{problem['line']}:{problem['column']}: "
                f"{problem['severity']}: {problem['message']} [{problem['code']}]",
                file=stream
            )
    for unreadable in result.unreadable:
        print(f"{unreadable.source_name}: unreadable: {unreadable.reason}", file=stream)

    print(
        f"{result.checked} templates checked, {len(result.failed_reports)} failed, "
        f"{len(result.unreadable)} unreadable "
        f"({result.error_count} errors, {result.warning_count} warnings)",
        file=stream
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.workers is not None and args.workers < 1:
        logger.error(f"--workers must be at least 1, got {args.workers}")
        return EXIT_USAGE

    config = ParserConfig(
        recognize_html_tags=not args.isml_only,
        hash_expressions=not args.no_hash_expressions
    )
    precompiler = TemplatePrecompiler(
        args.src_dir,
        config=config,
        encoding=args.encoding,
        max_workers=args.workers,
        fail_on_warning=args.fail_on_warning
    )

    try:
        result = precompiler.run()
    except ISMLError as e:
        logger.error(str(e))
        return EXIT_USAGE

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_report(result)

    return EXIT_FAILED if result.failed else EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
