"""CLI entrypoints for compscan commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config, split_csv
from .errors import CompscanError
from .logging import configure_logging
from .scanner import Scanner


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=".",
        help="Project root or path to .compscan.yml (defaults to current directory).",
    )
    parser.add_argument(
        "--no-build",
        action="store_true",
        help="Never run the package build, even when the build manifest is stale.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compscan",
        description="Catalog which Swift components are used across a package, and where.",
        epilog=(
            "Examples:\n"
            "  $ compscan scan -d UIKit -e Tests Sources/MessageInputBar/MessageInputBar.swift\n"
            "  $ compscan modules"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan Swift files and directories and record component usage.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_project_options(scan_parser)
    scan_parser.add_argument(
        "paths",
        nargs="+",
        help="Files or directories to scan.",
    )
    scan_parser.add_argument(
        "-d",
        "--design",
        default=None,
        help="Design system modules (comma-separated).",
    )
    scan_parser.add_argument(
        "-e",
        "--exclude",
        default=None,
        help="Folder or file names to skip (comma-separated).",
    )
    scan_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Where to write component metadata (defaults to output_path in .compscan.yml).",
    )
    scan_parser.add_argument(
        "--rebuild-catalog",
        action="store_true",
        help="Regenerate the component catalog even if a saved one exists.",
    )
    scan_parser.add_argument(
        "--resume",
        action="store_true",
        help="Add to the counts of an existing metadata output instead of starting fresh.",
    )

    modules_parser = subparsers.add_parser(
        "modules",
        help="List the modules resolved from the build manifest.",
    )
    _add_verbose_option(modules_parser, suppress_default=True)
    _add_project_options(modules_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing modules and scans.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for compscan commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        config = load_config(Path(args.config))
    except CompscanError as exc:
        parser.exit(1, f"{exc}\n")

    scanner = Scanner(config)
    scanner.initialize(allow_build=not args.no_build)

    if args.command == "scan":
        _run_scan(parser, scanner, args)
    elif args.command == "modules":
        _run_modules(scanner)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")

    if scanner.setup_failures:
        parser.exit(1, "compscan setup failed; run with --verbose for more details.\n")


def _run_scan(parser: argparse.ArgumentParser, scanner: Scanner, args: argparse.Namespace) -> None:
    design_systems = split_csv(args.design) or None
    exclude = split_csv(args.exclude)
    try:
        catalog = scanner.load_or_build_catalog(rebuild=bool(args.rebuild_catalog))
    except CompscanError as exc:
        parser.exit(1, f"compscan scan failed: {exc}\n")

    context = scanner.new_context(catalog, design_systems=design_systems)
    output = Path(args.output).resolve() if args.output else scanner.config.output_file
    if args.resume:
        context.store.load(output)

    cwd = Path.cwd()
    roots = [(cwd / path).resolve() for path in args.paths]
    report = scanner.scan(roots, context, exclude=exclude)

    try:
        saved = scanner.save(context, output)
    except CompscanError as exc:
        parser.exit(1, f"compscan scan failed: {exc}\n")

    print("Scan complete.")
    print(f"Scanned {len(report.files)} files, {len(report.failures)} failures.")
    print(f"Components saved to: {_relativize(saved)}")


def _run_modules(scanner: Scanner) -> None:
    if not scanner.modules:
        print("No modules available.")
        return
    print("\nAvailable modules:\n")
    for module in scanner.modules:
        origin = "third-party" if module.is_third_party else "first-party"
        print(f" - name: {module.name}\n - path: {module.source_path}\n - {origin}\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
