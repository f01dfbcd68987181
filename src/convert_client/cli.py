"""Command-line front end.

Usage:
    convert-client report.pdf --from pdf --to png --wait
    convert-client report.pdf --from pdf --to png -O density=300 --output out.zip
    convert-client slides.pptx --from pptx --to png --output page-1.png --file slides-1.png
"""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from dataclasses import replace
from pathlib import Path

from .client import Client
from .config import ClientSettings
from .errors import ConvertError
from .transfer import CancelToken

log = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    level = logging.DEBUG if verbose else logging.INFO
    root_logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S")
    )
    root_logger.addHandler(handler)


def _parse_option(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    return key, value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="convert-client", description="Stream a file to the conversion service.")
    parser.add_argument("input", type=Path, help="File to convert")
    parser.add_argument("--from", dest="input_format", help="Input format (default: file extension)")
    parser.add_argument("--to", dest="output_format", required=True, help="Output format")
    parser.add_argument("--wait", action="store_true", help="Hold the upload response until conversion finishes")
    parser.add_argument(
        "-O",
        "--option",
        dest="options",
        action="append",
        type=_parse_option,
        default=[],
        metavar="KEY=VALUE",
        help="Converter option (repeatable)",
    )
    parser.add_argument("--output", type=Path, help="Download the result to this path")
    parser.add_argument("--file", dest="download_name", help="Download only this file of a multi-file result")
    parser.add_argument("--api-key", help="API key (default: $CLOUDCONVERT_KEY)")
    parser.add_argument("--base-url", help="API base URL (default: $CLOUDCONVERT_API_URL)")
    parser.add_argument("--timeout", type=float, help="Give up after this many seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _setup_logging(args.verbose)

    settings = ClientSettings.from_env()
    api_key = args.api_key or settings.api_key
    base_url = (args.base_url or settings.base_url).rstrip("/")
    if not api_key:
        print("error: no API key; pass --api-key or set CLOUDCONVERT_KEY", file=sys.stderr)
        return 2
    if not args.input.is_file():
        print(f"error: {args.input} is not a file", file=sys.stderr)
        return 2
    input_format = args.input_format or args.input.suffix.lstrip(".").lower()
    if not input_format:
        print("error: cannot infer input format; pass --from", file=sys.stderr)
        return 2

    client = Client(
        api_key,
        base_url,
        settings=replace(settings, api_key=api_key, base_url=base_url),
    )
    cancel = CancelToken(args.timeout)
    try:
        process = client.create_process(input_format, args.output_format).wait(args.wait)
        status = process.convert_file(args.input, args.output_format, dict(args.options), cancel=cancel)
        if not status.finished:
            status = process.poll(cancel=cancel)
        print(json.dumps(status.model_dump(by_alias=True, exclude_none=True), indent=2))
        if status.step == "error":
            print(f"error: conversion failed: {status.message}", file=sys.stderr)
            return 1
        if args.output is not None:
            source = (
                process.download_one(args.download_name, cancel=cancel)
                if args.download_name
                else process.download(cancel=cancel)
            )
            args.output.parent.mkdir(parents=True, exist_ok=True)
            with source, args.output.open("wb") as out:
                shutil.copyfileobj(source, out)
            log.info("saved result to %s", args.output)
    except ConvertError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        cancel.close()
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
