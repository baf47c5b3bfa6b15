"""
Formula analyst — CLI entry point.

Usage:
    python analyzer.py analyze <workbook> [-c <context>] [-o <result.json>]
    python analyzer.py convert <file> [--to xlsx|csv] [-o <output>]
    python analyzer.py set-key <api_key>
    python analyzer.py clear-key

``analyze`` extracts the formulas of a workbook, asks the reasoning
service for a structured critique and writes it as JSON.  ``convert``
turns a CSV into an .xlsx workbook or a workbook into a UTF-8 CSV.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import dotenv

from ai.factory import PROVIDER_ALIASES, PROVIDERS
from analysis.client import AnalysisClient
from analysis.credentials import FileCredentialProvider, InMemoryCredentialProvider
from analysis.request_builder import AnalysisRequestBuilder
from analysis.session import AnalysisSession, is_remote_link, reject_remote_link
from codec.formats import TargetFormat
from conversion.orchestrator import ConversionOrchestrator
from prompts.analysis import DEFAULT_RESPONSE_LANGUAGE
from utils.exceptions import FormulaAnalystError

dotenv.load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------


def _read_input(path: str) -> bytes:
    if not os.path.isfile(path):
        logger.error("File not found: %s", path)
        sys.exit(1)
    with open(path, "rb") as f:
        return f.read()


def _cmd_analyze(args: argparse.Namespace) -> None:
    if is_remote_link(args.file):
        reject_remote_link(args.file)

    data = _read_input(args.file)

    store = FileCredentialProvider()
    credentials = (
        InMemoryCredentialProvider(args.api_key) if args.api_key else store
    )
    session = AnalysisSession(
        credentials,
        builder=AnalysisRequestBuilder(language=args.language),
        client=AnalysisClient(provider=args.provider, model=args.model),
    )

    result = asyncio.run(
        session.analyze_file(Path(args.file).name, data, user_context=args.context)
    )
    json_str = result.to_json()

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(json_str)
        logger.info("Output written to %s", args.output)
    else:
        print(json_str)


def _cmd_convert(args: argparse.Namespace) -> None:
    data = _read_input(args.file)
    target = TargetFormat(args.to) if args.to else None

    converted = ConversionOrchestrator().convert_file(Path(args.file).name, data, target)

    output_path = args.output or str(Path(args.file).with_name(converted.file_name))
    with open(output_path, "wb") as f:
        f.write(converted.data)
    logger.info("Output written to %s", output_path)


def _cmd_set_key(args: argparse.Namespace) -> None:
    FileCredentialProvider().set(args.api_key.strip())


def _cmd_clear_key(args: argparse.Namespace) -> None:
    FileCredentialProvider().clear()


# -------------------------------------------------------------------
# CLI
# -------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyse spreadsheet formulas with an LLM, or convert CSV ⇄ XLSX.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Critique the formulas of a workbook")
    analyze.add_argument("file", help="Path to the .xlsx / .xlsm / .xls workbook")
    analyze.add_argument(
        "-c",
        "--context",
        default=None,
        help="Free-text description of what the workbook is for",
    )
    analyze.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output JSON file path (default: print to stdout)",
    )
    analyze.add_argument(
        "--api-key",
        default=None,
        help="API key for this run (default: stored key, then environment)",
    )
    analyze.add_argument(
        "--provider",
        default=None,
        choices=[*PROVIDERS, *PROVIDER_ALIASES],
        type=str.lower,
        help="gemini, openai or claude (default: $AI_ANALYSIS_PROVIDER or gemini)",
    )
    analyze.add_argument("--model", default=None, help="Model name override")
    analyze.add_argument(
        "--language",
        default=DEFAULT_RESPONSE_LANGUAGE,
        help=f"Language of the critique (default: {DEFAULT_RESPONSE_LANGUAGE})",
    )
    analyze.set_defaults(handler=_cmd_analyze)

    convert = sub.add_parser("convert", help="Convert CSV ⇄ XLSX")
    convert.add_argument("file", help="Path to the .csv / .tsv / .xlsx / .xlsm / .xls file")
    convert.add_argument(
        "--to",
        choices=[t.value for t in TargetFormat],
        default=None,
        help="Target format (default: xlsx for text input, csv for workbooks)",
    )
    convert.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output path (default: <input>_converted.<ext> next to the input)",
    )
    convert.set_defaults(handler=_cmd_convert)

    set_key = sub.add_parser("set-key", help="Store the API key locally")
    set_key.add_argument("api_key")
    set_key.set_defaults(handler=_cmd_set_key)

    clear_key = sub.add_parser("clear-key", help="Remove the stored API key")
    clear_key.set_defaults(handler=_cmd_clear_key)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)
    try:
        args.handler(args)
    except FormulaAnalystError as exc:
        logger.debug("Command failed: %s", exc, exc_info=True)
        logger.error(exc.user_message)
        sys.exit(1)


if __name__ == "__main__":
    main()
