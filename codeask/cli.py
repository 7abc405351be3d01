"""CLI entrypoints for codeask commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import CodeAskConfig, ConfigError, load_config
from .llm.base import GatewayError
from .logging import configure_logging, get_logger
from .orchestrator import PipelineError, QuestionOrchestrator
from .stores import SummaryStore

DEFAULT_SUMMARY_PATH = Path("./result/all.md")
DEFAULT_OUTPUT_DIR = Path("./result")


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


def _add_llm_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-t",
        "--token",
        default=None,
        help="API token for the model backend (overrides config and environment).",
    )
    parser.add_argument(
        "--backend",
        choices=("http", "openai"),
        default=None,
        help="Model backend: raw HTTP chat completions or the OpenAI SDK.",
    )
    parser.add_argument("--model", default=None, help="Model name to request.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeask",
        description="Summarize source files and answer questions about a codebase with an LLM.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-c",
        "--config",
        default=".",
        help="Path to .codeask.yml or the directory containing it (defaults to current directory).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    summarize_parser = subparsers.add_parser(
        "summarize",
        help="Summarize source files into structured YAML records.",
    )
    _add_verbose_option(summarize_parser, suppress_default=True)
    _add_llm_options(summarize_parser)
    summarize_parser.add_argument("paths", nargs="+", help="Source files to summarize.")
    summarize_parser.add_argument(
        "-o",
        "--output-dir",
        default=None,
        help="Directory to save raw summaries (defaults to ./result).",
    )

    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a question about the codebase.",
    )
    _add_verbose_option(ask_parser, suppress_default=True)
    _add_llm_options(ask_parser)
    ask_parser.add_argument("question", help="The question to answer.")
    ask_parser.add_argument(
        "-s",
        "--summary",
        default=None,
        help="Codebase summary document (defaults to ./result/all.md).",
    )
    ask_parser.add_argument(
        "--help-info",
        default="",
        help="Extra context passed to the final answer prompt.",
    )
    ask_parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Skip files that cannot be read or analyzed instead of aborting.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codeask commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))
    logger = get_logger("cli")

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    _apply_overrides(config, args)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config=config)
        return

    try:
        orchestrator = QuestionOrchestrator.from_config(config)
    except (ConfigError, GatewayError) as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "summarize":
        output_dir = Path(args.output_dir) if args.output_dir else config.output_dir or DEFAULT_OUTPUT_DIR
        store = SummaryStore(output_dir)
        failures = 0
        for path in args.paths:
            logger.info("Processing file: %s", path)
            try:
                outcome = orchestrator.summarize(path)
            except PipelineError as exc:
                failures += 1
                logger.error("%s", exc)
                continue
            saved = store.save(path, outcome.raw)
            if outcome.summary.is_empty:
                logger.warning("No structured summary for %s; raw response kept at %s", path, saved)
            print(f"{path}: {outcome.summary.file_description or '(no description)'}")
        print(f"Processed {len(args.paths) - failures} of {len(args.paths)} files")
        if failures:
            parser.exit(1)
    elif args.command == "ask":
        summary_path = Path(args.summary) if args.summary else config.summary_path or DEFAULT_SUMMARY_PATH
        try:
            summary = summary_path.read_text(encoding="utf-8")
        except OSError as exc:
            parser.exit(1, f"Cannot read summary document {summary_path}: {exc}\n")
        try:
            outcome = orchestrator.answer(args.question, summary, args.help_info)
        except ValueError as exc:
            parser.exit(1, f"{exc}\n")
        except PipelineError as exc:
            parser.exit(1, f"codeask ask failed: {exc}\nRun with --verbose for more details.\n")
        print("AI answer:")
        print(outcome.answer)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _apply_overrides(config: CodeAskConfig, args: argparse.Namespace) -> None:
    token = getattr(args, "token", None)
    backend = getattr(args, "backend", None)
    model = getattr(args, "model", None)
    if token:
        config.llm.api_key = token
    if backend:
        config.llm.backend = backend
    if model:
        config.llm.model = model
    if getattr(args, "keep_going", False):
        config.pipeline.tolerate_file_errors = True


if __name__ == "__main__":
    main(sys.argv[1:])
