"""Command line interface for autoreadme."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from rich.logging import RichHandler
from rich.prompt import Prompt

from . import __version__
from .cli_progress import PipelineProgressDisplay, console, render_configuration_summary
from .config import default_config_path, load_settings, write_settings
from .errors import AutoReadmeError, ErrorKind, ServiceError, UploadFailedError
from .models import PipelineConfig, Settings
from .orchestrator import ReadmeOrchestrator
from .services.api_client import AssistantAPIClient

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_RESOURCE_NAME = "autoreadme"
ASSISTANT_DESCRIPTION = (
    "You are an assistant for auto-generating READMEs and associated documentation."
)

ClientFactory = Callable[[str], Any]
Ask = Callable[..., str]


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            env_level = os.getenv("LOG_LEVEL")
            level = getattr(logging, (env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # keep transport chatter out of debug output
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("httpcore").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.is_file():
        raise CLIError(f"env file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].strip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        if override or key not in os.environ:
            os.environ[key] = _strip_optional_quotes(value.strip())


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.is_file() else None


def _describe_error(exc: Exception) -> str:
    if isinstance(exc, ServiceError) and exc.kind == ErrorKind.AUTHENTICATION:
        return "access token rejected by the service"
    return str(exc) or type(exc).__name__


# =============================================================================
# configure
# =============================================================================

async def _prompt_validated(
    ask: Ask,
    prompt: str,
    action: Callable[[str], Any],
    error_message: str,
    default: str = "",
) -> str:
    """Ask for a value and run ``action`` on it; any failure becomes CLIError."""
    value = ask(prompt, default=default, show_default=bool(default)).strip()
    try:
        return await action(value)
    except (AutoReadmeError, KeyError, ValueError) as exc:
        logger.debug(f"{error_message}: {exc}")
        raise CLIError(error_message) from exc


async def _run_configure(
    config_path: Optional[Path],
    ask: Optional[Ask] = None,
    client_factory: Optional[ClientFactory] = None,
) -> Path:
    ask = ask or Prompt.ask
    client_factory = client_factory or AssistantAPIClient
    token = ask("Enter access token", password=True).strip()
    if not token:
        raise CLIError("error validating access token")

    async with client_factory(token) as client:
        try:
            await client.verify_credentials()
        except AutoReadmeError as exc:
            logger.debug(f"error validating access token: {exc}")
            raise CLIError("error validating access token") from exc

        async def _model(value: str) -> str:
            value = value or DEFAULT_MODEL
            await client.get_model(value)
            return value

        model = await _prompt_validated(
            ask, "Enter model version", _model, "error validating model", DEFAULT_MODEL
        )

        async def _vector_store(value: str) -> str:
            if not value:
                return await client.create_vector_store(DEFAULT_RESOURCE_NAME)
            await client.get_vector_store(value)
            return value

        vector_store_id = await _prompt_validated(
            ask,
            "Enter vector store ID (leave empty to create vector store)",
            _vector_store,
            "error creating/validating vector store",
        )

        async def _assistant(value: str) -> str:
            if not value:
                return await client.create_assistant(
                    DEFAULT_RESOURCE_NAME, ASSISTANT_DESCRIPTION, model, vector_store_id
                )
            assistant = await client.get_assistant(value)
            resources = (assistant.get("tool_resources") or {}).get("file_search") or {}
            if not resources.get("vector_store_ids"):
                raise ValueError("vector store ids not found in assistant tool resources")
            return value

        assistant_id = await _prompt_validated(
            ask,
            "Enter assistant ID (leave empty to create assistant)",
            _assistant,
            "error creating/validating assistant",
        )

    default_path = config_path or default_config_path()
    path = ask("Enter config path", default=str(default_path)).strip() or str(default_path)

    settings = Settings(
        access_token=token,
        model_version=model,
        assistant_id=assistant_id,
        vector_store_id=vector_store_id,
    )
    try:
        return write_settings(settings, Path(path))
    except (OSError, ValueError) as exc:
        logger.debug(f"{exc}")
        raise CLIError(f"error writing config file to {path}") from exc


# =============================================================================
# test
# =============================================================================

async def _run_test(
    config_path: Optional[Path],
    client_factory: Optional[ClientFactory] = None,
) -> None:
    client_factory = client_factory or AssistantAPIClient
    try:
        settings = load_settings(config_path)
    except AutoReadmeError as exc:
        raise CLIError(f"error loading config file: {exc}") from exc
    logger.debug(f"loaded configuration {settings!r}")

    checks = [
        ("credentials", lambda c: c.verify_credentials()),
        ("model", lambda c: c.get_model(settings.model_version)),
        ("vector store", lambda c: c.get_vector_store(settings.vector_store_id)),
        ("assistant", lambda c: c.get_assistant(settings.assistant_id)),
    ]
    async with client_factory(settings.access_token) as client:
        for label, check in checks:
            try:
                await check(client)
            except AutoReadmeError as exc:
                logger.debug(f"error validating {label}: {exc}")
                raise CLIError(f"error validating {label}: {_describe_error(exc)}") from exc
            console.print(f"[green]OK[/green] {label}")


# =============================================================================
# generate
# =============================================================================

async def _run_generate(
    target: Path,
    config_path: Optional[Path],
    pipeline_config: PipelineConfig,
    client_factory: Optional[ClientFactory] = None,
    display: Optional[PipelineProgressDisplay] = None,
) -> Path:
    client_factory = client_factory or AssistantAPIClient
    display = display or PipelineProgressDisplay()
    display.start()
    try:
        try:
            settings = load_settings(config_path)
        except AutoReadmeError as exc:
            raise CLIError(f"error loading config file: {exc}") from exc
        logger.debug(f"loaded configuration {settings!r}")

        if not target.is_dir():
            raise CLIError(f"path {target} either does not exist or is not a valid directory")

        async with client_factory(settings.access_token) as client:
            orchestrator = ReadmeOrchestrator(client, settings, pipeline_config)
            display.attach(orchestrator)
            try:
                result = await orchestrator.generate(target)
            except UploadFailedError as exc:
                for failure in exc.failures:
                    logger.debug(f"error uploading {failure.name}: {failure.message}")
                raise CLIError(f"error generating README: {exc}") from exc
            except AutoReadmeError as exc:
                raise CLIError(f"error generating README: {_describe_error(exc)}") from exc
            except OSError as exc:
                raise CLIError(f"error generating README: {exc}") from exc
    except CLIError as exc:
        display.on_error(exc)
        raise
    finally:
        display.stop()

    display.on_finish(result)
    return result.output_path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoreadme",
        description="Generate a README for a source tree using a hosted assistant.",
    )
    parser.add_argument(
        "--config-path",
        type=Path,
        default=None,
        help=f"Path to configuration file (default {default_config_path()})",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version=f"autoreadme {__version__}")

    commands = parser.add_subparsers(dest="command")
    commands.add_parser("configure", help="Configure assistant access")
    commands.add_parser("test", help="Test configured assistant access")

    generate = commands.add_parser("generate", help="Generate a new README for a codebase")
    generate.add_argument(
        "-t",
        "--target",
        type=Path,
        default=Path("."),
        help="Target directory containing source code (default: current directory)",
    )
    generate.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=PipelineConfig.max_concurrent_uploads,
        help="Maximum parallel uploads",
    )
    generate.add_argument(
        "--poll-interval",
        type=float,
        default=PipelineConfig.poll_interval,
        help="Seconds between run status checks",
    )
    generate.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up waiting for the run after this many seconds (default: wait forever)",
    )
    generate.add_argument(
        "-o",
        "--output",
        default=PipelineConfig.output_filename,
        help="Output filename inside the target directory",
    )
    generate.add_argument(
        "--cleanup",
        action="store_true",
        help="Delete uploaded files from the service after generation",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    config_path = args.config_path.expanduser() if args.config_path else None

    try:
        if args.command == "configure":
            written = asyncio.run(_run_configure(config_path))
            console.print(f"[green]Configuration written to[/green] {written}")
            return 0

        if args.command == "test":
            asyncio.run(_run_test(config_path))
            return 0

        try:
            pipeline_config = PipelineConfig(
                max_concurrent_uploads=args.concurrency,
                poll_interval=args.poll_interval,
                poll_timeout=args.timeout,
                output_filename=args.output,
                cleanup_uploads=args.cleanup,
            )
        except ValueError as exc:
            raise CLIError(str(exc)) from exc

        target = Path(args.target).expanduser()
        render_configuration_summary({
            "Target": str(target),
            "Config": str(config_path or default_config_path()),
            "Output": args.output,
            "Concurrency": pipeline_config.max_concurrent_uploads,
            "Poll Interval": f"{pipeline_config.poll_interval:g}s",
            "Timeout": f"{args.timeout:g}s" if args.timeout else "none",
            "Cleanup": "yes" if args.cleanup else "no",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        })
        asyncio.run(_run_generate(target, config_path, pipeline_config))
        return 0
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
