"""Command-line interface for imggen."""

from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path

import click
import httpx
from dotenv import load_dotenv

# Load .env file from current directory and parent directories
load_dotenv()

from loguru import logger
from rich.table import Table

from imggen.batch import BatchItem, BatchOptions, BatchProcessor, BatchRun
from imggen.cli import ui
from imggen.cli.console import get_console, get_stderr_console
from imggen.cli.logging_config import print_version, setup_logging
from imggen.config import ConfigManager, ImggenConfig
from imggen.errors import APIKeyRequiredError, ImggenError
from imggen.image import ImageSaver
from imggen.manifest import parse_file
from imggen.models import ModelRegistry, OutputFormat, ProviderType, default_registry
from imggen.providers import ProviderConfig, ProviderFactory
from imggen.providers.openai import OpenAIProvider
from imggen.utils.text import format_error_message

# Fix Windows console encoding for Unicode output
if sys.platform == "win32":
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--version",
    "-v",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
def app() -> None:
    """Generate images from text prompts with remote image APIs."""


# =============================================================================
# batch
# =============================================================================


@app.command("batch")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: current directory).",
)
@click.option("--model", "-m", default=None, help="Default model for all prompts.")
@click.option("--size", "-s", default=None, help="Default image size, e.g. 1024x1024.")
@click.option("--quality", "-q", default=None, help="Default image quality.")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(OutputFormat.values(), case_sensitive=False),
    default=None,
    help="Output image format.",
)
@click.option(
    "--parallel",
    "-p",
    type=click.IntRange(min=1),
    default=None,
    help="Number of prompts generated at the same time.",
)
@click.option(
    "--stop-on-error",
    is_flag=True,
    default=None,
    help="Stop dispatching new prompts after the first failure.",
)
@click.option(
    "--delay",
    "delay_ms",
    type=click.IntRange(min=0),
    default=None,
    help="Delay between requests in milliseconds.",
)
@click.option(
    "--api-key",
    default=None,
    help="OpenAI API key (default: config or OPENAI_API_KEY).",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option("--verbose", is_flag=True, help="Show request/response details.")
def batch(
    input_file: Path,
    output_dir: Path | None,
    model: str | None,
    size: str | None,
    quality: str | None,
    fmt: str | None,
    parallel: int | None,
    stop_on_error: bool | None,
    delay_ms: int | None,
    api_key: str | None,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Generate one image per prompt in INPUT_FILE (.txt or .json).

    \b
    Text files hold one prompt per line; blank lines and # comments are
    skipped. JSON files hold an array of objects:
      [{"prompt": "...", "model": "dall-e-3", "size": "1792x1024"}]
    """
    try:
        manager = ConfigManager()
        manager.load(config_path)
        manager.merge_cli_args(
            **{
                "output.dir": str(output_dir) if output_dir else None,
                "output.format": fmt.lower() if fmt else None,
                "batch.model": model,
                "batch.size": size,
                "batch.quality": quality,
                "batch.parallel": parallel,
                "batch.stop_on_error": stop_on_error or None,
                "batch.delay_ms": delay_ms,
            }
        )
        cfg = manager.config

        setup_logging(
            verbose,
            log_dir=cfg.log.dir,
            log_level=cfg.log.level,
            rotation=cfg.log.rotation,
            retention=cfg.log.retention,
        )
        if manager.config_path:
            logger.info(f"Using config: {manager.config_path}")

        registry = default_registry()

        items = parse_file(input_file)
        options = _build_options(cfg)
        provider_config = _build_provider_config(cfg, api_key, verbose)
    except ImggenError as e:
        ui.error(format_error_message(e))
        raise SystemExit(1)

    console = get_console()
    console.print(f"Batch generation: {len(items)} prompts")
    if not options.output_dir.exists():
        options.output_dir.mkdir(parents=True, exist_ok=True)
        console.print(f"Created directory: {options.output_dir}")
    console.print(f"Output directory: {options.output_dir}\n")

    try:
        run = asyncio.run(_run_batch(items, options, provider_config, registry))
    except ImggenError as e:
        ui.error(format_error_message(e))
        raise SystemExit(1)

    if run.error is not None:
        ui.error("Batch failed", detail=str(run.error))
        raise SystemExit(1)

    if run.failed == 0:
        ui.success(f"{run.successful} images saved to {options.output_dir}")


def _build_options(cfg: ImggenConfig) -> BatchOptions:
    return BatchOptions(
        output_dir=Path(cfg.output.dir).expanduser(),
        default_model=cfg.batch.model,
        default_size=cfg.batch.size,
        default_quality=cfg.batch.quality,
        format=OutputFormat(cfg.output.format),
        parallel=cfg.batch.parallel,
        stop_on_error=cfg.batch.stop_on_error,
        delay_ms=cfg.batch.delay_ms,
    )


def _build_provider_config(
    cfg: ImggenConfig, api_key: str | None, verbose: bool
) -> ProviderConfig:
    """Resolve the OpenAI key: --api-key flag > config file > OPENAI_API_KEY.

    Raises:
        APIKeyRequiredError: If no key is found anywhere
    """
    openai_cfg = cfg.providers.openai
    resolved_key = api_key or openai_cfg.get_resolved_api_key()
    if not resolved_key:
        raise APIKeyRequiredError(ProviderType.OPENAI.value)
    return ProviderConfig(
        api_key=resolved_key,
        base_url=openai_cfg.base_url,
        timeout=openai_cfg.timeout,
        verbose=verbose,
    )


async def _run_batch(
    items: list[BatchItem],
    options: BatchOptions,
    provider_config: ProviderConfig,
    registry: ModelRegistry,
) -> BatchRun:
    """Process ``items`` and print the summary, cancelling on SIGINT/SIGTERM."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_cancel() -> None:
        if not cancel_event.is_set():
            ui.warning("Cancelling: waiting for in-flight prompts to stop...")
            cancel_event.set()

    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support
            pass

    try:
        async with httpx.AsyncClient(
            timeout=provider_config.timeout, follow_redirects=True
        ) as client:
            factory = ProviderFactory(registry)
            factory.register(OpenAIProvider(provider_config, registry, client=client))
            # Unknown default models are reported per item by the processor
            if options.default_model in registry:
                provider = factory.get_for_model(options.default_model)
            else:
                provider = factory.get(ProviderType.OPENAI)
            saver = ImageSaver(client=client)
            processor = BatchProcessor(
                provider,
                saver,
                registry,
                console=get_console(),
                err_console=get_stderr_console(),
            )
            run = await processor.process(items, options, cancel_event)
            processor.print_summary(run.results)
            return run
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


# =============================================================================
# models
# =============================================================================


@app.command("models")
def models() -> None:
    """List available image models and their capabilities."""
    registry = default_registry()

    names = registry.list_models()

    # Model ids are passed back to -m, so they are never shortened
    table = Table(title="Image Models", show_header=True)
    table.add_column(
        "Model", style="cyan", no_wrap=True, min_width=max(len(n) for n in names)
    )
    table.add_column("Provider", style="green", no_wrap=True)
    table.add_column("Sizes", overflow="fold")
    table.add_column("Qualities", overflow="fold")
    table.add_column("Max", justify="right", no_wrap=True)
    table.add_column("Features", overflow="fold")

    for name in names:
        caps = registry.get(name)
        assert caps is not None
        features = []
        if caps.supports_style:
            features.append("style")
        if caps.supports_transparency:
            features.append("transparency")
        if caps.supports_edit:
            features.append("edit")
        table.add_row(
            caps.name,
            caps.provider.value,
            ", ".join(caps.supported_sizes),
            ", ".join(caps.supported_qualities) or "-",
            str(caps.max_images),
            ", ".join(features) or "-",
        )

    get_console().print(table)
