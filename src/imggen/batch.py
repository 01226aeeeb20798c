"""Batch image generation with bounded concurrency.

A run takes an ordered list of ``BatchItem`` and drives each one through
model resolution, validation, generation, persistence and cost accounting.
Items run concurrently up to ``BatchOptions.parallel``; results always come
back in input order because each dispatched item owns a pre-assigned slot.

Failures of a single item are recorded on its ``BatchResult`` and do not stop
the run, unless ``stop_on_error`` is set. Stopping (abort or cancellation) is
reported as ``BatchRun.error``; results of items that were dispatched before
the stop are still returned.
"""

from __future__ import annotations

import asyncio
import re
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger
from rich.console import Console

from imggen.constants import (
    DEFAULT_DELAY_MS,
    DEFAULT_MODEL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PARALLEL,
    FALLBACK_SLUG,
    MAX_SLUG_LENGTH,
    PROGRESS_PROMPT_WIDTH,
    SUMMARY_PROMPT_WIDTH,
)
from imggen.errors import (
    BatchRunError,
    GenerationError,
    ImggenError,
    ModelUnknownError,
    PersistError,
    RunAbortedError,
    RunCancelledError,
    ValidationFailedError,
)
from imggen.models import ImageRequest, ImageResponse, ModelRegistry, OutputFormat
from imggen.security import is_reserved_name
from imggen.utils.text import format_error_message

if TYPE_CHECKING:
    from imggen.image import ImageSaver
    from imggen.providers import Provider


# =============================================================================
# Data model
# =============================================================================


@dataclass(frozen=True)
class BatchItem:
    """One prompt to generate, with optional per-item overrides.

    Empty override fields mean "use the run default".
    """

    index: int
    prompt: str
    model: str = ""
    size: str = ""
    quality: str = ""
    style: str = ""


@dataclass
class BatchOptions:
    """Run-wide settings for a batch.

    Attributes:
        output_dir: Directory images are written to
        default_model: Model for items without a model override
        default_size: Size for items without a size override ("" = model default)
        default_quality: Quality for items without a quality override
        format: Output image encoding
        parallel: Maximum items in flight at once (<= 1 means sequential)
        stop_on_error: Stop dispatching after the first item failure
        delay_ms: Pause between successive dispatches, in milliseconds
    """

    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    default_model: str = DEFAULT_MODEL
    default_size: str = ""
    default_quality: str = ""
    format: OutputFormat = OutputFormat.PNG
    parallel: int = DEFAULT_PARALLEL
    stop_on_error: bool = False
    delay_ms: int = DEFAULT_DELAY_MS

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        self.format = OutputFormat(self.format)
        if self.delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {self.delay_ms}")


@dataclass
class BatchResult:
    """Outcome of one item.

    On success ``path`` is the first saved image and ``error`` is None.
    On failure ``error`` holds the cause and ``path`` is empty.
    """

    index: int
    prompt: str
    path: str = ""
    paths: list[str] = field(default_factory=list)
    cost: float = 0.0
    error: ImggenError | None = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchRun:
    """Results of a run, in input order, plus the run-level error if any."""

    results: list[BatchResult] = field(default_factory=list)
    error: BatchRunError | None = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_cost(self) -> float:
        return sum(r.cost for r in self.results if r.success)


# =============================================================================
# Filename policy
# =============================================================================

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s]")


def sanitize_prompt(prompt: str) -> str:
    """Turn a prompt into a filesystem-safe slug.

    Everything but ASCII letters, digits and whitespace is deleted, whitespace
    runs become single hyphens, and the result is lower-case and at most 50
    characters. An empty result becomes "image"; Windows device names get
    "-img" appended.
    """
    slug = _NON_SLUG_CHARS.sub("", prompt.lower())
    slug = "-".join(slug.split())
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    if not slug:
        return FALLBACK_SLUG
    if is_reserved_name(slug):
        slug = f"{slug}-img"
    return slug


def generate_filename(index: int, prompt: str, fmt: OutputFormat | str) -> str:
    """Build the output filename for an item, e.g. ``001-sunset.png``."""
    extension = OutputFormat(fmt).extension
    return f"{index:03d}-{sanitize_prompt(prompt)}.{extension}"


def truncate(text: str, max_len: int) -> str:
    """Cut ``text`` to ``max_len`` characters, ending in "..." when trimmed."""
    if len(text) <= max_len:
        return text
    if max_len < 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."


# =============================================================================
# Summary
# =============================================================================


def format_summary(results: list[BatchResult]) -> str:
    """Render the end-of-run summary for the given results."""
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    total_cost = sum(r.cost for r in successful)

    lines = [
        "",
        "Summary:",
        f"  Successful: {len(successful)}/{len(results)} images",
    ]
    if failed:
        lines.append(f"  Failed: {len(failed)} (see errors below)")
    lines.append(f"  Total cost: ${total_cost:.4f}")

    if failed:
        lines.append("")
        lines.append("Errors:")
        for r in failed:
            prompt = truncate(r.prompt, SUMMARY_PROMPT_WIDTH)
            lines.append(f'  [{r.index}] "{prompt}": {r.error}')

    return "\n".join(lines)


# =============================================================================
# Processor
# =============================================================================


class _AbortFlag:
    """First-failure latch for stop-on-error."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.item_index: int | None = None
        self.cause: ImggenError | None = None

    @property
    def triggered(self) -> bool:
        return self.cause is not None

    def trigger(self, item_index: int, cause: ImggenError) -> bool:
        """Record the failure if none is recorded yet. Return True if recorded."""
        with self._lock:
            if self.cause is not None:
                return False
            self.item_index = item_index
            self.cause = cause
            return True


class BatchProcessor:
    """Run batch items through generate and save with bounded concurrency."""

    def __init__(
        self,
        provider: Provider,
        saver: ImageSaver,
        registry: ModelRegistry,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        self.provider = provider
        self.saver = saver
        self.registry = registry
        self.console = console or Console(highlight=False)
        self.err_console = err_console or self.console
        # Shared by every in-flight item
        self._output_lock = threading.Lock()

    def _print(self, message: str, *, error: bool = False) -> None:
        target = self.err_console if error else self.console
        with self._output_lock:
            target.print(message, markup=False, highlight=False, soft_wrap=True)

    async def process(
        self,
        items: list[BatchItem],
        options: BatchOptions,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchRun:
        """Process ``items`` and return their results in input order.

        Args:
            items: Items to process, in the order results should come back
            options: Run-wide settings
            cancel_event: Set to stop dispatching and cut in-flight
                generations short

        Returns:
            BatchRun whose ``results`` cover every dispatched item. Its
            ``error`` is RunCancelledError if ``cancel_event`` was set,
            RunAbortedError if stop-on-error tripped, otherwise None.
        """
        cancel = cancel_event if cancel_event is not None else asyncio.Event()
        abort = _AbortFlag()
        total = len(items)
        slots: list[BatchResult | None] = [None] * total
        semaphore = asyncio.Semaphore(max(1, options.parallel))
        tasks: list[asyncio.Task[None]] = []

        def should_stop() -> bool:
            return cancel.is_set() or abort.triggered

        async def run_item(position: int, item: BatchItem) -> None:
            try:
                result = await self._process_item(
                    item, options, position + 1, total, cancel
                )
                slots[position] = result
                if result.error is not None and options.stop_on_error:
                    if abort.trigger(item.index, result.error):
                        logger.warning(
                            f"Stopping batch after item {item.index} failed"
                        )
            finally:
                semaphore.release()

        logger.info(
            f"Batch started: {total} items, parallel={options.parallel}, "
            f"model={options.default_model}"
        )

        try:
            for position, item in enumerate(items):
                if should_stop():
                    break

                await semaphore.acquire()

                if position > 0 and options.delay_ms > 0 and not should_stop():
                    await _sleep_unless_cancelled(options.delay_ms / 1000, cancel)

                # Re-check: an in-flight item may have failed while we waited
                if should_stop():
                    semaphore.release()
                    break

                tasks.append(
                    asyncio.create_task(
                        run_item(position, item), name=f"batch-item-{item.index}"
                    )
                )

            if tasks:
                await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results = [r for r in slots if r is not None]
        run = BatchRun(results=results)

        if cancel.is_set():
            run.error = RunCancelledError(
                f"batch cancelled after {len(results)} of {total} items"
            )
        elif abort.triggered:
            assert abort.item_index is not None and abort.cause is not None
            run.error = RunAbortedError(abort.item_index, abort.cause)

        logger.info(
            f"Batch finished: {run.successful} succeeded, {run.failed} failed, "
            f"{total - run.total} not started"
        )
        return run

    async def _process_item(
        self,
        item: BatchItem,
        options: BatchOptions,
        current: int,
        total: int,
        cancel: asyncio.Event,
    ) -> BatchResult:
        """Run one item through the pipeline. Never raises ImggenError."""
        start = time.perf_counter()
        result = BatchResult(index=item.index, prompt=item.prompt)

        prompt_display = truncate(item.prompt, PROGRESS_PROMPT_WIDTH)
        self._print(f'[{current}/{total}] Generating: "{prompt_display}"...')

        try:
            request = self._build_request(item, options)
            response = await self._generate(request, cancel)
            paths = await self._save(item, options, response)
        except ImggenError as e:
            result.error = e
            result.duration = time.perf_counter() - start
            logger.debug(f"Item {item.index} failed: {e}")
            self._print(f"       Error: {e}", error=True)
            return result

        result.paths = [str(p) for p in paths]
        result.path = result.paths[0]
        result.duration = time.perf_counter() - start

        if response.cost is not None:
            result.cost = response.cost.total
            self._print(f"       Saved: {result.path} (${result.cost:.4f})")
        else:
            self._print(f"       Saved: {result.path}")

        return result

    def _build_request(self, item: BatchItem, options: BatchOptions) -> ImageRequest:
        """Resolve the model and merge overrides, run defaults and model defaults.

        Raises:
            ModelUnknownError: If the effective model is not registered
            ValidationFailedError: If the merged request breaks model constraints
        """
        model = item.model or options.default_model

        request = ImageRequest(
            prompt=item.prompt,
            model=model,
            size=item.size or options.default_size,
            quality=item.quality or options.default_quality,
            style=item.style,
            format=options.format,
        )

        caps = self.registry.get(model)
        if caps is None:
            raise ModelUnknownError(model)
        caps.apply_defaults(request)

        try:
            caps.validate(request)
        except ValidationFailedError as e:
            raise ValidationFailedError(f"validation failed: {e}") from e

        return request

    async def _generate(
        self, request: ImageRequest, cancel: asyncio.Event
    ) -> ImageResponse:
        """Call the provider, giving up early if ``cancel`` is set.

        Raises:
            GenerationError: If the provider fails, returns no images,
                or the run is cancelled mid-call
        """
        if cancel.is_set():
            raise GenerationError("generation failed: batch cancelled")

        generate_task = asyncio.ensure_future(self.provider.generate(request))
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait(
                {generate_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (generate_task, cancel_task):
                if not task.done():
                    task.cancel()

        if not generate_task.done() or generate_task.cancelled():
            raise GenerationError("generation failed: batch cancelled")

        try:
            response = generate_task.result()
        except Exception as e:
            raise GenerationError(
                f"generation failed: {format_error_message(e)}",
                status_code=getattr(e, "status_code", None),
            ) from e

        if not response.images:
            raise GenerationError("generation failed: provider returned no images")
        return response

    async def _save(
        self, item: BatchItem, options: BatchOptions, response: ImageResponse
    ) -> list[Path]:
        filename = generate_filename(item.index, item.prompt, options.format)
        try:
            return await self.saver.save_all(response, options.output_dir / filename)
        except Exception as e:
            raise PersistError(f"save failed: {format_error_message(e)}") from e

    def print_summary(self, results: list[BatchResult]) -> None:
        """Print ``format_summary(results)`` to the console."""
        with self._output_lock:
            self.console.print(
                format_summary(results), markup=False, highlight=False, soft_wrap=True
            )


async def _sleep_unless_cancelled(seconds: float, cancel: asyncio.Event) -> None:
    """Sleep for ``seconds``, returning early if ``cancel`` is set."""
    try:
        await asyncio.wait_for(cancel.wait(), timeout=seconds)
    except TimeoutError:
        pass
