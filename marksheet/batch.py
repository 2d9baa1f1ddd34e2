"""
    07 batch

Sequential batch loop over the selected images.

Each image finishes its full round trip before the next one starts. A failed
image is logged and counted, never retried, and never aborts the batch.
"""

import time
import logging
from typing import Callable, List, NamedTuple, Optional, Sequence

from marksheet.models import BatchOutcome, ExtractionResult, ImageItem, Progress, Stage

logger = logging.getLogger(__name__)

VALIDATING_PAUSE = 0.3
COMPLETE_PAUSE = 0.2


class EmptyBatchError(ValueError):
    """Raised when a batch is started without any images."""


class Notice(NamedTuple):
    level: str  # "success" | "warning" | "error"
    title: str
    body: str


def run_batch(
    items: Sequence[ImageItem],
    extract: Callable[[ImageItem], ExtractionResult],
    on_progress: Optional[Callable[[Progress], None]] = None,
    on_stage: Optional[Callable[[Stage], None]] = None,
    pause: Callable[[float], None] = time.sleep,
) -> BatchOutcome:
    """Run `extract` over `items` in order and collect the successes."""
    if not items:
        raise EmptyBatchError("No images selected")

    total = len(items)
    results: List[ExtractionResult] = []
    failed = 0

    for index, item in enumerate(items, start=1):
        if on_progress:
            on_progress(Progress(index, total))
        if on_stage:
            on_stage(Stage.SCANNING if index == 1 else Stage.EXTRACTING)

        try:
            results.append(extract(item))
        except Exception as e:
            failed += 1
            logger.error("Error processing %s: %s", item.name, e)

    if on_stage:
        on_stage(Stage.VALIDATING)
    pause(VALIDATING_PAUSE)
    if on_stage:
        on_stage(Stage.COMPLETE)
    pause(COMPLETE_PAUSE)

    outcome = BatchOutcome(results=results, failed=failed, attempted=total)
    logger.info(
        "Batch complete: %d of %d processed, %d valid, %d failed",
        len(results), total, outcome.valid_count, failed,
    )
    return outcome


def summarize(outcome: BatchOutcome) -> Notice:
    if not outcome.results:
        return Notice("error", "Extraction Failed", "Failed to process any images. Please try again.")

    body = f"{outcome.valid_count} passed validation"
    if outcome.failed > 0:
        body += f", {outcome.failed} failed to process"
    level = "success" if outcome.valid_count == len(outcome.results) else "warning"
    return Notice(level, f"Processed {len(outcome.results)} of {outcome.attempted} images", body)
