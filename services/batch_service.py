import asyncio
import logging
import uuid
from typing import List, Sequence

from schemas.marksheets import (
    AggregateSelection,
    AnalysisResult,
    BatchAnalysis,
    BatchOutcome,
    ExtractionFailureInfo,
)
from services.aggregation import calculate_class_average
from services.exceptions import BatchFailure, ExtractionFailure, InvalidInput
from services.llm.base import ImagePayload, MarksheetExtractor

logger = logging.getLogger(__name__)


def _failure_reason(exc: BaseException) -> str:
    if isinstance(exc, ExtractionFailure):
        cause = exc.cause
        return str(cause) if not isinstance(cause, BaseException) else f"{type(cause).__name__}: {cause}"
    return f"{type(exc).__name__}: {exc}"


async def analyze_batch(images: Sequence[ImagePayload], extractor: MarksheetExtractor) -> BatchOutcome:
    """
    Extract every image concurrently and wait for all of them to settle.

    One failed image never cancels or hides the others. Successes keep input order.
    Raises BatchFailure when nothing succeeded.
    """
    if not images:
        raise InvalidInput("A batch needs at least one image")

    outcomes = await asyncio.gather(
        *(extractor.extract(image) for image in images),
        return_exceptions=True,
    )

    results: List[AnalysisResult] = []
    failures: List[ExtractionFailureInfo] = []

    for idx, (image, outcome) in enumerate(zip(images, outcomes)):
        if isinstance(outcome, BaseException):
            reason = _failure_reason(outcome)
            logger.warning(f"Analysis failed for one document: index={idx} file={image.filename} reason={reason}")
            failures.append(ExtractionFailureInfo(index=idx, filename=image.filename, reason=reason))
        else:
            results.append(outcome)

    logger.info(f"Batch settled: {len(results)} succeeded, {len(failures)} failed")

    if not results:
        raise BatchFailure(attempted=len(images), failures=failures)

    return BatchOutcome(results=results, failures=failures)


async def run_batch_analysis(images: Sequence[ImagePayload], extractor: MarksheetExtractor) -> BatchAnalysis:
    """Settle the batch, then build the class average once"""
    outcome = await analyze_batch(images, extractor)
    class_average = calculate_class_average(outcome.results)

    return BatchAnalysis(
        batch_id=uuid.uuid4().hex,
        results=outcome.results,
        class_average=class_average,
        failure_count=outcome.failure_count,
        failures=outcome.failures,
        message=outcome.message,
        selection=AggregateSelection(),
    )
