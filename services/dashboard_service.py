from typing import Dict, List, Optional

from config.settings import settings
from schemas.dashboard import (
    BarPoint,
    ClassOverview,
    PieSlice,
    RecordDashboard,
    SelectedDashboard,
    StudentCard,
)
from schemas.marksheets import AggregateSelection, AnalysisResult, BatchAnalysis, IndividualSelection
from services.aggregation import calculate_average_score
from services.exceptions import SelectionOutOfRange

AGGREGATE_TITLE = "Class Average Overview"

DISTRIBUTION_BUCKETS = ("0-59", "60-69", "70-79", "80-89", "90-100")


# ==========================================================
# [Selection]
# ==========================================================
def resolve_selection(batch: BatchAnalysis, selection) -> AnalysisResult:
    if isinstance(selection, AggregateSelection):
        return batch.class_average
    if isinstance(selection, IndividualSelection):
        if selection.index >= len(batch.results):
            raise SelectionOutOfRange(selection.index, len(batch.results))
        return batch.results[selection.index]
    raise TypeError(f"Unknown selection: {selection!r}")


def selection_title(batch: BatchAnalysis, selection) -> str:
    if isinstance(selection, AggregateSelection):
        return AGGREGATE_TITLE
    return resolve_selection(batch, selection).student_name


# ==========================================================
# [Single record] chart series
# ==========================================================
def build_dashboard(record: AnalysisResult) -> RecordDashboard:
    average = calculate_average_score(record.subjects)

    bar_chart = [BarPoint(subject=s.subject, score=s.score) for s in record.subjects]
    bar_chart.append(BarPoint(subject="Average", score=average, is_average=True))

    obtained = record.total_obtained
    # possible never drops below obtained, so "Lost" stays non-negative
    possible = max(record.total_possible, obtained) or 100
    pie_chart = [
        PieSlice(name="Obtained", value=obtained),
        PieSlice(name="Lost", value=possible - obtained),
    ]

    return RecordDashboard(
        average_score=average,
        bar_chart=bar_chart,
        pie_chart=pie_chart,
        total_obtained=obtained,
        summary=record.summary,
        feedback=list(record.feedback),
    )


def build_selected_dashboard(batch: BatchAnalysis, selection) -> SelectedDashboard:
    record = resolve_selection(batch, selection)
    return SelectedDashboard(
        selection=selection,
        title=selection_title(batch, selection),
        record=record,
        dashboard=build_dashboard(record),
    )


# ==========================================================
# [Class] overview statistics
# ==========================================================
def _bucket(avg: int) -> str:
    if avg < 60:
        return "0-59"
    elif avg < 70:
        return "60-69"
    elif avg < 80:
        return "70-79"
    elif avg < 90:
        return "80-89"
    return "90-100"


def build_class_overview(batch: BatchAnalysis, guidance_threshold: Optional[int] = None) -> ClassOverview:
    threshold = settings.GUIDANCE_THRESHOLD if guidance_threshold is None else guidance_threshold

    averages = [calculate_average_score(r.subjects) for r in batch.results]

    # rank by average, ties keep input order (sorted is stable)
    order = sorted(range(len(averages)), key=lambda i: averages[i], reverse=True)
    ranks: Dict[int, int] = {idx: pos for pos, idx in enumerate(order, start=1)}

    students: List[StudentCard] = [
        StudentCard(index=i, name=r.student_name, average_score=averages[i], rank=ranks[i])
        for i, r in enumerate(batch.results)
    ]

    distribution = {bucket: 0 for bucket in DISTRIBUTION_BUCKETS}
    for avg in averages:
        distribution[_bucket(avg)] += 1

    return ClassOverview(
        student_count=len(students),
        class_average_score=calculate_average_score(batch.class_average.subjects),
        highest=max(averages) if averages else None,
        lowest=min(averages) if averages else None,
        distribution=distribution,
        need_guidance=[s for s in students if s.average_score < threshold],
        students=students,
    )
