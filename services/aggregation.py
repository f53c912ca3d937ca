"""
services/aggregation.py

Folds the successful results of one batch into a single "Class Average" record.

- Subjects are grouped by a trimmed, lower-cased key ("Math" and " math " collide,
  "Math" and "Maths" do not); first-seen key order is output order.
- Per-subject fullMarks is the max over contributors, with a missing value read as 100.
- totalObtained / totalPossible are means of the per-student totals, while percentage
  is the mean of the averaged subject scores. The two are not reconciled.
- Rounding is half-up (floor(x + 0.5)), not Python's banker's rounding.
"""

import math
from typing import Dict, List, Sequence

from schemas.marksheets import AnalysisResult, SubjectScore
from services.exceptions import InvalidInput

CLASS_AVERAGE_NAME = "Class Average"
DEFAULT_FULL_MARKS = 100

CLASS_FEEDBACK = (
    "Review subjects with averages below 60 for curriculum adjustments.",
    "Identify top performers for advanced modules.",
    "Organize remedial sessions for students significantly below the class average.",
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_average_score(subjects: Sequence[SubjectScore]) -> int:
    """Rounded mean of the subject scores; 0 when there are none."""
    if not subjects:
        return 0
    total = sum(s.score for s in subjects)
    return round_half_up(total / len(subjects))


def normalize_subject_key(name: str) -> str:
    return name.strip().lower()


def display_subject_name(key: str) -> str:
    # "social studies" -> "Social studies"
    return key[:1].upper() + key[1:].lower()


def calculate_class_average(results: Sequence[AnalysisResult]) -> AnalysisResult:
    if not results:
        raise InvalidInput("No results to average")

    total_obtained_sum = 0.0
    total_possible_sum = 0.0
    # key -> {"total", "count", "full_marks"}, dicts keep first-seen order
    subject_map: Dict[str, dict] = {}

    for res in results:
        total_obtained_sum += res.total_obtained
        total_possible_sum += res.total_possible

        for sub in res.subjects:
            key = normalize_subject_key(sub.subject)
            full_marks = sub.full_marks or DEFAULT_FULL_MARKS
            acc = subject_map.get(key)
            if acc is None:
                subject_map[key] = {"total": sub.score, "count": 1, "full_marks": full_marks}
            else:
                acc["total"] += sub.score
                acc["count"] += 1
                acc["full_marks"] = max(acc["full_marks"], full_marks)

    avg_subjects: List[SubjectScore] = [
        SubjectScore(
            subject=display_subject_name(key),
            score=round_half_up(acc["total"] / acc["count"]),
            full_marks=acc["full_marks"],
        )
        for key, acc in subject_map.items()
    ]

    avg_percentage = calculate_average_score(avg_subjects)
    n = len(results)

    return AnalysisResult(
        student_name=CLASS_AVERAGE_NAME,
        subjects=avg_subjects,
        total_obtained=round_half_up(total_obtained_sum / n),
        total_possible=round_half_up(total_possible_sum / n),
        percentage=avg_percentage,
        grade="",
        summary=(
            f"This represents the aggregated performance of {n} students. "
            f"The class average score is {avg_percentage}."
        ),
        feedback=list(CLASS_FEEDBACK),
    )
