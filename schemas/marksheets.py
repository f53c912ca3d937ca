"""
schemas/marksheets.py

- Data model for marksheet extraction results, class averages and batches
- Pydantic v2, snake_case attributes with camelCase JSON aliases
  (studentName, fullMarks, totalObtained ...) matching the extraction output shape
- Records are frozen: created once per extraction or aggregation, never modified afterwards
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for the wire models: camelCase out, both spellings in"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        allow_inf_nan=False,                         # Infinity / NaN from the model fail validation
    )


def _compact_number(v):
    """70.0 -> 70, 72.5 -> 72.5"""
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return v


# =========================================================
# 1) Extraction records
# =========================================================

class SubjectScore(CamelModel):
    subject: str = ""                                # label as extracted, not normalized
    score: float = 0                                 # marks obtained
    full_marks: Optional[float] = None               # marks possible (None = unknown, read as 100)

    @field_validator("subject", mode="before")
    @classmethod
    def _none_subject(cls, v):
        return "" if v is None else v

    @field_validator("score", mode="before")
    @classmethod
    def _none_score(cls, v):
        return 0 if v is None else v

    @field_serializer("score", "full_marks")
    def _serialize_marks(self, v):
        return _compact_number(v)


class AnalysisResult(CamelModel):
    """
    One student's record, or the synthetic class average.
    The model may return nulls for an unreadable marksheet; they degrade to empty values.
    """
    student_name: str = ""
    subjects: List[SubjectScore] = Field(default_factory=list)
    total_obtained: float = 0
    total_possible: float = 0
    percentage: float = 0
    grade: str = ""                                  # kept for shape compatibility, unused
    summary: str = ""
    feedback: List[str] = Field(default_factory=list)

    @field_validator("student_name", "grade", "summary", mode="before")
    @classmethod
    def _none_to_empty_str(cls, v):
        return "" if v is None else v

    @field_validator("subjects", "feedback", mode="before")
    @classmethod
    def _none_to_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("total_obtained", "total_possible", "percentage", mode="before")
    @classmethod
    def _none_to_zero(cls, v):
        return 0 if v is None else v

    @field_serializer("total_obtained", "total_possible", "percentage")
    def _serialize_totals(self, v):
        return _compact_number(v)


# =========================================================
# 2) Selection (which record the dashboard / export shows)
# =========================================================

class AggregateSelection(CamelModel):
    kind: Literal["aggregate"] = "aggregate"


class IndividualSelection(CamelModel):
    kind: Literal["individual"] = "individual"
    index: int = Field(..., ge=0, description="Position of the student in the batch results")


Selection = Annotated[Union[AggregateSelection, IndividualSelection], Field(discriminator="kind")]


# =========================================================
# 3) Batches
# =========================================================

class ExtractionFailureInfo(CamelModel):
    index: int                                       # position of the image in the submission
    filename: Optional[str] = None
    reason: str


class BatchOutcome(CamelModel):
    """Partition of one submission into successes (input order) and failures"""
    results: List[AnalysisResult] = Field(default_factory=list)
    failures: List[ExtractionFailureInfo] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.results)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def message(self) -> Optional[str]:
        if not self.failures:
            return None
        return f"Processed {self.success_count} documents. {self.failure_count} failed."


class BatchAnalysis(CamelModel):
    """A settled batch: individual results plus the class average"""
    batch_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    results: List[AnalysisResult]
    class_average: AnalysisResult
    failure_count: int = Field(0, ge=0)
    failures: List[ExtractionFailureInfo] = Field(default_factory=list)
    message: Optional[str] = None
    selection: Selection = Field(default_factory=AggregateSelection)


class BatchSummary(CamelModel):
    batch_id: str
    created_at: datetime
    student_count: int
    failure_count: int


# =========================================================
# 4) Report export request
# =========================================================

class ReportRequest(CamelModel):
    selection: Selection = Field(default_factory=AggregateSelection)
    snapshot: Optional[str] = Field(
        default=None,
        description="Base64 PNG of the rendered charts (data URI prefix allowed)",
    )
