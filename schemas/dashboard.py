"""
schemas/dashboard.py

- Chart series and class statistics served to the dashboard client
- The client draws the charts; these models carry the numbers behind them
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from schemas.marksheets import AnalysisResult, CamelModel, Selection


class BarPoint(CamelModel):
    subject: str
    score: float
    is_average: bool = False


class PieSlice(CamelModel):
    name: str                                        # "Obtained" | "Lost"
    value: float


class RecordDashboard(CamelModel):
    average_score: int
    bar_chart: List[BarPoint]
    pie_chart: List[PieSlice]
    total_obtained: float
    summary: str
    feedback: List[str]


class SelectedDashboard(CamelModel):
    selection: Selection
    title: str
    record: AnalysisResult
    dashboard: RecordDashboard


class StudentCard(CamelModel):
    index: int
    name: str
    average_score: int
    rank: int


class ClassOverview(CamelModel):
    student_count: int
    class_average_score: int
    highest: Optional[int] = None
    lowest: Optional[int] = None
    distribution: Dict[str, int] = Field(default_factory=dict)
    need_guidance: List[StudentCard] = Field(default_factory=list)
    students: List[StudentCard] = Field(default_factory=list)
