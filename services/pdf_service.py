import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from schemas.marksheets import AnalysisResult
from services.aggregation import calculate_average_score

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def report_filename(record: AnalysisResult) -> str:
    """'Jane  Doe' -> 'Jane_Doe_Analytics.pdf'"""
    name = re.sub(r"\s+", "_", record.student_name)
    return f"{name}_Analytics.pdf"


def format_score(value) -> str:
    """80.0 -> '80', 72.5 -> '72.5'"""
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"


def snapshot_data_uri(snapshot: Optional[str]) -> Optional[str]:
    """Accepts raw base64 PNG or a full data URI"""
    if not snapshot:
        return None
    snapshot = snapshot.strip()
    if snapshot.startswith("data:"):
        return snapshot
    return f"data:image/png;base64,{snapshot}"


class PDFService:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        # template environment
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["score"] = format_score

    def _render_template(self, template_name: str, data: Dict[str, Any]) -> str:
        """Render a template to HTML"""
        template = self.env.get_template(template_name)
        return template.render(**data)

    def _html_to_pdf(self, html_content: str) -> bytes:
        """HTML -> PDF"""
        # weasyprint needs pango at import time, so load it only when exporting
        import weasyprint
        return weasyprint.HTML(string=html_content).write_pdf()

    def render_report_html(
        self,
        record: AnalysisResult,
        title: str,
        snapshot: Optional[str] = None,
    ) -> str:
        average = calculate_average_score(record.subjects)
        bar_scale = max([100.0] + [s.score for s in record.subjects])
        data = {
            "title": title,
            "record": record,
            "average_score": average,
            "bar_scale": bar_scale,
            "snapshot": snapshot_data_uri(snapshot),
            "generated_date": date.today().isoformat(),
        }
        return self._render_template("analytics_report.html", data)

    def generate_report_pdf(
        self,
        record: AnalysisResult,
        title: str,
        snapshot: Optional[str] = None,
    ) -> bytes:
        """Performance analytics report PDF for one record (student or class average)"""
        html = self.render_report_html(record, title, snapshot)
        return self._html_to_pdf(html)
