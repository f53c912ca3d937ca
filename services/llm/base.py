from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from schemas.marksheets import AnalysisResult


@dataclass(frozen=True)
class ImagePayload:
    """One uploaded marksheet image, passed through untouched"""
    data: bytes
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None


class MarksheetExtractor(ABC):
    @abstractmethod
    async def extract(self, image: ImagePayload) -> AnalysisResult:
        """Return the structured record for one image or raise ExtractionFailure."""
