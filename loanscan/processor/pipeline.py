from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from loanscan.database.models import Document
from loanscan.extraction.models import ExtractedFields
from loanscan.imaging.models import PageImage
from loanscan.processor.field_merger import MergeResult


@dataclass(slots=True)
class PipelineContext:
    document_id: int
    claimed: bool = False
    document: Document | None = None
    started_at: float = 0.0
    raw_bytes: bytes = b""
    pages: list[PageImage] = field(default_factory=list)
    page_results: list[ExtractedFields] = field(default_factory=list)
    merge_result: MergeResult | None = None
    error_message: str = ""


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
