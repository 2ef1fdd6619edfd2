from loanscan.logging.logger import Log
from loanscan.processor.processor import Processor


class PipelineRunner:
    """Run one document's pipeline and contain every error it raises."""

    def __init__(self, processor: Processor) -> None:
        self._processor = processor

    async def run(self, document_id: int) -> bool:
        """Process a document. Returns True on success; never raises."""
        try:
            await self._processor.process(document_id)
        except Exception as exc:
            Log.error(f"Error processing document {document_id}: {exc}")
            return False
        Log.info(f"Document {document_id} completed successfully")
        return True
