import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from learnlens.client.api import UploadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    error: Optional[UploadError] = None
    record_count: Optional[int] = None

    @property
    def ok(self):
        return self.error is None


class UploadSubmitter:
    """
    Sends one validated file to the ingestion endpoint.

    Exactly one request per submit() call; there is no retry and no
    de-duplication, callers must not submit again while a call is pending.
    """

    def __init__(self, api):
        self.api = api

    async def submit(self, candidate) -> UploadResult:
        logger.info("Uploading %s (%d bytes)", candidate.name, candidate.size)
        try:
            body = await asyncio.to_thread(self.api.upload_dataset, candidate)
        except UploadError as e:
            logger.error("Upload error (%s): %s", e.kind.value, e.message)
            return UploadResult(error=e)

        count = body.get("recordCount")
        return UploadResult(record_count=count if isinstance(count, int) else None)
