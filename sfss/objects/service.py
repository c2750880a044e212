from __future__ import annotations

from typing import Optional

from sfss.objects.ingestion import ingest
from sfss.objects.models import IngestResult, RetrievalRequest, RetrievalResult
from sfss.objects.repository import ObjectRepository
from sfss.objects.resolution import resolve


class ObjectStore:
    """
    The two operations the web layer is allowed to call.

    ingest raises IngestRejectedError / StorageError; resolve never raises for
    expected outcomes and returns a RetrievalResult instead.
    """

    def __init__(self, repository: ObjectRepository, max_upload_bytes: int) -> None:
        if max_upload_bytes < 1:
            raise ValueError("max_upload_bytes must be >= 1.")
        self.repository = repository
        self.max_upload_bytes = max_upload_bytes

    def ingest(
        self,
        content: bytes,
        password: Optional[str] = None,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> IngestResult:
        return ingest(
            self.repository,
            content,
            password,
            content_type,
            max_bytes=self.max_upload_bytes,
            filename=filename,
        )

    def resolve(
        self,
        code: str,
        password: Optional[str] = None,
        want_raw: bool = False,
    ) -> RetrievalResult:
        return resolve(self.repository, code, password, want_raw)

    def resolve_request(self, request: RetrievalRequest) -> RetrievalResult:
        return self.resolve(request.code, request.password_attempt, request.want_raw)
