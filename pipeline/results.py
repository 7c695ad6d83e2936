"""ScanResult: the outbound shape of one scan."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from documents.records import IdentityRecord
from forensics.base import AuthenticityCheck

DOCUMENT_READABLE = "document_readable"
INTERNAL_ERROR_MESSAGE = "Internal error while processing the document"


@dataclass
class ScanResult:
    success: bool
    authenticity_score: int
    checks: List[AuthenticityCheck] = field(default_factory=list)
    data: Optional[IdentityRecord] = None
    error: Optional[str] = None
    processing_time_ms: int = 0             # reported separately, not part of the body

    def to_dict(self) -> Dict[str, Any]:
        """Response body: ``{success, data?, authenticityScore, checks, error?}``."""
        out: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = self.data.to_dict()
        out["authenticityScore"] = self.authenticity_score
        out["checks"] = [c.to_dict() for c in self.checks]
        if self.error is not None:
            out["error"] = self.error
        return out

    @classmethod
    def internal_error(
        cls, checks: Optional[List[AuthenticityCheck]] = None, processing_time_ms: int = 0,
    ) -> "ScanResult":
        """Generic failure for anything unexpected at the orchestration boundary."""
        return cls(
            success=False,
            authenticity_score=0,
            checks=list(checks or []),
            error=INTERNAL_ERROR_MESSAGE,
            processing_time_ms=processing_time_ms,
        )
