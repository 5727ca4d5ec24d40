"""
Processing Statistics
=====================

In-process counters behind GET /api/v1/transcripts/stats. Counters live
for the lifetime of the API process only; there is no persistence.
"""

import logging

from models import ProcessingResult


logger = logging.getLogger(__name__)


class ProcessingStats:
    """Running totals of processed, flagged and failed requests."""

    def __init__(self):
        self.reset()

    def record_success(self, result: ProcessingResult) -> None:
        self.total_processed += 1
        self.total_processing_time_ms += result.processing_time_ms
        if result.safety_flags.high_risk:
            self.safety_flags_triggered += 1

    def record_failure(self) -> None:
        self.failed += 1

    @property
    def avg_processing_time_ms(self) -> int:
        if self.total_processed == 0:
            return 0
        return round(self.total_processing_time_ms / self.total_processed)

    def snapshot(self) -> dict:
        return {
            "total_processed": self.total_processed,
            "avg_processing_time_ms": self.avg_processing_time_ms,
            "safety_flags_triggered": self.safety_flags_triggered,
            "failed": self.failed,
        }

    def reset(self) -> None:
        logger.debug("Resetting processing statistics")
        self.total_processed = 0
        self.total_processing_time_ms = 0
        self.safety_flags_triggered = 0
        self.failed = 0
