"""Thread-safe in-memory store of analysis reports keyed by report id."""

import logging
import threading
from typing import Dict, List

from .models import Report

logger = logging.getLogger(__name__)


class ReportNotFoundError(KeyError):
    def __init__(self, report_id: str):
        super().__init__(report_id)
        self.report_id = report_id

    def __str__(self) -> str:
        return f"Report not found: {self.report_id}"


class ReportStore:
    """Holds reports for later retrieval.

    Every operation takes the same lock, so inserts, lookups and deletes are
    atomic with respect to each other.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: Dict[str, Report] = {}

    def save(self, report: Report) -> Report:
        with self._lock:
            self._reports[report.id] = report
        logger.debug("Stored report %s", report.id)
        return report

    def get(self, report_id: str) -> Report:
        with self._lock:
            report = self._reports.get(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    def list(self) -> List[Report]:
        with self._lock:
            return list(self._reports.values())

    def delete(self, report_id: str) -> None:
        with self._lock:
            if self._reports.pop(report_id, None) is None:
                raise ReportNotFoundError(report_id)
        logger.debug("Deleted report %s", report_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)
