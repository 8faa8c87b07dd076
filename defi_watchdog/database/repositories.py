"""Repository pattern for database access."""
from typing import Any, Dict, List, Optional
import json
import logging

from defi_watchdog.data_models import AnalysisReport
from defi_watchdog.database import Database, get_db
from defi_watchdog.services.analysis_service import ReportSink

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    "id, contract_name, overall_score, security_score, risk_level, "
    "deployment_recommendation, successful_models, failed_models, created_at"
)


class ReportRepository(ReportSink):
    """Repository for analysis report storage."""

    def __init__(self, db: Optional[Database] = None):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db or get_db()

    def save(self, report: AnalysisReport) -> str:
        """
        Persist a finished report.

        Args:
            report: The report to store

        Returns:
            str: Report ID
        """
        summary = report.executive_summary
        with self.db.get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO reports (id, contract_name, overall_score, security_score,
                                                risk_level, deployment_recommendation,
                                                successful_models, failed_models,
                                                report_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                report.report_id,
                report.contract_name,
                report.scores.overall,
                report.scores.security,
                summary.risk_level,
                summary.deployment_recommendation.value,
                report.metadata.get("successfulModels", 0),
                report.metadata.get("failedModels", 0),
                json.dumps(report.to_dict()),
                report.created_at.isoformat(),
            ))
        logger.info(f"Saved report {report.report_id} for {report.contract_name}")
        return report.report_id

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        """Get the stored report JSON by ID."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT report_json FROM reports WHERE id = ?", (report_id,)
            ).fetchone()
            if row:
                return json.loads(row["report_json"])
            return None

    def list_recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """List report summaries, newest first."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {SUMMARY_COLUMNS} FROM reports ORDER BY created_at DESC LIMIT ?",
                (max(1, int(limit)),),
            )
            return [dict(row) for row in cursor.fetchall()]

    def delete(self, report_id: str) -> bool:
        """Delete a report. Returns True if a row was removed."""
        with self.db.get_connection() as conn:
            cursor = conn.execute("DELETE FROM reports WHERE id = ?", (report_id,))
            return cursor.rowcount > 0
