"""
Health check HTTP server for Kubernetes liveness and readiness probes.

Provides endpoints for monitoring the health and readiness of the ledger
database, plus a detailed view with per-table row counts and the current
financial health score when a ledger instance is attached.
"""

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

from flask import Flask, jsonify

from family_ledger import __version__
from family_ledger.kernel.errors import LedgerError
from family_ledger.kernel.ledger_store import TABLES
from family_ledger.kernel.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

# Global state - will be set by initialize_health_server()
_db_path: Path | None = None
_ledger: Any = None  # FamilyLedger instance for detailed checks


def initialize_health_server(db_path: str | Path, ledger: Any = None) -> None:
    """
    Initialize the health server with the database path and ledger.

    Args:
        db_path: Path to SQLite database
        ledger: Optional FamilyLedger for the financial health section
    """
    global _db_path, _ledger
    _db_path = Path(db_path)
    _ledger = ledger
    logger.info("Health server initialized", db_path=str(_db_path))


@app.route("/health/live", methods=["GET"])
def liveness() -> tuple[Any, int]:
    """
    Liveness probe - checks if the process is running.

    Returns:
        JSON response with status and 200 OK
    """
    return jsonify({"status": "alive", "service": "family-ledger"}), 200


@app.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Any, int]:
    """
    Readiness probe - checks if the service is ready to accept requests.

    Checks:
    - Database path is configured and the file exists
    - The ledger_rows table can be queried

    Returns:
        JSON response with status and 200 OK if ready, 503 if not ready
    """
    if _db_path is None:
        logger.error("Readiness check failed: DB path not initialized")
        return jsonify({"status": "not_ready", "reason": "database_path_not_initialized"}), 503

    if not _db_path.exists():
        logger.error("Readiness check failed: DB file does not exist", db_path=str(_db_path))
        return (
            jsonify(
                {
                    "status": "not_ready",
                    "reason": "database_file_not_found",
                    "db_path": str(_db_path),
                }
            ),
            503,
        )

    try:
        conn = sqlite3.connect(str(_db_path), timeout=1.0)
        try:
            row_count = conn.execute("SELECT COUNT(*) FROM ledger_rows").fetchone()[0]
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Readiness check failed: DB error", error=str(e))
        return (
            jsonify(
                {
                    "status": "not_ready",
                    "reason": "database_operational_error",
                    "error": str(e),
                }
            ),
            503,
        )

    logger.debug("Readiness check passed", row_count=row_count)
    return jsonify({"status": "ready", "database": "accessible", "row_count": row_count}), 200


def _database_health(db_path: Path) -> dict[str, Any]:
    conn = sqlite3.connect(str(db_path), timeout=1.0)
    try:
        counts = dict(
            conn.execute("SELECT table_name, COUNT(*) FROM ledger_rows GROUP BY table_name").fetchall()
        )
        page_count = conn.execute("PRAGMA page_count").fetchone()[0]
        page_size = conn.execute("PRAGMA page_size").fetchone()[0]
    finally:
        conn.close()

    return {
        "status": "healthy",
        "path": str(db_path),
        "row_count": sum(counts.values()),
        "tables": {table: counts.get(table, 0) for table in sorted(TABLES)},
        "size_mb": round((page_count * page_size) / (1024 * 1024), 2),
    }


@app.route("/health", methods=["GET"])
def detailed_health() -> tuple[Any, int]:
    """
    Detailed health check - includes the financial health score if a
    ledger is attached.

    Returns:
        JSON response with detailed health information
    """
    health_data: dict[str, Any] = {
        "status": "healthy",
        "service": "family-ledger",
        "version": __version__,
    }

    if _db_path and _db_path.exists():
        try:
            health_data["database"] = _database_health(_db_path)
        except sqlite3.Error as e:
            logger.error("Database health check failed", error=str(e))
            health_data["database"] = {"status": "unhealthy", "error": str(e)}
            health_data["status"] = "degraded"
    else:
        health_data["database"] = {"status": "not_initialized"}
        health_data["status"] = "degraded"

    if _ledger is not None:
        try:
            score = asyncio.run(_ledger.health.calculate_score())
            health_data["financial_health"] = {
                "overall_score": score.overall_score,
                "score_label": score.score_label.value,
                "monthly_overview_id": score.monthly_overview_id,
            }
        except LedgerError as e:
            logger.warning("Could not compute financial health", error=str(e))
            health_data["financial_health"] = {"status": "unavailable", "error": str(e)}

    status_code = 200 if health_data["status"] == "healthy" else 503
    return jsonify(health_data), status_code


def run_health_server(port: int = 8080, debug: bool = False) -> None:
    """
    Run the health check server.

    Args:
        port: Port to listen on (default: 8080)
        debug: Enable Flask debug mode (default: False)
    """
    logger.info("Starting health check server", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)
