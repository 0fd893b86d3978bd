"""Data-sync entry point"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config import Settings, SyncConfig, settings
from app.models import SyncRun
from app.models.base import SessionLocal, init_db
from app.services.bug_tracker import BugTrackerClient
from app.services.sync_service import DataSyncService
from app.services.test_management import TestManagementClient

logger = logging.getLogger(__name__)


def configure_logging(s: Settings = settings):
    """Configure logging for a data-sync process"""
    logging.basicConfig(
        level=getattr(logging, s.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if s.trace_logging:
        logging.getLogger("app").setLevel(logging.DEBUG)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def last_successful_sync_date(db: Session, data_sync_system_id: int) -> Optional[datetime]:
    """Server time recorded by the latest successful run, if any"""
    run = (
        db.query(SyncRun)
        .filter(
            SyncRun.data_sync_system_id == data_sync_system_id,
            SyncRun.status == "success",
        )
        .order_by(SyncRun.server_date_time.desc())
        .first()
    )
    return run.server_date_time if run else None


def run_data_sync(
    test_management: TestManagementClient,
    bug_tracker: BugTrackerClient,
    db: Optional[Session] = None,
    config: Optional[SyncConfig] = None,
    last_sync_date: Optional[datetime] = None,
    server_date_time: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Run one data-sync and record it in the run history.

    Without `last_sync_date`, the run picks up from the server time of the
    last successful run (or the very beginning on the first run).
    """
    if config is None:
        config = SyncConfig.from_settings(settings)

    own_session = db is None
    if own_session:
        init_db()
        db = SessionLocal()

    try:
        if last_sync_date is None:
            last_sync_date = last_successful_sync_date(db, config.data_sync_system_id)
        if server_date_time is None:
            server_date_time = _utcnow()

        run = SyncRun(
            data_sync_system_id=config.data_sync_system_id,
            status="running",
            server_date_time=server_date_time,
            last_sync_date=last_sync_date,
            started_at=_utcnow(),
        )
        db.add(run)
        db.commit()

        logger.info(f"Running data sync for system {config.data_sync_system_id}")
        service = DataSyncService(db, test_management, bug_tracker, config, sync_run_id=run.id)
        result = service.execute(last_sync_date, server_date_time)

        run.status = result["status"]
        run.finished_at = _utcnow()
        run.stats = json.dumps(result.get("stats") or {})
        run.error = result.get("error")
        db.commit()

        logger.info(f"Data sync finished: {result}")
        return result
    finally:
        if own_session:
            db.close()
