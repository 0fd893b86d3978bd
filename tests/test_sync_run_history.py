import json
import logging
import unittest
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import patch

from app.config import SyncConfig
from app.models import SyncRun
from tests.fakes import FakeBugTracker, FakeSession, FakeTestManagement, sample_project

logging.disable(logging.CRITICAL)

NOW = datetime(2024, 4, 1, 8, 30)


def _config():
    return SyncConfig(data_sync_system_id=7, internal_login="sync", internal_password="secret")


def _runs(db):
    return [o for o in db.added if isinstance(o, SyncRun)]


class RunDataSyncTests(unittest.TestCase):
    def test_resumes_from_last_successful_run(self):
        from app.main import run_data_sync

        previous = SimpleNamespace(server_date_time=datetime(2024, 3, 1))
        db = FakeSession(first_queue=[previous])
        bt = FakeBugTracker()

        result = run_data_sync(
            FakeTestManagement(**sample_project()), bt, db=db, config=_config(), server_date_time=NOW
        )

        self.assertEqual(result["status"], "success")
        self.assertEqual(bt.since, datetime(2024, 3, 1))

        run = _runs(db)[0]
        self.assertEqual(run.data_sync_system_id, 7)
        self.assertEqual(run.status, "success")
        self.assertEqual(run.last_sync_date, datetime(2024, 3, 1))
        self.assertEqual(run.server_date_time, NOW)
        self.assertIsNotNone(run.finished_at)
        self.assertEqual(json.loads(run.stats)["projects"], 1)
        self.assertIsNone(run.error)

    def test_first_run_starts_from_the_beginning(self):
        from app.main import run_data_sync

        db = FakeSession()
        bt = FakeBugTracker()

        run_data_sync(FakeTestManagement(**sample_project()), bt, db=db, config=_config())

        self.assertEqual(bt.since, datetime(1990, 1, 1))
        run = _runs(db)[0]
        self.assertIsNone(run.last_sync_date)
        self.assertIsNotNone(run.server_date_time)

    def test_explicit_last_sync_date_skips_history_lookup(self):
        from app.main import run_data_sync

        previous = SimpleNamespace(server_date_time=datetime(2024, 3, 1))
        db = FakeSession(first_queue=[previous])
        bt = FakeBugTracker()

        run_data_sync(
            FakeTestManagement(**sample_project()),
            bt,
            db=db,
            config=_config(),
            last_sync_date=datetime(2024, 2, 1),
        )

        self.assertEqual(bt.since, datetime(2024, 2, 1))
        self.assertEqual(db._first_queue, [previous])

    def test_failed_run_is_recorded(self):
        from app.main import run_data_sync

        db = FakeSession()
        tm = FakeTestManagement(**sample_project(authenticated=False))

        result = run_data_sync(tm, FakeBugTracker(), db=db, config=_config())

        self.assertEqual(result["status"], "failed")
        run = _runs(db)[0]
        self.assertEqual(run.status, "failed")
        self.assertEqual(run.error, "Authentication failed")

    def test_opens_and_closes_its_own_session(self):
        import app.main as main

        db = FakeSession()
        with patch.object(main, "SessionLocal", return_value=db), patch.object(
            main, "init_db"
        ) as init_db:
            main.run_data_sync(FakeTestManagement(), FakeBugTracker(), config=_config())

        init_db.assert_called_once()
        self.assertTrue(db.closed)
        self.assertEqual(len(_runs(db)), 1)

    def test_caller_session_is_left_open(self):
        from app.main import run_data_sync

        db = FakeSession()
        run_data_sync(FakeTestManagement(), FakeBugTracker(), db=db, config=_config())

        self.assertFalse(db.closed)


if __name__ == "__main__":
    unittest.main()
