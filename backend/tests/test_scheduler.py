"""Tests for background housekeeping scheduling."""
from unittest.mock import MagicMock, patch

from farecast import scheduler


class TestScheduler:
    def test_housekeeping_job_registered(self):
        try:
            sched = scheduler.get_scheduler()
            job = sched.get_job("housekeeping")
            assert job is not None
            assert job.max_instances == 1
        finally:
            scheduler.stop_scheduler()
        assert scheduler.scheduler is None

    async def test_job_runs_housekeeping(self):
        run = MagicMock(return_value={"snapshots_deleted": 0, "buckets_deleted": 0, "failed": []})
        with patch("farecast.scheduler.run_housekeeping", run):
            await scheduler.housekeeping_job()
        run.assert_called_once()

    async def test_job_failure_is_logged_not_raised(self):
        run = MagicMock(side_effect=RuntimeError("database locked"))
        with patch("farecast.scheduler.run_housekeeping", run):
            await scheduler.housekeeping_job()
        run.assert_called_once()
