"""Unit tests for the bounded-concurrency job pool."""

import asyncio
import logging

import pytest

from deathguild.core.errors import JobsFailedError
from deathguild.services.pool import Job, Pool


def succeed():
    async def func():
        return True

    return func


def fail(message="boom"):
    async def func():
        raise RuntimeError(message)

    return func


class TestJob:
    """Tests for running a single job."""

    @pytest.mark.asyncio
    async def test_run(self):
        """Test that a job records that it did work."""
        job = Job("job", succeed())

        await job.run()

        assert job.executed is True
        assert job.error is None
        assert job.duration is not None

    @pytest.mark.asyncio
    async def test_run_error(self):
        """Test that a job records its error instead of raising."""
        job = Job("job", fail())

        await job.run()

        assert job.executed is False
        assert isinstance(job.error, RuntimeError)
        assert job.duration is not None


class TestPool:
    """Tests for running rounds of jobs."""

    def test_invalid_concurrency(self):
        """Test that a pool needs room for at least one job."""
        with pytest.raises(ValueError):
            Pool(0)

    @pytest.mark.asyncio
    async def test_run(self):
        """Test that executed and skipped jobs are counted."""

        async def skip():
            return False

        pool = Pool(3)
        jobs = [Job(f"job {i}", succeed()) for i in range(4)] + [Job("skip", skip)]

        assert await pool.run(jobs) is True

        assert pool.success
        assert pool.jobs_executed == 4
        assert pool.jobs_errored == 0

    @pytest.mark.asyncio
    async def test_failure_doesnt_cancel_siblings(self):
        """Test that one failing job leaves the others to finish."""
        pool = Pool(3)
        jobs = [Job(f"job {i}", succeed()) for i in range(9)] + [Job("bad", fail())]

        assert await pool.run(jobs) is False

        assert not pool.success
        assert pool.jobs_executed == 9
        assert pool.jobs_errored == 1
        assert len(pool.errors) == 1
        assert all(job.executed for job in jobs[:9])

    @pytest.mark.asyncio
    async def test_errors_capped(self, caplog):
        """Test that only the first errors are kept, with the rest counted."""
        pool = Pool(4)
        jobs = [Job(f"bad {i}", fail(f"error {i}")) for i in range(11)]

        await pool.run(jobs)

        assert pool.jobs_errored == 11
        assert len(pool.errors) == 10

        with caplog.at_level(logging.ERROR):
            pool.log_errors()

        assert "Job error 10:" in caplog.text
        assert "Job error 11:" not in caplog.text
        assert "... and 1 more job error(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        """Test that no more than the allowed number of jobs run at once."""
        active = 0
        peak = 0

        async def work():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return True

        pool = Pool(2)
        await pool.run([Job(f"job {i}", work) for i in range(6)])

        assert pool.jobs_executed == 6
        assert peak == 2

    @pytest.mark.asyncio
    async def test_log_slowest(self, caplog):
        """Test that the slowest jobs that did work are logged first."""
        pool = Pool(2)
        jobs = [Job(f"job {i}", succeed()) for i in range(3)]
        await pool.run(jobs)

        for job, duration in zip(jobs, [0.5, 2.0, 1.0]):
            job.duration = duration

        with caplog.at_level(logging.INFO):
            pool.log_slowest(limit=2)

        slow = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Slow")]
        assert slow == ["Slow job: job 1 (2.00s)", "Slow job: job 2 (1.00s)"]

    @pytest.mark.asyncio
    async def test_jobs_failed_error(self):
        """Test the error raised for a failed round."""
        pool = Pool(1)
        await pool.run([Job("bad", fail()), Job("also bad", fail())])

        error = JobsFailedError(pool)

        assert str(error) == "2 job(s) errored during last round"
        assert error.pool is pool
