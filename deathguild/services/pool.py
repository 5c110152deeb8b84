"""
Bounded-concurrency job pool.

Jobs are independent coroutines. A pool round runs every job to completion,
never more than `concurrency` at once, and records which ones failed without
letting a failure cancel its siblings.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

# Default number of errors kept and logged from a single round.
MAX_ERRORS = 10


class Job:
    """
    A named unit of work.

    `func` is an async callable returning True if it did work or False if it
    decided there was nothing to do. Failures are signaled by raising.
    """

    def __init__(self, name: str, func: Callable[[], Awaitable[bool]]):
        self.name = name
        self.func = func
        self.duration: Optional[float] = None
        self.error: Optional[BaseException] = None
        self.executed = False

    async def run(self) -> None:
        start = time.monotonic()
        try:
            self.executed = bool(await self.func())
        except Exception as e:
            self.error = e
        finally:
            self.duration = time.monotonic() - start

    def __repr__(self) -> str:
        return f"<Job {self.name!r}>"


class Pool:
    """Runs jobs with bounded concurrency and aggregates their results."""

    def __init__(self, concurrency: int, max_errors: int = MAX_ERRORS):
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")

        self.concurrency = concurrency
        self.max_errors = max_errors
        self.jobs: List[Job] = []
        self.jobs_executed = 0
        self.jobs_errored = 0
        self.errors: List[BaseException] = []

    @property
    def success(self) -> bool:
        """True only if every job in the round succeeded."""
        return self.jobs_errored == 0

    async def run(self, jobs: List[Job]) -> bool:
        """
        Run a round of jobs and wait for all of them to finish.

        Args:
            jobs: Jobs to run

        Returns:
            Whether every job succeeded
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(job: Job) -> None:
            async with semaphore:
                logger.debug(f"Starting job: {job.name}")
                await job.run()

            if job.error is not None:
                self.jobs_errored += 1
                if len(self.errors) < self.max_errors:
                    self.errors.append(job.error)
                logger.debug(f"Job errored: {job.name}: {job.error}")
            elif job.executed:
                self.jobs_executed += 1

        self.jobs.extend(jobs)

        logger.info(f"Running {len(jobs)} job(s) with concurrency {self.concurrency}")
        await asyncio.gather(*(worker(job) for job in jobs))

        return self.success

    def log_errors(self) -> None:
        """Log the retained errors, noting how many more were dropped."""
        for i, error in enumerate(self.errors):
            logger.error(f"Job error {i + 1}: {error}")

        if self.jobs_errored > len(self.errors):
            logger.error(
                f"... and {self.jobs_errored - len(self.errors)} more job error(s)"
            )

    def log_slowest(self, limit: int = 5) -> None:
        """Log the slowest jobs that did work."""
        timed = [job for job in self.jobs if job.executed and job.duration is not None]
        timed.sort(key=lambda job: job.duration, reverse=True)

        for job in timed[:limit]:
            logger.info(f"Slow job: {job.name} ({job.duration:.2f}s)")
