import asyncio
import logging
from typing import Protocol

import aiohttp
import pydantic

from jobtrigger.errors import SubmissionError
from jobtrigger.job.model import Job

logger = logging.getLogger("jobtrigger")


class JobClient(Protocol):
    async def create(self, job: Job) -> Job:
        ...


class HttpJobClient:
    """Submits jobs to a job store over HTTP.

    Every failure before the store accepted the job is raised as
    :class:`SubmissionError`. Once the store answered with a success status the
    job exists, so an unexpected response body never fails the submission.
    """

    session: aiohttp.ClientSession
    url: str

    def __init__(self, session: aiohttp.ClientSession, url: str, timeout: float = 30):
        self.session = session
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def create(self, job: Job) -> Job:
        logger.debug("Creating %s at %s", job, self.url)
        try:
            async with self.session.post(
                self.url,
                json=job.model_dump(mode="json", exclude_none=True),
                timeout=self.timeout,
            ) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise SubmissionError(
                        f"job store responded with {resp.status}: {text.strip()}"
                    )
                if resp.content_type != "application/json":
                    return job
                try:
                    data = await resp.json()
                except (ValueError, aiohttp.ClientError, asyncio.TimeoutError):
                    logger.debug(
                        "Unreadable response from job store for %s", job, exc_info=True
                    )
                    return job
        except asyncio.TimeoutError as e:
            raise SubmissionError(
                f"job store did not respond within {self.timeout.total}s"
            ) from e
        except aiohttp.ClientError as e:
            raise SubmissionError(f"unable to reach job store: {e}") from e

        if not data:
            return job
        try:
            return Job.model_validate(data)
        except pydantic.ValidationError:
            logger.debug("Job store response for %s is not a job: %r", job, data)
            return job


class DryRunJobClient:
    def __init__(self):
        self.jobs = []

    async def create(self, job: Job) -> Job:
        logger.info("DRY RUN: would create %s on cluster %s", job, job.spec.cluster)
        self.jobs.append(job)
        return job
