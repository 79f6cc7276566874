from typing import Dict, List

import aiohttp
import gidgethub
from sanic.log import logger

from jobtrigger.errors import ReportingError
from jobtrigger.github.api import API
from jobtrigger.github.model import CommitStatus
from jobtrigger.job.model import Job, JobState, JobType

# GitHub rejects longer descriptions
MAX_DESCRIPTION_LENGTH = 140

STATE_MAP: Dict[JobState, str] = {
    JobState.triggered: "pending",
    JobState.pending: "pending",
    JobState.success: "success",
    JobState.failure: "failure",
    JobState.aborted: "failure",
    JobState.error: "error",
}


def truncate(text: str, length: int = MAX_DESCRIPTION_LENGTH) -> str:
    if len(text) <= length:
        return text
    return text[: length - 3] + "..."


class GitHubReporter:
    """Reports job state as commit statuses on the triggering commit."""

    api: API

    def __init__(self, api: API):
        self.api = api

    def should_report(self, job: Job) -> bool:
        spec = job.spec
        if not spec.report or spec.refs is None:
            return False
        return spec.type in (JobType.presubmit, JobType.postsubmit)

    async def report(self, job: Job) -> List[Job]:
        refs = job.spec.refs
        if job.spec.type == JobType.presubmit and len(refs.pulls) > 0:
            sha = refs.pulls[0].sha
        else:
            sha = refs.base_sha

        status = CommitStatus(
            state=STATE_MAP[job.status.state],
            context=job.spec.context or job.spec.job,
            description=truncate(job.status.description),
            target_url=job.status.url,
        )
        logger.debug("Reporting %s as %s on %s", job, status.state, sha)
        try:
            await self.api.post_status(refs.org, refs.repo, sha, status)
        except (gidgethub.GitHubException, aiohttp.ClientError) as e:
            raise ReportingError(
                f"failed to post status for {job} on {sha}: {e}"
            ) from e
        return [job]


class NoopReporter:
    def should_report(self, job: Job) -> bool:
        return False

    async def report(self, job: Job) -> List[Job]:
        return [job]
