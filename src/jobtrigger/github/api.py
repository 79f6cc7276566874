from gidgethub.abc import GitHubAPI
from sanic.log import logger

from jobtrigger.github.model import CommitStatus


class API:
    gh: GitHubAPI

    call_count: int

    def __init__(self, gh: GitHubAPI):
        self.gh = gh
        self.call_count = 0

    async def post_status(
        self, org: str, repo: str, sha: str, status: CommitStatus
    ) -> None:
        self.call_count += 1
        url = f"/repos/{org}/{repo}/statuses/{sha}"
        logger.debug("Posting status %s for %s on %s", status.state, status.context, url)
        await self.gh.post(url, data=status.model_dump(exclude_none=True))
