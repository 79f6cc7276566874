import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from jobtrigger.catalog import Catalog, DynamicCatalog, ShaGetter
from jobtrigger.errors import ValidationError
from jobtrigger.job.model import JobSpec, Refs
from jobtrigger.job.util import periodic_spec, postsubmit_spec, presubmit_spec
from jobtrigger.model import Periodic, Postsubmit, Presubmit
from jobtrigger.subscriber.event import EventClass, TriggerEvent

logger = logging.getLogger("jobtrigger")

Resolved = Tuple[JobSpec, Dict[str, str]]
Resolver = Callable[
    [Catalog, Optional[DynamicCatalog], TriggerEvent], Awaitable[Resolved]
]

T = TypeVar("T", Presubmit, Postsubmit)


def _sha_getter(sha: str) -> ShaGetter:
    return lambda: sha


def _validate_refs(refs: Optional[Refs], require_pulls: bool) -> Refs:
    if refs is None:
        raise ValidationError("refs must be supplied")
    if len(refs.org) == 0:
        raise ValidationError("org must be supplied")
    if len(refs.repo) == 0:
        raise ValidationError("repo must be supplied")
    if require_pulls and len(refs.pulls) == 0:
        raise ValidationError("at least 1 pull is required")
    if len(refs.base_sha) == 0:
        raise ValidationError("base_sha must be supplied")
    if len(refs.base_ref) == 0:
        raise ValidationError("base_ref must be supplied")
    return refs


def _select(jobs: Sequence[T], name: str, branch: str, kind: str) -> T:
    selected: Optional[T] = None
    for job in jobs:
        if not job.could_run(branch):
            continue
        if job.name == name:
            if selected is not None:
                raise ValidationError(f"{name} matches multiple prow jobs")
            selected = job
    if selected is None:
        raise ValidationError(f'failed to find associated {kind} job "{name}"')
    return selected


async def resolve_periodic(
    catalog: Catalog, dynamic: Optional[DynamicCatalog], event: TriggerEvent
) -> Resolved:
    job: Optional[Periodic] = None
    for candidate in catalog.all_periodics():
        if candidate.name == event.name:
            job = candidate
            break
    if job is None:
        raise ValidationError(f'failed to find associated periodic job "{event.name}"')
    return periodic_spec(job), dict(job.labels)


async def resolve_presubmit(
    catalog: Catalog, dynamic: Optional[DynamicCatalog], event: TriggerEvent
) -> Resolved:
    refs = _validate_refs(event.refs, require_pulls=True)
    org_repo = refs.org_repo

    presubmits: List[Presubmit] = catalog.get_presubmits_static(org_repo)
    if dynamic is not None:
        head_sha_getters = [_sha_getter(pull.sha) for pull in refs.pulls]
        try:
            # already contains the static presubmits of the repository
            presubmits = await dynamic.get_presubmits(
                org_repo, _sha_getter(refs.base_sha), *head_sha_getters
            )
        except Exception:
            logger.debug(
                "Failed to get presubmits for %s, using static ones", org_repo,
                exc_info=True,
            )

    job = _select(presubmits, event.name, refs.base_ref, "presubmit")
    return presubmit_spec(job, refs), dict(job.labels)


async def resolve_postsubmit(
    catalog: Catalog, dynamic: Optional[DynamicCatalog], event: TriggerEvent
) -> Resolved:
    refs = _validate_refs(event.refs, require_pulls=False)
    org_repo = refs.org_repo

    postsubmits: List[Postsubmit] = catalog.get_postsubmits_static(org_repo)
    if dynamic is not None:
        try:
            postsubmits = await dynamic.get_postsubmits(
                org_repo, _sha_getter(refs.base_sha)
            )
        except Exception:
            logger.debug(
                "Failed to get postsubmits for %s, using static ones", org_repo,
                exc_info=True,
            )

    job = _select(postsubmits, event.name, refs.base_ref, "postsubmit")
    return postsubmit_spec(job, refs), dict(job.labels)


RESOLVERS: Dict[EventClass, Resolver] = {
    EventClass.periodic: resolve_periodic,
    EventClass.presubmit: resolve_presubmit,
    EventClass.postsubmit: resolve_postsubmit,
}
