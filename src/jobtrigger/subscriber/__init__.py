import logging
from typing import Dict, List, Optional, Protocol, Sequence

from jobtrigger.catalog import CatalogAgent, DynamicCatalog
from jobtrigger.errors import (
    ReportingError,
    SubmissionError,
    TriggerError,
    ValidationError,
)
from jobtrigger.job.client import JobClient
from jobtrigger.job.model import EnvVar, Job, JobSpec, JobState
from jobtrigger.job.util import new_job
from jobtrigger.metric import (
    ack_counter,
    error_counter,
    job_created_counter,
    message_counter,
    nack_counter,
)
from jobtrigger.subscriber.envelope import Message
from jobtrigger.subscriber.event import EventClass, TriggerEvent
from jobtrigger.subscriber.handlers import RESOLVERS

logger = logging.getLogger("jobtrigger")

ALLOW_ALL_CLUSTERS = "*"


class Reporter(Protocol):
    def should_report(self, job: Job) -> bool:
        ...

    async def report(self, job: Job) -> List[Job]:
        ...


class Subscriber:
    """Turns trigger messages into jobs.

    Validates them against the job catalog, creates them through the job
    client and reports the outcome.
    """

    catalog_agent: CatalogAgent
    dynamic_catalog: Optional[DynamicCatalog]
    job_client: JobClient
    reporter: Reporter

    def __init__(
        self,
        catalog_agent: CatalogAgent,
        job_client: JobClient,
        reporter: Reporter,
        dynamic_catalog: Optional[DynamicCatalog] = None,
    ):
        self.catalog_agent = catalog_agent
        self.job_client = job_client
        self.reporter = reporter
        self.dynamic_catalog = dynamic_catalog

    async def receive(
        self,
        msg: Message,
        subscription: str,
        allowed_clusters: Optional[Sequence[str]] = None,
    ) -> None:
        """Handle a message and settle it.

        Without ``allowed_clusters`` the allow-list configured for
        ``subscription`` in the catalog is used.

        Failures raised by :meth:`handle_message` can never succeed on
        redelivery, so the message is acked. Anything else is nacked.
        """
        try:
            await self.handle_message(msg, subscription, allowed_clusters)
        except TriggerError as e:
            logger.info("Dropping message %s on %s: %s", msg.id, subscription, e)
        except Exception:
            logger.error(
                "Unexpected error handling message %s on %s", msg.id, subscription,
                exc_info=True,
            )
            nack_counter.labels(subscription=subscription).inc()
            await msg.nack()
            raise
        ack_counter.labels(subscription=subscription).inc()
        await msg.ack()

    async def handle_message(
        self,
        msg: Message,
        subscription: str,
        allowed_clusters: Optional[Sequence[str]] = None,
    ) -> None:
        message_counter.labels(subscription=subscription).inc()
        logger.info("Received message %s on %s", msg.id, subscription)

        try:
            event_class = EventClass.from_attributes(msg.attributes)
            await self.handle_job(event_class, msg, subscription, allowed_clusters)
        except TriggerError as e:
            logger.debug("Failed to create job from message %s: %s", msg.id, e)
            error_counter.labels(subscription=subscription).inc()
            raise

    async def handle_job(
        self,
        event_class: EventClass,
        msg: Message,
        subscription: str,
        allowed_clusters: Optional[Sequence[str]] = None,
    ) -> Job:
        resolve = RESOLVERS[event_class]
        # one snapshot for both the lookup and the allow-list
        catalog = self.catalog_agent.config()
        if allowed_clusters is None:
            allowed_clusters = catalog.allowed_clusters(subscription)
            if len(allowed_clusters) == 0:
                logger.warning("No allowed clusters configured for %s", subscription)

        event = TriggerEvent.from_payload(msg.payload)
        event.name = event.name.strip()

        try:
            spec, labels = await resolve(catalog, self.dynamic_catalog, event)
        except TriggerError as e:
            # user errors like missing fields or unknown jobs, surfaced via the report
            logger.debug("Failed getting job spec for %r: %s", event.name, e)
            job = new_job(JobSpec(), None, event.annotations)
            await self._report(job, JobState.error, e)
            raise

        if not cluster_allowed(spec.cluster, allowed_clusters):
            logger.warning("Cluster %s not allowed for %r", spec.cluster, event.name)
            e = ValidationError(
                f"cluster {spec.cluster} is not allowed. Can be fixed by defining "
                "this cluster under pubsub_triggers -> allowed_clusters"
            )
            job = new_job(spec, None, event.annotations)
            await self._report(job, JobState.error, e)
            raise e

        job = build_job(spec, labels, event)

        try:
            await self.job_client.create(job)
        except SubmissionError as e:
            logger.error("Failed to create job %r as %s: %s", event.name, job.name, e)
            await self._report(job, JobState.error, e)
            raise

        logger.info("Job %r created as %s", event.name, job.name)
        job_created_counter.labels(
            subscription=subscription, type=spec.type.value
        ).inc()
        await self._report(job, JobState.triggered)
        return job

    async def _report(
        self, job: Job, state: JobState, error: Optional[Exception] = None
    ) -> None:
        job.status.state = state
        job.status.description = "Successfully triggered job."
        if error is not None:
            job.status.description = f"Failed creating job: {error}"

        try:
            if self.reporter.should_report(job):
                await self.reporter.report(job)
        except ReportingError as e:
            logger.warning("Failed to report status of %s: %s", job, e)
        except Exception:
            logger.error("Unexpected error reporting status of %s", job, exc_info=True)


def cluster_allowed(cluster: str, allowed_clusters: Sequence[str]) -> bool:
    return any(c == ALLOW_ALL_CLUSTERS or c == cluster for c in allowed_clusters)


def build_job(
    spec: JobSpec, labels: Optional[Dict[str, str]], event: TriggerEvent
) -> Job:
    merged: Dict[str, str] = dict(labels or {})
    merged.update(event.labels)

    job = new_job(spec, merged, event.annotations)
    inject_envs(job, event.envs)
    return job


def inject_envs(job: Job, envs: Dict[str, str]) -> None:
    if job.spec.pod_spec is None:
        return
    for container in job.spec.pod_spec.containers:
        for name, value in envs.items():
            container.env.append(EnvVar(name=name, value=value))
