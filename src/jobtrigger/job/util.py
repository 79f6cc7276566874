from datetime import datetime, timezone
import re
from typing import Mapping, Optional
import uuid

from jobtrigger.job.model import Job, JobSpec, JobState, JobStatus, JobType, Refs
from jobtrigger.model import JobBase, Periodic, Postsubmit, Presubmit

CREATED_BY_LABEL = "created-by-prow"
JOB_LABEL = "prow.k8s.io/job"
TYPE_LABEL = "prow.k8s.io/type"
ID_LABEL = "prow.k8s.io/id"
ORG_LABEL = "prow.k8s.io/refs.org"
REPO_LABEL = "prow.k8s.io/refs.repo"
BASE_REF_LABEL = "prow.k8s.io/refs.base_ref"
PULL_LABEL = "prow.k8s.io/refs.pull"
JOB_ANNOTATION = "prow.k8s.io/job"

MAX_LABEL_VALUE_LENGTH = 63

_invalid_label_chars = re.compile(r"[^A-Za-z0-9_.-]")


def sanitize_label_value(value: str) -> str:
    value = _invalid_label_chars.sub("-", value)[:MAX_LABEL_VALUE_LENGTH]
    return value.strip("-_.")


def _base_spec(job: JobBase, type: JobType) -> JobSpec:
    return JobSpec(
        type=type,
        agent=job.agent,
        cluster=job.cluster,
        namespace=job.namespace,
        job=job.name,
        max_concurrency=job.max_concurrency,
        # catalog entries are shared between handlers, never hand out the original
        pod_spec=job.spec.model_copy(deep=True) if job.spec is not None else None,
    )


def periodic_spec(job: Periodic) -> JobSpec:
    return _base_spec(job, JobType.periodic)


def presubmit_spec(job: Presubmit, refs: Refs) -> JobSpec:
    spec = _base_spec(job, JobType.presubmit)
    spec.refs = refs.model_copy(deep=True)
    spec.context = job.context or job.name
    spec.report = not job.skip_report
    return spec


def postsubmit_spec(job: Postsubmit, refs: Refs) -> JobSpec:
    spec = _base_spec(job, JobType.postsubmit)
    spec.refs = refs.model_copy(deep=True)
    spec.context = job.context or job.name
    spec.report = not job.skip_report
    return spec


def new_job(
    spec: JobSpec,
    extra_labels: Optional[Mapping[str, str]] = None,
    extra_annotations: Optional[Mapping[str, str]] = None,
) -> Job:
    name = str(uuid.uuid4())

    labels = dict(extra_labels or {})
    labels[CREATED_BY_LABEL] = "true"
    labels[ID_LABEL] = name
    if spec.job:
        labels[JOB_LABEL] = sanitize_label_value(spec.job)
    if spec.type is not None:
        labels[TYPE_LABEL] = spec.type.value
    if spec.refs is not None:
        labels[ORG_LABEL] = sanitize_label_value(spec.refs.org)
        labels[REPO_LABEL] = sanitize_label_value(spec.refs.repo)
        labels[BASE_REF_LABEL] = sanitize_label_value(spec.refs.base_ref)
        if len(spec.refs.pulls) > 0:
            labels[PULL_LABEL] = str(spec.refs.pulls[0].number)

    annotations = dict(extra_annotations or {})
    annotations[JOB_ANNOTATION] = spec.job

    return Job(
        name=name,
        labels=labels,
        annotations=annotations,
        spec=spec,
        status=JobStatus(
            state=JobState.triggered,
            start_time=datetime.now(timezone.utc),
        ),
    )
