from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import pydantic


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")


class PodModel(pydantic.BaseModel):
    # unknown pod/container fields are passed through to the job store untouched
    model_config = pydantic.ConfigDict(extra="allow")


class Pull(Model):
    number: int
    author: str = ""
    sha: str = ""
    title: str = ""
    ref: str = ""
    link: str = ""


class Refs(Model):
    org: str = ""
    repo: str = ""
    repo_link: str = ""
    base_ref: str = ""
    base_sha: str = ""
    base_link: str = ""
    path_alias: str = ""
    pulls: List[Pull] = pydantic.Field(default_factory=list)

    @property
    def org_repo(self) -> str:
        return f"{self.org}/{self.repo}"


class EnvVar(PodModel):
    name: str
    value: str = ""


class Container(PodModel):
    name: str = ""
    image: str = ""
    command: List[str] = pydantic.Field(default_factory=list)
    args: List[str] = pydantic.Field(default_factory=list)
    env: List[EnvVar] = pydantic.Field(default_factory=list)


class PodSpec(PodModel):
    containers: List[Container] = pydantic.Field(default_factory=list)


class JobType(str, Enum):
    periodic = "periodic"
    presubmit = "presubmit"
    postsubmit = "postsubmit"


class JobState(str, Enum):
    triggered = "triggered"
    pending = "pending"
    success = "success"
    failure = "failure"
    aborted = "aborted"
    error = "error"


class JobSpec(Model):
    type: Optional[JobType] = None
    agent: str = ""
    cluster: str = ""
    namespace: Optional[str] = None
    job: str = ""
    refs: Optional[Refs] = None
    report: bool = False
    context: str = ""
    max_concurrency: int = 0
    pod_spec: Optional[PodSpec] = None


class JobStatus(Model):
    state: Optional[JobState] = None
    description: str = ""
    start_time: Optional[datetime] = None
    url: Optional[str] = None


class Job(Model):
    name: str
    labels: Dict[str, str] = pydantic.Field(default_factory=dict)
    annotations: Dict[str, str] = pydantic.Field(default_factory=dict)
    spec: JobSpec = pydantic.Field(default_factory=JobSpec)
    status: JobStatus = pydantic.Field(default_factory=JobStatus)

    def __str__(self) -> str:
        return f"Job({self.spec.job or '<unresolved>'}, {self.name})"
