import re
from typing import Dict, List, Optional

import pydantic

from jobtrigger.job.model import PodSpec


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="forbid")


class JobBase(Model):
    name: str
    labels: Dict[str, str] = pydantic.Field(default_factory=dict)
    annotations: Dict[str, str] = pydantic.Field(default_factory=dict)
    cluster: str = "default"
    namespace: Optional[str] = None
    agent: str = "kubernetes"
    max_concurrency: int = 0
    spec: Optional[PodSpec] = None


class Brancher(Model):
    branches: List[str] = pydantic.Field(default_factory=list)
    skip_branches: List[str] = pydantic.Field(default_factory=list)

    @pydantic.field_validator("branches", "skip_branches")
    @classmethod
    def validate_patterns(cls, patterns: List[str]) -> List[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid branch pattern {pattern!r}: {e}")
        return patterns

    def could_run(self, branch: str) -> bool:
        if any(re.fullmatch(p, branch) for p in self.skip_branches):
            return False
        if len(self.branches) > 0:
            return any(re.fullmatch(p, branch) for p in self.branches)
        return True


class Periodic(JobBase):
    interval: Optional[str] = None
    cron: Optional[str] = None


class Presubmit(JobBase, Brancher):
    context: Optional[str] = None
    always_run: bool = False
    optional: bool = False
    skip_report: bool = False


class Postsubmit(JobBase, Brancher):
    context: Optional[str] = None
    skip_report: bool = False


class PubSubTrigger(Model):
    project: str
    topics: List[str] = pydantic.Field(default_factory=list)
    allowed_clusters: List[str] = pydantic.Field(default_factory=list)


class CatalogConfig(Model):
    periodics: List[Periodic] = pydantic.Field(default_factory=list)
    presubmits: Dict[str, List[Presubmit]] = pydantic.Field(default_factory=dict)
    postsubmits: Dict[str, List[Postsubmit]] = pydantic.Field(default_factory=dict)
    pubsub_triggers: List[PubSubTrigger] = pydantic.Field(default_factory=list)
