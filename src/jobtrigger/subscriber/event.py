from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional

import pydantic

from jobtrigger.errors import DecodeError, TransportAttributeError
from jobtrigger.job.model import Refs

EVENT_TYPE_ATTRIBUTE = "prow.k8s.io/pubsub.EventType"


class EventClass(str, Enum):
    periodic = "prow.k8s.io/pubsub.PeriodicProwJobEvent"
    presubmit = "prow.k8s.io/pubsub.PresubmitProwJobEvent"
    postsubmit = "prow.k8s.io/pubsub.PostsubmitProwJobEvent"

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, str]) -> "EventClass":
        if EVENT_TYPE_ATTRIBUTE not in attributes:
            raise TransportAttributeError(
                f"unable to find {EVENT_TYPE_ATTRIBUTE!r} from the attributes"
            )
        value = attributes[EVENT_TYPE_ATTRIBUTE]
        try:
            return cls(value)
        except ValueError:
            raise TransportAttributeError(f"unsupported event type: {value}")


@dataclass
class OutgoingMessage:
    data: bytes
    attributes: Dict[str, str] = field(default_factory=dict)


class TriggerEvent(pydantic.BaseModel):
    """Minimum information required to start a job."""

    model_config = pydantic.ConfigDict(extra="ignore")

    name: str
    # used by presubmit and postsubmit jobs for the base and head commits
    refs: Optional[Refs] = None
    envs: Dict[str, str] = pydantic.Field(default_factory=dict)
    labels: Dict[str, str] = pydantic.Field(default_factory=dict)
    annotations: Dict[str, str] = pydantic.Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: bytes) -> "TriggerEvent":
        try:
            return cls.model_validate_json(data)
        except pydantic.ValidationError as e:
            raise DecodeError(f"invalid event payload: {e}") from e

    def to_message(self) -> OutgoingMessage:
        return OutgoingMessage(
            data=self.model_dump_json(exclude_none=True).encode(),
            attributes={EVENT_TYPE_ATTRIBUTE: EventClass.periodic.value},
        )
