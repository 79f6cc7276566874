import json

import pytest

from jobtrigger.errors import DecodeError, TransportAttributeError
from jobtrigger.job.model import Pull, Refs
from jobtrigger.subscriber.event import EVENT_TYPE_ATTRIBUTE, EventClass, TriggerEvent


def test_round_trip():
    event = TriggerEvent(
        name="unit-tests",
        refs=Refs(
            org="k8s",
            repo="api",
            base_ref="main",
            base_sha="abc",
            pulls=[Pull(number=1, sha="def", author="someone")],
        ),
        envs={"FOO": "bar"},
        labels={"team": "api"},
        annotations={"note": "manual"},
    )

    msg = event.to_message()
    decoded = TriggerEvent.from_payload(msg.data)

    assert decoded == event
    assert msg.attributes == {EVENT_TYPE_ATTRIBUTE: EventClass.periodic.value}


def test_decode_minimal_payload():
    event = TriggerEvent.from_payload(b'{"name": "nightly-build"}')
    assert event.name == "nightly-build"
    assert event.refs is None
    assert event.envs == {}
    assert event.labels == {}
    assert event.annotations == {}


def test_decode_wire_names():
    payload = {
        "name": "unit-tests",
        "refs": {
            "org": "k8s",
            "repo": "api",
            "base_ref": "main",
            "base_sha": "abc",
            "pulls": [{"number": 1, "sha": "def", "unknown": "ignored"}],
            "workdir": True,
        },
    }
    event = TriggerEvent.from_payload(json.dumps(payload).encode())
    assert event.refs.org_repo == "k8s/api"
    assert event.refs.base_ref == "main"
    assert event.refs.pulls[0].number == 1
    assert event.refs.pulls[0].sha == "def"


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"not json",
        b"[]",
        b'{"refs": {}}',
        b'{"name": "x", "envs": {"A": 1}}',
        b'{"name": "x", "refs": {"pulls": [{"sha": "abc"}]}}',
    ],
)
def test_decode_malformed(payload):
    with pytest.raises(DecodeError):
        TriggerEvent.from_payload(payload)


def test_event_class_from_attributes():
    for event_class in EventClass:
        attrs = {EVENT_TYPE_ATTRIBUTE: event_class.value}
        assert EventClass.from_attributes(attrs) == event_class


def test_event_class_missing_attribute():
    with pytest.raises(TransportAttributeError, match="unable to find"):
        EventClass.from_attributes({"other": "value"})


def test_event_class_unsupported():
    with pytest.raises(TransportAttributeError, match="unsupported event type: foo"):
        EventClass.from_attributes({EVENT_TYPE_ATTRIBUTE: "foo"})
