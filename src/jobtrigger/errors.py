class TriggerError(Exception):
    """Base class for errors that end the handling of one message.

    These are never retried: redelivering the same message would reproduce
    the same failure.
    """


class TransportAttributeError(TriggerError):
    pass


class DecodeError(TriggerError):
    pass


class ValidationError(TriggerError):
    pass


class SubmissionError(TriggerError):
    pass


class ReportingError(Exception):
    """Status could not be reported. Never ends the handling of a message."""


class InvalidCatalog(Exception):
    source: str

    def __init__(self, *args, **kwargs):
        self.source = kwargs.pop("source")
        super().__init__(*args, **kwargs)
