"""Custom exceptions for the pulsar_producer package."""

from typing import Optional


class PulsarPublishError(Exception):
    """Base class for every failure raised by a publish or test call."""

    pass


class MissingExecutableError(PulsarPublishError):
    """Raised when the pulsar-publish executable is not installed where expected."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"the module is not installed correctly (binary not found at {path})")


class EncodedFailureError(PulsarPublishError):
    """Raised when pulsar-publish reports a structured error record."""

    def __init__(self, message: str, record=None):
        self.record = record
        super().__init__(message)


class AbnormalExitError(PulsarPublishError):
    """Raised when pulsar-publish exits non-zero without reporting an error record."""

    def __init__(self, returncode: Optional[int]):
        self.returncode = returncode
        super().__init__(f"pulsar-publish process exited with code {returncode}")


class MissingResultError(PulsarPublishError):
    """Raised when pulsar-publish exits cleanly but never reported a result."""

    def __init__(self, result=None):
        self.result = result
        super().__init__(f"message ID ({result}) was not returned from pulsar-publish (unknown error)")


class InvalidAuthInputError(PulsarPublishError, ValueError):
    """Raised when an authorization setter receives missing or unusable material."""

    pass


class ProtocolError(PulsarPublishError):
    """Raised when a line emitted by pulsar-publish is not a JSON object."""

    pass
