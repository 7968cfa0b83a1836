"""
Publish messages to Apache Pulsar through the pulsar-publish executable.
"""

from pulsar_producer.auth import (
    AthenzAuth,
    AuthorizationConfig,
    BasicAuth,
    MTLSAuth,
    NoAuth,
    OAuth2Auth,
    OIDCAuth,
)
from pulsar_producer.bus import EventBus, Observer
from pulsar_producer.config import ProducerConfig, ProducerSettings, get_settings
from pulsar_producer.exceptions import (
    AbnormalExitError,
    EncodedFailureError,
    InvalidAuthInputError,
    MissingExecutableError,
    MissingResultError,
    PulsarPublishError,
)
from pulsar_producer.models import MessageOptions, ProtocolRecord
from pulsar_producer.publisher import Publisher, get_publisher, publish, test

__all__ = [
    "AbnormalExitError",
    "AthenzAuth",
    "AuthorizationConfig",
    "BasicAuth",
    "EncodedFailureError",
    "EventBus",
    "InvalidAuthInputError",
    "MTLSAuth",
    "MessageOptions",
    "MissingExecutableError",
    "MissingResultError",
    "NoAuth",
    "OAuth2Auth",
    "OIDCAuth",
    "Observer",
    "ProducerConfig",
    "ProducerSettings",
    "ProtocolRecord",
    "Publisher",
    "PulsarPublishError",
    "get_publisher",
    "get_settings",
    "publish",
    "test",
]
