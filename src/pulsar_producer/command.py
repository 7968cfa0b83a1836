"""
Argument vector construction for pulsar-publish.
"""

from typing import Any, List, Optional, Sequence

import orjson
from pydantic import BaseModel

from pulsar_producer.config import ProducerConfig
from pulsar_producer.models import MessageOptions

SECRET_FLAGS = {"--jwt", "--password"}


def serialize_payload(message: Any) -> str:
    """
    Normalize a message payload to text.

    Args:
        message: str, bytes, JSON-serializable value, or pydantic model

    Returns:
        Payload text; objects become compact JSON
    """
    if isinstance(message, str):
        return message
    if isinstance(message, (bytes, bytearray)):
        return bytes(message).decode("utf-8")
    if isinstance(message, BaseModel):
        return message.model_dump_json()
    if message is None or isinstance(message, (dict, list, tuple, bool)):
        return orjson.dumps(message, option=orjson.OPT_NON_STR_KEYS).decode("utf-8")
    return str(message)


def escape_payload(payload: str) -> str:
    """Escape double quotes so pulsar-publish reads the payload as one token."""
    return payload.replace('"', '\\"')


def _quoted(value: Any) -> str:
    return f'"{value}"'


def producer_flags(config: ProducerConfig) -> List[str]:
    flags = ["--name", _quoted(config.name), "--timeout", str(config.timeout_seconds)]
    for key, value in config.properties.items():
        flags.extend(["--producer-property", f"{key}={value}"])
    return flags


def message_flags(options: MessageOptions) -> List[str]:
    """Encode message metadata in the fixed flag order."""
    flags: List[str] = []
    if options.key is not None:
        flags.extend(["--key", _quoted(options.key)])
    if options.ordering_key is not None:
        flags.extend(["--ordering-key", _quoted(options.ordering_key)])
    if options.event_time is not None:
        flags.extend(["--event-time", _quoted(options.event_time)])
    for cluster in options.replication_clusters:
        flags.extend(["--replication-cluster", _quoted(cluster)])
    if options.disable_replication:
        flags.append("--disable-replication")
    if options.sequence_id is not None:
        flags.extend(["--sequence-id", _quoted(options.sequence_id)])
    if options.deliver_after is not None:
        flags.extend(["--deliver-after", _quoted(options.deliver_after)])
    if options.deliver_at is not None:
        flags.extend(["--deliver-at", _quoted(options.deliver_at)])
    for key, value in options.properties.items():
        flags.extend(["--property", f"{key}={_quoted(value)}"])
    for key, value in options.producer_properties.items():
        flags.extend(["--producer-property", f"{key}={_quoted(value)}"])
    return flags


def build_command(
    connection_string: str,
    message: Any,
    message_options: Optional[MessageOptions],
    producer_config: ProducerConfig,
    auth_flags: Sequence[str],
    test: bool = False,
) -> List[str]:
    """
    Build the pulsar-publish argument vector.

    Layout is ``[--test] <auth> <producer> <message> <connection> [<payload>]``.
    pulsar-publish stops reading flags at the first positional argument, so
    every flag precedes the connection string.

    Args:
        connection_string: Topic URL, passed through unvalidated
        message: Payload, ignored in test mode
        message_options: Message metadata, ignored in test mode
        producer_config: Producer name, timeout and properties, ignored in test mode
        auth_flags: Output of encode_auth
        test: Probe connectivity instead of publishing

    Returns:
        Argument list, excluding the executable itself
    """
    command: List[str] = []
    if test:
        command.append("--test")
    command.extend(auth_flags)

    if test:
        command.append(connection_string)
        return command

    command.extend(producer_flags(producer_config))
    command.extend(message_flags(message_options or MessageOptions()))
    command.append(connection_string)
    command.append(escape_payload(serialize_payload(message)))
    return command


def redact_command(command: Sequence[str]) -> List[str]:
    """Mask secret flag values for logging."""
    redacted = list(command)
    for i, token in enumerate(redacted[:-1]):
        if token in SECRET_FLAGS:
            redacted[i + 1] = "****"
    return redacted
