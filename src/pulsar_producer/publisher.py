"""
Pulsar publisher backed by the pulsar-publish executable.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pulsar_producer.auth import (
    AthenzAuth,
    AuthorizationConfig,
    BasicAuth,
    MTLSAuth,
    NoAuth,
    OAuth2Auth,
    OIDCAuth,
    encode_auth,
    parse_authorization,
    resolve_token,
)
from pulsar_producer.bus import Observer
from pulsar_producer.command import build_command
from pulsar_producer.config import ProducerConfig, ensure_executable, get_settings
from pulsar_producer.models import MessageOptions, normalize_key
from pulsar_producer.session import PublishSession

logger = logging.getLogger(__name__)

PRODUCER_KEYS = {
    "timeout": "timeout_seconds",
    "timeoutseconds": "timeout_seconds",
    "name": "name",
    "producerproperties": "properties",
}

# Checked in order, the first present key wins.
AUTHORIZATION_KEYS = ("authorization", "authentication", "auth")


class Publisher:
    """A Pulsar message publisher for one connection string."""

    def __init__(
        self,
        connection_string: str,
        config: Union[ProducerConfig, Mapping[str, Any], None] = None,
        *,
        executable: Optional[Path] = None,
    ):
        """
        Initialize the publisher.

        Args:
            connection_string: Topic URL, e.g. pulsar://host:6650/persistent/public/default/topic
            config: Producer configuration, defaults come from ProducerSettings
            executable: pulsar-publish location, defaults to the process-wide path

        Raises:
            MissingExecutableError: If pulsar-publish is not installed
        """
        self.connection_string = connection_string
        if config is None:
            config = ProducerConfig.from_settings()
        elif not isinstance(config, ProducerConfig):
            config = ProducerConfig.model_validate(dict(config))
        self.config = config
        self.executable = ensure_executable(executable)
        self._authorization: AuthorizationConfig = NoAuth()
        logger.debug(f"Publisher initialized for {connection_string} (producer '{config.name}')")

    @property
    def authorization(self) -> AuthorizationConfig:
        """The active authorization variant."""
        return self._authorization

    def set_authorization(self, value: Union[AuthorizationConfig, Mapping[str, Any], None]) -> None:
        """
        Replace the authorization configuration.

        Args:
            value: A variant, a mapping with a 'type' key, or None to clear
        """
        self._authorization = parse_authorization(value)
        logger.debug(f"Authorization set to '{self._authorization.type}'")

    def clear_authorization(self) -> None:
        self._authorization = NoAuth()

    def set_jwt(self, token: str, allow_unverified: bool = False) -> None:
        """
        Use JWT authentication. Overrides any existing authorization.

        Args:
            token: Raw JWT, or a path to a file holding it
            allow_unverified: Ignore verification errors

        Raises:
            InvalidAuthInputError: If the token is blank or its file is unreadable
        """
        self.set_authorization(OIDCAuth(token=resolve_token(token), allow_unverified=allow_unverified))

    def set_mtls(
        self,
        cert_path: Optional[str] = None,
        key_path: Optional[str] = None,
        ca_cert: Optional[str] = None,
    ) -> None:
        """Use mTLS authentication. Overrides any existing authorization."""
        self.set_authorization(MTLSAuth(cert_path=cert_path, key_path=key_path, ca_cert=ca_cert))

    def set_oauth2(self, config: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        """
        Use OAuth2 authentication. Overrides any existing authorization.

        Args:
            config: Mapping with issuer, privateKey, audience and clientId
            **fields: Same keys as keyword arguments, taking precedence over config
        """
        data = {**dict(config or {}), **fields}
        data.pop("type", None)
        self.set_authorization(OAuth2Auth.model_validate(data))

    def set_basic_auth(self, username: Optional[str], password: Optional[str]) -> None:
        """Use basic authentication. Overrides any existing authorization."""
        self.set_authorization(BasicAuth(username=username, password=password))

    def set_athenz(self, config: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        """
        Use Athenz authentication. Overrides any existing authorization.

        Args:
            config: Mapping with url, domain, tenant, service, privateKey, keyId, caCert and proxy
            **fields: Same keys as keyword arguments, taking precedence over config
        """
        data = {**dict(config or {}), **fields}
        data.pop("type", None)
        self.set_authorization(AthenzAuth.model_validate(data))

    def build_command(
        self,
        message: Any = None,
        options: Union[MessageOptions, Mapping[str, Any], None] = None,
        *,
        test: bool = False,
    ) -> List[str]:
        """Build the pulsar-publish argument vector for one call."""
        return build_command(
            self.connection_string,
            message,
            MessageOptions.from_mapping(options),
            self.config,
            encode_auth(self._authorization),
            test=test,
        )

    async def publish(
        self,
        message: Any,
        options: Union[MessageOptions, Mapping[str, Any], None] = None,
        bus: Optional[Observer] = None,
    ) -> str:
        """
        Send a message to the topic.

        Args:
            message: String, JSON-serializable object or pydantic model
            options: Message options
            bus: Optional observer for status records

        Returns:
            The published message id
        """
        command = self.build_command(message, options)
        logger.info(f"Publishing message to {self.connection_string}")
        message_id = await PublishSession(self.executable, command, bus=bus).run()
        logger.info(f"Published message {message_id}")
        return message_id

    async def test(
        self,
        options: Union[MessageOptions, Mapping[str, Any], None] = None,
        bus: Optional[Observer] = None,
    ) -> bool:
        """
        Test the connection to the Pulsar cluster.

        Args:
            options: Accepted for symmetry with publish; test calls send no message
            bus: Optional observer for status records

        Returns:
            True if pulsar-publish could connect
        """
        command = self.build_command(options=options, test=True)
        logger.info(f"Testing connection to {self.connection_string}")
        success = await PublishSession(self.executable, command, test=True, bus=bus).run()
        logger.info(f"Connection test {'succeeded' if success else 'failed'}")
        return success


def split_options(
    options: Optional[Mapping[str, Any]],
) -> Tuple[Dict[str, Any], Any, MessageOptions]:
    """
    Split a flat options mapping into producer, authorization and message parts.

    Args:
        options: Mapping mixing timeout/name/producerProperties, an
            authorization entry and message options

    Returns:
        Tuple of (producer config fields, authorization value, message options)
    """
    producer: Dict[str, Any] = {}
    authorization: Dict[str, Any] = {}
    message: Dict[str, Any] = {}

    for key, value in (options or {}).items():
        normalized = normalize_key(key)
        if normalized in PRODUCER_KEYS:
            producer[PRODUCER_KEYS[normalized]] = value
        elif normalized in AUTHORIZATION_KEYS:
            authorization[normalized] = value
        else:
            message[key] = value

    auth = next((authorization[k] for k in AUTHORIZATION_KEYS if authorization.get(k) is not None), None)
    return producer, auth, MessageOptions.from_mapping(message)


def get_publisher(
    connection_string: str,
    options: Optional[Mapping[str, Any]] = None,
    *,
    executable: Optional[Path] = None,
) -> Publisher:
    """
    Create a publisher from a flat options mapping.

    Args:
        connection_string: Topic URL
        options: timeout, name, producerProperties and authorization keys are used
        executable: pulsar-publish location override

    Returns:
        Configured Publisher
    """
    producer, auth, _ = split_options(options)
    settings = get_settings()
    producer.setdefault("timeout_seconds", settings.timeout)
    producer.setdefault("name", settings.name)
    publisher = Publisher(connection_string, ProducerConfig.model_validate(producer), executable=executable)
    publisher.set_authorization(auth)
    return publisher


async def publish(
    connection_string: str,
    message: Any,
    options: Optional[Mapping[str, Any]] = None,
    bus: Optional[Observer] = None,
    *,
    executable: Optional[Path] = None,
) -> str:
    """
    Publish a message to a Pulsar topic.

    Args:
        connection_string: Topic URL
        message: String, JSON-serializable object or pydantic model
        options: Flat mapping of producer, authorization and message options
        bus: Optional observer for status records
        executable: pulsar-publish location override

    Returns:
        The published message id
    """
    _, _, message_options = split_options(options)
    publisher = get_publisher(connection_string, options, executable=executable)
    return await publisher.publish(message, message_options, bus)


async def test(
    connection_string: str,
    options: Optional[Mapping[str, Any]] = None,
    bus: Optional[Observer] = None,
    *,
    executable: Optional[Path] = None,
) -> bool:
    """
    Test the connection to a Pulsar cluster.

    Returns:
        True if pulsar-publish could connect
    """
    return await get_publisher(connection_string, options, executable=executable).test(bus=bus)


# Keep pytest from collecting the module-level coroutine when it is imported into a test module.
test.__test__ = False
