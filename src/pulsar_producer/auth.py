"""
Authorization variants and their pulsar-publish flag encoding.

Exactly one variant is active on a publisher at a time. Variants are frozen
models, so switching authentication always swaps the whole value and no field
of a previous variant can leak into the next command.
"""

import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from pulsar_producer.config import PACKAGE_DIR
from pulsar_producer.exceptions import InvalidAuthInputError

logger = logging.getLogger(__name__)

JWT_PREFIX = "eyJ"


class _AuthBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class NoAuth(_AuthBase):
    """No authentication flags."""

    type: Literal["none"] = "none"


class OIDCAuth(_AuthBase):
    """JWT bearer token authentication."""

    type: Literal["oidc"] = "oidc"
    token: Optional[str] = Field(None, description="Raw JWT")
    allow_unverified: bool = Field(False, description="Ignore token verification errors")


class MTLSAuth(_AuthBase):
    """Mutual TLS authentication."""

    type: Literal["mtls"] = "mtls"
    cert_path: Optional[str] = Field(None, description="Path to the client certificate")
    key_path: Optional[str] = Field(None, description="Path to the client private key")
    ca_cert: Optional[str] = Field(None, description="Path to the CA certificate")


class OAuth2Auth(_AuthBase):
    """OAuth2 client credentials authentication."""

    type: Literal["oauth2"] = "oauth2"
    issuer: Optional[str] = Field(None, description="Issuer URL")
    private_key: Optional[str] = Field(None, description="Path to the private key file")
    audience: Optional[str] = Field(None, description="Token audience")
    # clientID is the legacy spelling; clientId wins when both are given.
    client_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("client_id", "clientId", "clientID"),
        description="OAuth2 client id",
    )


class BasicAuth(_AuthBase):
    """Username and password authentication."""

    type: Literal["basic"] = "basic"
    username: Optional[str] = None
    password: Optional[str] = None


class AthenzAuth(_AuthBase):
    """Athenz authentication."""

    type: Literal["athenz"] = "athenz"
    url: Optional[str] = Field(None, description="Athenz ZTS URL")
    domain: Optional[str] = None
    tenant: Optional[str] = None
    service: Optional[str] = None
    private_key: Optional[str] = Field(None, description="Path to the private key file")
    key_id: Optional[str] = None
    ca_cert: Optional[str] = Field(None, description="Path to the CA certificate")
    proxy: Optional[str] = Field(None, description="Athenz proxy URL")


AuthorizationConfig = Annotated[
    Union[NoAuth, OIDCAuth, MTLSAuth, OAuth2Auth, BasicAuth, AthenzAuth],
    Field(discriminator="type"),
]

_authorization_adapter = TypeAdapter(AuthorizationConfig)

# (flag, field) pairs in the order they are emitted
_FLAG_TABLE: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "mtls": (
        ("--mtls-cert", "cert_path"),
        ("--mtls-key", "key_path"),
        ("--mtls-ca-cert", "ca_cert"),
    ),
    "oauth2": (
        ("--oauth2-issuer", "issuer"),
        ("--oauth2-private-key", "private_key"),
        ("--oauth2-audience", "audience"),
        ("--oauth2-client-id", "client_id"),
    ),
    "basic": (
        ("--username", "username"),
        ("--password", "password"),
    ),
    "athenz": (
        ("--athenz", "url"),
        ("--athenz-domain", "domain"),
        ("--athenz-tenant", "tenant"),
        ("--athenz-service", "service"),
        ("--athenz-private-key", "private_key"),
        ("--athenz-key-id", "key_id"),
        ("--athenz-ca-cert", "ca_cert"),
        ("--athenz-proxy", "proxy"),
    ),
}


def encode_auth(auth: Optional[AuthorizationConfig]) -> List[str]:
    """
    Encode an authorization variant as pulsar-publish flags.

    Absent fields are omitted rather than rejected; the executable reports an
    incomplete configuration itself.

    Args:
        auth: Active authorization variant, None is treated as NoAuth

    Returns:
        Flag tokens, each flag directly followed by its value
    """
    if auth is None or auth.type == "none":
        return []

    flags: List[str] = []
    if auth.type == "oidc":
        if auth.token:
            flags.extend(["--jwt", auth.token])
        if auth.allow_unverified:
            flags.append("--allow-unverified")
        return flags

    for flag, field in _FLAG_TABLE[auth.type]:
        value = getattr(auth, field)
        if value:
            flags.extend([flag, str(value)])
    return flags


def resolve_token(token: Optional[str]) -> str:
    """
    Resolve JWT material to the raw token.

    Args:
        token: Raw JWT, or a path to a file containing one. Relative paths are
            resolved against the package directory.

    Returns:
        The raw token

    Raises:
        InvalidAuthInputError: If the token is blank or the file can't be read
    """
    if token is None or not str(token).strip():
        raise InvalidAuthInputError("a valid JWT token must be provided")

    token = str(token).strip()
    if token.startswith(JWT_PREFIX):
        return token

    path = PACKAGE_DIR / Path(token)
    try:
        contents = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.error(f"Failed to read JWT from {path}: {e}")
        raise InvalidAuthInputError(f"unable to read JWT file {path}: {e}") from e

    if not contents:
        raise InvalidAuthInputError(f"JWT file {path} is empty")
    logger.debug(f"Loaded JWT from {path}")
    return contents


def parse_authorization(value: Union[AuthorizationConfig, Mapping[str, Any], None]) -> AuthorizationConfig:
    """
    Normalize caller input into a single authorization variant.

    Args:
        value: An existing variant, a mapping with a 'type' key, or None

    Returns:
        The matching variant. Unknown types are ignored and yield NoAuth.
    """
    if value is None:
        return NoAuth()
    if isinstance(value, _AuthBase):
        return value

    data = dict(value)
    auth_type = str(data.get("type") or "").strip().lower()
    if auth_type in ("", "none"):
        return NoAuth()
    if auth_type != "oidc" and auth_type not in _FLAG_TABLE:
        logger.warning(f"Ignoring unsupported authorization type '{data.get('type')}'")
        return NoAuth()

    data["type"] = auth_type
    if auth_type == "oidc":
        data["token"] = resolve_token(data.get("token"))
    return _authorization_adapter.validate_python(data)
