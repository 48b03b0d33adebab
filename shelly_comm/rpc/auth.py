"""
RPC-level authentication

Gen2+ devices protected by a password reject unauthenticated requests with
error 401 whose message carries a JSON challenge::

    {"auth_type": "digest", "nonce": 1625038762, "nc": 1,
     "realm": "shellypro4pm-f008d1d8b8b8", "algorithm": "SHA-256"}

The client answers by attaching an ``auth`` object to every request. The
digest follows RFC 7616 with the fixed ``dummy_method:dummy_uri`` HA2 input the
device firmware expects.
"""

import hashlib
import json
import secrets
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from shelly_comm.rpc.errors import RPCError

DEFAULT_USERNAME = "admin"
DIGEST_METHOD = "dummy_method"
DIGEST_URI = "dummy_uri"


class AuthMethod:
    """Authentication method constants"""
    NONE = "none"
    BASIC = "basic"
    DIGEST = "digest"
    RPC = "rpc"


class AuthData(BaseModel):
    """The ``auth`` member attached to requests"""
    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: Optional[str] = None
    realm: Optional[str] = None
    nonce: Optional[Any] = None
    cnonce: Optional[str] = None
    algorithm: Optional[str] = None
    response: Optional[str] = None
    nc: Optional[int] = None

    @property
    def is_digest(self) -> bool:
        return bool(self.response)

    def to_wire(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump().items()
            if value not in (None, "")
        }


class AuthChallenge(BaseModel):
    """A digest challenge issued by the device"""
    auth_type: str = "digest"
    nonce: Any
    nc: int = 1
    realm: str
    algorithm: str = "SHA-256"

    @classmethod
    def from_error(cls, error: RPCError) -> "AuthChallenge":
        """Extract the challenge from a 401 protocol error

        Raises:
            ValueError: The error does not carry a challenge
        """
        try:
            payload = json.loads(error.message)
        except ValueError as e:
            raise ValueError(f"error {error.code} does not carry an auth challenge") from e
        if not isinstance(payload, dict):
            raise ValueError(f"error {error.code} does not carry an auth challenge")
        return cls.model_validate(payload)


def calculate_hash(data: str, algorithm: Optional[str] = "SHA-256") -> str:
    """Hex digest used by the auth scheme; unknown algorithms fall back to MD5"""
    if algorithm == "SHA-256":
        return hashlib.sha256(data.encode("utf-8")).hexdigest()
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def calculate_ha1(username: str, password: str, realm: str, algorithm: str = "SHA-256") -> str:
    return calculate_hash(f"{username}:{realm}:{password}", algorithm)


def generate_cnonce() -> str:
    return secrets.token_hex(16)


def digest_auth_from_ha1(username: str, ha1: str, realm: str, nonce: Any,
                         algorithm: str = "SHA-256", method: str = DIGEST_METHOD,
                         uri: str = DIGEST_URI, nc: int = 1,
                         cnonce: Optional[str] = None) -> AuthData:
    """Build digest auth data from a precomputed HA1 so the password need not be kept"""
    cnonce = cnonce or generate_cnonce()
    ha2 = calculate_hash(f"{method}:{uri}", algorithm)
    response = calculate_hash(f"{ha1}:{nonce}:{nc:08x}:{cnonce}:auth:{ha2}", algorithm)
    return AuthData(
        username=username,
        realm=realm,
        nonce=nonce,
        cnonce=cnonce,
        nc=nc,
        algorithm=algorithm,
        response=response,
    )


def digest_auth(username: str, password: str, realm: str, nonce: Any,
                algorithm: str = "SHA-256", method: str = DIGEST_METHOD,
                uri: str = DIGEST_URI, nc: int = 1,
                cnonce: Optional[str] = None) -> AuthData:
    """Compute digest auth data for a challenge

    Args:
        username: User name (Gen2+ devices only accept "admin")
        password: Device password
        realm: Realm from the challenge (the device id)
        nonce: Nonce from the challenge
        algorithm: "SHA-256" (Gen2+) or "MD5"
        method: HA2 method component
        uri: HA2 uri component
        nc: Nonce count
        cnonce: Client nonce; random when omitted

    Returns:
        AuthData: Auth object to attach to requests
    """
    ha1 = calculate_ha1(username, password, realm, algorithm)
    return digest_auth_from_ha1(username, ha1, realm, nonce, algorithm, method, uri, nc, cnonce)


def digest_auth_for_challenge(challenge: AuthChallenge, password: str,
                              username: str = DEFAULT_USERNAME) -> AuthData:
    return digest_auth(username, password, challenge.realm, challenge.nonce,
                       algorithm=challenge.algorithm, nc=challenge.nc)


def basic_auth(username: str, password: str) -> AuthData:
    return AuthData(username=username, password=password)


def validate_auth_data(auth: Optional[AuthData]) -> None:
    """Check that auth data is complete for its method

    Raises:
        ValueError: A required field is missing
    """
    if auth is None:
        raise ValueError("auth data is required")
    if not auth.username:
        raise ValueError("username is required")
    if auth.response:
        if not auth.realm:
            raise ValueError("realm is required for digest auth")
        if auth.nonce in (None, ""):
            raise ValueError("nonce is required for digest auth")
        if not auth.cnonce:
            raise ValueError("cnonce is required for digest auth")
