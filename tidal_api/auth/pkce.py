"""
PKCE (Proof Key for Code Exchange) helpers

The authorization-code flow binds the authorization code to a locally
generated secret: the client keeps a random code verifier, sends its hashed
code challenge with the authorization request, and proves possession of the
verifier when exchanging the code. A random state value protects the redirect
against CSRF.

The library never stores these values. The caller must keep the verifier and
state across the browser redirect round trip.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from tidal_api.core.exceptions import RandomSourceError


CODE_VERIFIER_MIN_LENGTH = 43
CODE_VERIFIER_MAX_LENGTH = 128

DEFAULT_STATE_LENGTH = 16
DEFAULT_CHALLENGE_METHOD = 'S256'


def generate_state(length: int = DEFAULT_STATE_LENGTH) -> str:
    """
    Generate a random hex string of exactly ``length`` characters.

    Args:
        length: Number of hex characters. Must be positive.

    Returns:
        Lower-case hex string from a cryptographically secure source.

    Raises:
        ValueError: If length is not positive.
        RandomSourceError: If the platform entropy source is unavailable.
    """
    if length < 1:
        raise ValueError(f"State length must be positive, got {length}")

    try:
        # Two hex characters per byte
        value = secrets.token_hex((length + 1) // 2)
    except (NotImplementedError, OSError) as e:
        raise RandomSourceError(
            f"No secure random source available: {e}",
            details={'original_error': str(e)}
        ) from e

    return value[:length]


def generate_code_verifier(length: int = CODE_VERIFIER_MAX_LENGTH) -> str:
    """
    Generate a PKCE code verifier.

    Args:
        length: Verifier length, between 43 and 128 characters.

    Raises:
        ValueError: If length is outside the range allowed by RFC 7636.
        RandomSourceError: If the platform entropy source is unavailable.
    """
    if not CODE_VERIFIER_MIN_LENGTH <= length <= CODE_VERIFIER_MAX_LENGTH:
        raise ValueError(
            f"Code verifier length must be between {CODE_VERIFIER_MIN_LENGTH} "
            f"and {CODE_VERIFIER_MAX_LENGTH}, got {length}"
        )
    return generate_state(length)


def generate_code_challenge(code_verifier: str, hash_algo: str = 'sha256') -> str:
    """
    Derive the code challenge for a verifier.

    The verifier is hashed, base64url encoded and stripped of '=' padding.

    Args:
        code_verifier: The verifier to derive a challenge from.
        hash_algo: Any hashlib algorithm name. Defaults to "sha256" (method S256).

    Returns:
        URL-safe challenge string.
    """
    digest = hashlib.new(hash_algo, code_verifier.encode('utf-8')).digest()
    return base64.urlsafe_b64encode(digest).decode('ascii').rstrip('=')


@dataclass(frozen=True)
class PKCEMaterial:
    """
    One authorization attempt's PKCE values.

    Attributes:
        code_verifier: Secret kept by the client until the code exchange.
        code_challenge: S256 challenge sent with the authorization request.
        state: CSRF token echoed back on the redirect.
    """
    code_verifier: str
    code_challenge: str
    state: str

    @classmethod
    def generate(cls, verifier_length: int = CODE_VERIFIER_MAX_LENGTH,
                 state_length: int = DEFAULT_STATE_LENGTH) -> "PKCEMaterial":
        """Generate a fresh verifier, its challenge and a state value."""
        verifier = generate_code_verifier(verifier_length)
        return cls(
            code_verifier=verifier,
            code_challenge=generate_code_challenge(verifier),
            state=generate_state(state_length),
        )

    def authorize_options(self, scope=None) -> dict:
        """Options for Session.get_authorize_url() built from this material."""
        options = {
            'code_challenge': self.code_challenge,
            'code_challenge_method': DEFAULT_CHALLENGE_METHOD,
            'state': self.state,
        }
        if scope:
            options['scope'] = list(scope)
        return options
