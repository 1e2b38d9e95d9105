"""Bearer-token access to schemas."""

from typing import Dict, Iterable, List, Optional

from ...infrastructure.config.settings import get_settings
from ..common.exceptions import AuthenticationError, PermissionDeniedError


class AccessPolicy:
    """Decide whether a bearer token may work with a schema.

    A token grants access through the abilities ``schema:<name>``,
    ``schema:*`` or ``*``. When the policy is disabled every call is allowed.
    """

    def __init__(self, enabled: bool = False, tokens: Optional[Dict[str, List[str]]] = None):
        self.enabled = enabled
        self.tokens = tokens or {}

    def abilities(self, token: Optional[str]) -> List[str]:
        if not token or token not in self.tokens:
            raise AuthenticationError("Missing or invalid access token")
        return self.tokens[token]

    @staticmethod
    def grants(abilities: Iterable[str], schema: str) -> bool:
        granted = set(abilities)
        return f"schema:{schema}" in granted or "schema:*" in granted or "*" in granted

    def is_allowed(self, token: Optional[str], schema: str) -> bool:
        if not self.enabled:
            return True
        if not token or token not in self.tokens:
            return False
        return self.grants(self.tokens[token], schema)

    def ensure_allowed(self, token: Optional[str], schema: str) -> None:
        """Raise unless ``token`` may use ``schema``.

        Raises:
            AuthenticationError: If auth is enabled and the token is missing or unknown
            PermissionDeniedError: If the token lacks the schema ability
        """
        if not self.enabled:
            return
        if not self.grants(self.abilities(token), schema):
            raise PermissionDeniedError(f"No access to schema: {schema}")


def get_access_policy() -> AccessPolicy:
    settings = get_settings()
    return AccessPolicy(enabled=settings.AUTH_ENABLED, tokens=settings.API_TOKENS_MAP)
