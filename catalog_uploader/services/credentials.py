"""Per-owner upload credentials looked up from the environment."""
import logging
import os
from typing import Dict, Iterable, Mapping, Optional

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def credential_key(owner: str) -> str:
    """Environment key holding the secret of an owner."""
    return f"{owner.upper()}_PASSWORD"


class EnvCredentialStore:
    """
    Resolves ``<OWNER>_PASSWORD`` secrets.

    Implements ICredentialStore protocol. Secrets are resolved once per owner
    and cached for the run.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ if environ is not None else os.environ
        self._cache: Dict[str, str] = {}

    def secret_for(self, owner: str) -> str:
        if owner in self._cache:
            return self._cache[owner]
        key = credential_key(owner)
        secret = self._environ.get(key)
        if not secret:
            raise ConfigurationError(f"missing credential {key} for owner {owner!r}")
        self._cache[owner] = secret
        return secret

    def require(self, owners: Iterable[str]) -> None:
        """
        Resolve the secret of every owner up front.

        Raises:
            ConfigurationError: listing every owner without a secret
        """
        missing = []
        for owner in sorted(set(owners)):
            try:
                self.secret_for(owner)
            except ConfigurationError:
                missing.append(credential_key(owner))
        if missing:
            raise ConfigurationError(f"missing credentials: {', '.join(missing)}")
        logger.debug("Credentials resolved for %d owner(s)", len(self._cache))
