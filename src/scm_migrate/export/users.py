"""User email resolution with deterministic fallbacks.

Authors without an inline email are looked up through the provider. Users
that cannot be resolved get ``<login>@unknown-user.invalid`` so the import
still has a unique identity to map; every fallback is written to the
exporter log.
"""

from __future__ import annotations

from scm_migrate.checkpoint import USERS_KEY, CheckpointStore
from scm_migrate.logging import get_logger
from scm_migrate.providers import SourceProvider

from .file_logger import ExporterLog, ExporterLogError

logger = get_logger(__name__)

UNKNOWN_EMAIL_SUFFIX = "@unknown-user.invalid"


def fallback_email(login: str) -> str:
    """Synthesize the placeholder email for a user."""
    return f"{login}{UNKNOWN_EMAIL_SUFFIX}"


def is_fallback_email(email: str) -> bool:
    """True if the email was synthesized rather than resolved."""
    return email.endswith(UNKNOWN_EMAIL_SUFFIX)


class UserResolver:
    """Resolve and cache user emails for one export run.

    The cache is kept in the checkpoint under ``"users"`` so a resumed run
    does not repeat lookups.
    """

    def __init__(
        self,
        provider: SourceProvider,
        store: CheckpointStore,
        exporter_log: ExporterLog,
    ) -> None:
        self._provider = provider
        self._store = store
        self._exporter_log = exporter_log

        cached, _ = store.get_data(USERS_KEY, dict[str, str])
        self._emails: dict[str, str] = dict(cached or {})

    @property
    def emails(self) -> dict[str, str]:
        """Resolved emails by login."""
        return dict(self._emails)

    async def resolve(self, login: str, inline_email: str = "") -> str:
        """Get the email for a login.

        Args:
            login: Provider username
            inline_email: Email already present in the payload, if any

        Returns:
            The user's email, or the synthesized fallback
        """
        if inline_email:
            self._remember(login, inline_email)
            return inline_email

        if login in self._emails:
            return self._emails[login]

        email = await self._provider.find_user_email(login)
        if email is None:
            email = fallback_email(login)
            self._log_fallback("unknown user %s, using %s", login, email)
        elif not email:
            email = fallback_email(login)
            self._log_fallback("no public email for user %s, using %s", login, email)

        self._remember(login, email)
        return email

    def _remember(self, login: str, email: str) -> None:
        if self._emails.get(login) == email:
            return
        self._emails[login] = email
        self._store.try_save(USERS_KEY, self._emails)

    def _log_fallback(self, message: str, *args: object) -> None:
        text = message % args
        logger.debug(text)
        try:
            self._exporter_log.log(text)
        except ExporterLogError as e:
            logger.warning("Could not record fallback email: {}", e)
