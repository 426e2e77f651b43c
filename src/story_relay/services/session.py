"""Session initializer.

Establishes the one connection handle a client uses for its whole lifetime.

Lifecycle: uninitialized -> initializing -> ready | failed

- Handle construction failing is fatal (FatalInitError); there is no retry,
  the only recovery is a full reload with a new initializer.
- The development trust bootstrap is best-effort: a failure is logged and
  the session still becomes ready.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import DeploymentConfig
from ..models.enums import SessionStatus
from .transport import RemoteError, StoryBackend

logger = logging.getLogger(__name__)


class FatalInitError(Exception):
    """Raised when the backend handle could not be constructed."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class SessionNotReadyError(Exception):
    """Raised when the session is used before the initializer is ready."""

    pass


@dataclass(frozen=True)
class Session:
    """Established connection to the backend. Shared read-only by every caller."""

    config: DeploymentConfig
    backend: StoryBackend
    root_key: Optional[bytes] = None


BackendFactory = Callable[[DeploymentConfig], StoryBackend]


def default_backend_factory(config: DeploymentConfig) -> StoryBackend:
    """Build the gateway client for a deployment."""
    from ..gateway_client import GatewayClient

    return GatewayClient.from_config(config)


class SessionInitializer:
    """Builds the session exactly once per client lifetime."""

    def __init__(
        self,
        config: DeploymentConfig,
        backend_factory: Optional[BackendFactory] = None,
    ):
        self.config = config
        self.backend_factory = backend_factory or default_backend_factory
        self.status = SessionStatus.UNINITIALIZED
        self._session: Optional[Session] = None
        self._error: Optional[FatalInitError] = None

    @property
    def session(self) -> Session:
        """The ready session.

        Raises:
            SessionNotReadyError: if initialize() has not completed successfully.
        """
        if self.status != SessionStatus.READY or self._session is None:
            raise SessionNotReadyError(f"Session is {self.status.value}, not ready")
        return self._session

    async def initialize(self) -> Session:
        """Construct the backend handle and run the trust bootstrap if required.

        Idempotent: once ready, returns the same session; once failed,
        re-raises the original fatal error.

        Raises:
            FatalInitError: if the backend handle could not be constructed.
            SessionNotReadyError: if called again while still initializing.
        """
        if self.status == SessionStatus.READY:
            return self.session
        if self.status == SessionStatus.FAILED:
            raise self._error
        if self.status == SessionStatus.INITIALIZING:
            raise SessionNotReadyError("Session initialization already in progress")

        self.status = SessionStatus.INITIALIZING
        logger.info(
            f"Initializing backend connection ({self.config.environment.value}, "
            f"host={self.config.host}, gateway={self.config.gateway_url})"
        )

        try:
            backend = self.backend_factory(self.config)
        except Exception as e:
            logger.error(f"Failed to initialize backend: {e}")
            self.status = SessionStatus.FAILED
            self._error = FatalInitError(e)
            raise self._error from e

        root_key = None
        if self.config.bootstrap_required:
            logger.info("Fetching root key...")
            try:
                root_key = await backend.fetch_root_key()
            except RemoteError as e:
                logger.warning(f"Unable to fetch root key: {e}")

        self._session = Session(config=self.config, backend=backend, root_key=root_key)
        self.status = SessionStatus.READY
        logger.info("Backend connection ready")
        return self._session
