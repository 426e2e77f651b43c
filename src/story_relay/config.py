"""
Deployment configuration.

Resolved once at startup and threaded through the session initializer;
nothing downstream reads the environment again.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .models.enums import Environment

# Load .env file if present
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)

DEFAULT_CANISTER_ID = "swrvp-laaaa-aaaab-qbkuq-cai"

# Environment -> (network host, trust bootstrap required)
ENVIRONMENT_PROFILES = {
    Environment.DEVELOPMENT: ("http://localhost:4943", True),
    Environment.PRODUCTION: ("https://ic0.app", False),
}

TRUTHY = {"1", "true", "yes", "on"}


class DeploymentConfig(BaseModel):
    """Where the backend lives and how to trust it."""

    model_config = ConfigDict(frozen=True)

    environment: Environment = Environment.PRODUCTION
    host: str = ENVIRONMENT_PROFILES[Environment.PRODUCTION][0]
    canister_id: str = DEFAULT_CANISTER_ID
    gateway_url: Optional[str] = Field(
        default=None,
        description="Canister HTTP interface; derived from host and canister_id when unset",
    )
    bootstrap_required: bool = False
    request_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds before a remote call is abandoned; None waits forever",
    )
    refresh_after_vote: bool = Field(
        default=False,
        description="Re-fetch stories after vote/selection instead of waiting for the next mutation",
    )

    @classmethod
    def for_environment(cls, environment: Environment, **overrides) -> "DeploymentConfig":
        """Build a config from an environment profile, applying non-None overrides."""
        host, bootstrap_required = ENVIRONMENT_PROFILES[environment]
        values = {
            "environment": environment,
            "host": host,
            "bootstrap_required": bootstrap_required,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if "gateway_url" not in values:
            values["gateway_url"] = default_gateway_url(
                values["host"], values.get("canister_id", DEFAULT_CANISTER_ID)
            )
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        environment: Optional[str] = None,
        canister_id: Optional[str] = None,
        host: Optional[str] = None,
        gateway_url: Optional[str] = None,
    ) -> "DeploymentConfig":
        """
        Resolve the deployment config from environment variables.

        Explicit arguments (CLI flags) win over the environment.

        Args:
            environ: Mapping to read from. Defaults to os.environ.
            environment: "development" or "production".
            canister_id: Backend service address override.
            host: Network host override.
            gateway_url: Canister HTTP interface override.
        """
        environ = os.environ if environ is None else environ

        return cls.for_environment(
            parse_environment(environment or environ.get("STORY_RELAY_ENV")),
            host=host or environ.get("STORY_RELAY_HOST") or None,
            gateway_url=gateway_url or environ.get("STORY_RELAY_GATEWAY_URL") or None,
            canister_id=canister_id or environ.get("CANISTER_ID_BACKEND") or DEFAULT_CANISTER_ID,
            request_timeout=_get_env_float(environ, "STORY_RELAY_TIMEOUT"),
            refresh_after_vote=environ.get("STORY_RELAY_REFRESH_AFTER_VOTE", "").strip().lower() in TRUTHY,
        )


def default_gateway_url(host: str, canister_id: str) -> str:
    """Address of a canister's HTTP interface on a network.

    The HTTP gateway serves each canister on its own subdomain:
    https://ic0.app -> https://<id>.ic0.app, http://localhost:4943 -> http://<id>.localhost:4943
    """
    parts = urlsplit(host)
    return urlunsplit((parts.scheme, f"{canister_id}.{parts.netloc}", "", "", ""))


def parse_environment(value: Optional[str]) -> Environment:
    """Map an environment name to an Environment; anything unrecognized is production."""
    if not value:
        return Environment.PRODUCTION
    try:
        return Environment(value.strip().lower())
    except ValueError:
        logger.warning(f"Unrecognized environment {value!r}, falling back to production")
        return Environment.PRODUCTION


def _get_env_float(environ: Mapping[str, str], key: str) -> Optional[float]:
    """Get a positive float from the environment, ignoring junk."""
    val = environ.get(key)
    if val:
        try:
            number = float(val)
        except ValueError:
            logger.warning(f"Invalid number for {key}: {val}")
            return None
        if number > 0:
            return number
        logger.warning(f"Ignoring non-positive {key}: {val}")
    return None
