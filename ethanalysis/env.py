"""Read settings from the process environment and tell which deployment we run in."""

from __future__ import annotations

import enum
import logging
import os

logger = logging.getLogger(__name__)

SECRET_LOG_BLACKLIST = frozenset({"DATABASE_URL", "OPSGENIE_API_KEY", "ETHERSCAN_API_KEY"})


class MissingEnvVarError(KeyError):
    """Raised when a required environment variable is not set."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"{self.key} should be in env"


class Env(enum.Enum):
    """The deployment environment; logic branches on this."""

    DEV = "dev"
    PROD = "prod"
    STAG = "stag"


_ENV_NAMES = {
    "dev": Env.DEV,
    "development": Env.DEV,
    "stag": Env.STAG,
    "staging": Env.STAG,
    "prod": Env.PROD,
    "production": Env.PROD,
}


def get_env_var(key: str) -> str | None:
    """Return the variable's value, or None when it is not set."""
    value = os.environ.get(key)

    if value is None:
        logger.debug("env var %s requested but not found", key)
    elif key in SECRET_LOG_BLACKLIST:
        logger.debug("env var %s: ****%s", key, value[-4:])
    else:
        logger.debug("env var %s: %s", key, value)

    return value


def get_env_var_unsafe(key: str) -> str:
    """Return a variable we cannot run without, raising MissingEnvVarError if absent."""
    value = get_env_var(key)
    if value is None:
        raise MissingEnvVarError(key)
    return value


def get_env() -> Env:
    """Return the environment named by ENV, assuming development when unset."""
    env_str = get_env_var("ENV")
    if env_str is None:
        logger.warning("no ENV in env, assuming Dev")
        return Env.DEV

    try:
        return _ENV_NAMES[env_str]
    except KeyError:
        raise ValueError(
            f"ENV present: {env_str}, but not one of dev, stag, prod"
        ) from None


def get_env_bool(key: str) -> bool:
    """Return True only when the variable is set to 'true', in any case."""
    value = get_env_var(key)
    flag = value is not None and value.lower() == "true"
    logger.debug("env flag %s: %s", key, flag)
    return flag