from typing import NamedTuple, Optional
import os
import logging

DEFAULT_CACHE_MAX_AGE = 86400  # 24 hours


class EnvConfig(NamedTuple):
    cache_path: Optional[str]
    cache_max_age: int
    log_enabled: bool


# Configure the logger
def setup_logging(enabled=True, verbose=False):
    if enabled:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        logging.disable(logging.CRITICAL)  # Disables all logging


# Read optional env vars; command line flags take precedence over them
def read_env_configs() -> EnvConfig:
    cache_path = os.environ.get("ACFILTER_CACHE_PATH") or None

    max_age_env = "ACFILTER_CACHE_MAX_AGE"
    cache_max_age = DEFAULT_CACHE_MAX_AGE
    if max_age_env in os.environ:
        try:
            cache_max_age = int(os.environ[max_age_env])
        except ValueError as e:
            raise ValueError(f"{max_age_env} must be an integer") from e
        if cache_max_age < 0:
            raise ValueError(f"{max_age_env} must not be negative")

    log_enabled = os.environ.get("ACFILTER_LOG", "1") != "0"
    return EnvConfig(cache_path, cache_max_age, log_enabled)
