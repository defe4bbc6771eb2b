"""
shelter_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``shelter_kernel``.  The kernel MUST NEVER
    import from ``shelter_config``; ``bridges`` translates the loaded
    configuration into kernel policy objects.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Environment overrides: ``SHELTER_CONFIG_PATH`` selects the YAML file,
      ``SHELTER_DATABASE_URL`` replaces ``database.url``.  An explicit
      ``config_path`` argument wins over the environment.

Failure modes:
    - ``FileNotFoundError`` -- the selected YAML file does not exist.
    - ``ValueError`` / ``KeyError`` -- schema validation failures.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from shelter_config.loader import load_configuration
from shelter_config.schema import ShelterConfiguration

_logger = logging.getLogger("shelter_kernel.config")

CONFIG_PATH_ENV = "SHELTER_CONFIG_PATH"
DATABASE_URL_ENV = "SHELTER_DATABASE_URL"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> ShelterConfiguration:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned configuration has passed schema validation.
        - A ``config_loaded`` log entry is emitted on every successful call.

    Non-goals:
        - No caching; callers hold the returned object.

    Args:
        config_path: YAML file to load.  Defaults to ``$SHELTER_CONFIG_PATH``
            and then to the packaged ``defaults.yaml``.
    """
    path = Path(
        config_path
        or os.environ.get(CONFIG_PATH_ENV)
        or _DEFAULT_CONFIG_PATH
    )
    config = load_configuration(path)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=database_url),
        )

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(path),
            "database_url_overridden": bool(database_url),
            "enforce_transitions": config.workflow.enforce_transitions,
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DATABASE_URL_ENV",
    "ShelterConfiguration",
    "get_active_config",
]
