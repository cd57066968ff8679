# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors
"""
FOTA configuration helpers.

This module defines the FOTAConfig dataclass which centralizes the manifest
endpoint, HTTP settings and search limits used by the resolver, and a loader
for overriding them from a config.toml file.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path


@dataclass(frozen=True)
class FOTAConfig:
    """
    Configuration for the FOTA manifest resolver.

    Args:
        manifest_url: Base URL of the FOTA manifest host.
        user_agent: User-Agent header used for HTTP requests.
        request_timeout: Default timeout in seconds for HTTP requests.
        max_test_matches: Match cap for test firmware reconstruction.
        compute_workers: Worker threads of the reconstruction executor.
    """

    manifest_url: str = "https://fota-cloud-dn.ospserver.net/firmware"
    # Same client identification as the FUS client
    user_agent: str = "Kies2.0_FUS"
    request_timeout: int = 60  # seconds
    max_test_matches: int = 100
    compute_workers: int = 1


DEFAULT_CONFIG = FOTAConfig()


def load_config(config_path: Path | None = None) -> FOTAConfig:
    """Load FOTA settings from the [fota] table of a config.toml file.

    Unknown keys are ignored. A missing or unreadable file yields the defaults.

    Args:
        config_path: Path to config.toml. If None, uses fota/config.toml.

    Returns:
        FOTAConfig instance with loaded or default settings.
    """
    if config_path is None:
        config_path = Path(__file__).parent / "config.toml"

    logger = logging.getLogger(__name__)

    try:
        with open(config_path, "rb") as f:
            config = tomllib.load(f)
    except (FileNotFoundError, OSError, tomllib.TOMLDecodeError) as ex:
        logger.warning("Config file not found or error reading: %s. Using defaults.", ex)
        return DEFAULT_CONFIG

    section = config.get("fota", {})
    known = {f.name for f in fields(FOTAConfig)}
    values = {k: v for k, v in section.items() if k in known}

    cfg = FOTAConfig(**values)
    logger.info(
        "Config loaded: manifest_url=%s, timeout=%s, max_test_matches=%s, compute_workers=%s",
        cfg.manifest_url,
        cfg.request_timeout,
        cfg.max_test_matches,
        cfg.compute_workers,
    )
    return cfg
