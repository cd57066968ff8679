# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Yannick Locque (yanuino)
# Copyright (c) 2025 nanosamfw contributors


from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import DEFAULT_CONFIG, FOTAConfig
from .errors import TransportFailure

STABLE_MANIFEST = "version.xml"
TEST_MANIFEST = "version.test.xml"

logger = logging.getLogger(__name__)


class ManifestTransport:
    """
    HTTP access to the Samsung FOTA manifest host.

    Fetches the stable (version.xml) or test (version.test.xml) manifest of a
    model/region pair and returns the raw response body.

    Args:
        cfg: FOTA configuration settings. Defaults to DEFAULT_CONFIG.
        session: Optional requests.Session for connection reuse.
    """

    def __init__(self, cfg: FOTAConfig = DEFAULT_CONFIG, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.sess = session or requests.Session()

    def manifest_url(self, model: str, region: str, test: bool = False) -> str:
        """Build the manifest URL for a model/region pair."""
        name = TEST_MANIFEST if test else STABLE_MANIFEST
        return f"{self.cfg.manifest_url}/{region}/{model}/{name}"

    def fetch(self, model: str, region: str, test: bool = False) -> str:
        """
        Download a manifest document.

        Args:
            model: Device model identifier (e.g. "SM-S9280").
            region: CSC/region code.
            test: Fetch version.test.xml instead of version.xml.

        Returns:
            str: Response body text.

        Raises:
            TransportFailure: On network error, timeout or non-2xx response.
        """
        url = self.manifest_url(model, region, test)
        logger.debug("GET %s", url)
        try:
            r = self.sess.get(
                url,
                headers={"User-Agent": self.cfg.user_agent},
                timeout=self.cfg.request_timeout,
            )
            r.raise_for_status()
        except requests.RequestException as exc:
            raise TransportFailure(f"Manifest request failed for {model}/{region}: {exc}") from exc
        return r.text
