"""Shared test fixtures for fota tests."""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

import pytest

from fota.fingerprint import fingerprint_of
from fota.reconstruct import TestFirmwareReconstructor

Body = Union[str, Exception, None]


class FakeTransport:
    """Manifest transport serving canned bodies (or raising canned errors)."""

    def __init__(self, stable: Body = None, test: Body = None):
        self.stable = stable
        self.test = test
        self.calls: List[Tuple[str, str, bool]] = []

    def fetch(self, model: str, region: str, test: bool = False) -> str:
        self.calls.append((model, region, test))
        body = self.test if test else self.stable
        if isinstance(body, Exception):
            raise body
        if body is None:
            raise AssertionError(f"unexpected fetch {model}/{region} test={test}")
        return body


def stable_xml(latest: Optional[str], platform: str = "14", status: str = "") -> str:
    """version.xml body publishing `latest` (None for an empty <latest/>)."""
    latest_el = f'<latest o="{platform}">{latest}</latest>' if latest is not None else "<latest/>"
    status_el = f"<status><code>{status}</code></status>" if status else ""
    return (
        "<versioninfo><url>https://fota-cloud-dn.ospserver.net/firmware/</url>"
        f"<firmware><model>SM-S9280</model><cc>XAA</cc>{status_el}"
        f"<version>{latest_el}<upgrade/></version></firmware></versioninfo>"
    )


def disclosed_xml(*versions: str, raw_values: Tuple[str, ...] = ()) -> str:
    """version.test.xml body disclosing the fingerprints of `versions`."""
    values = [fingerprint_of(v) for v in versions] + list(raw_values)
    body = "".join(f'<value rcount="0" fwsize="0">{v}</value>' for v in values)
    return f"<versioninfo>{body}</versioninfo>"


def error_xml(code: str = "403", message: str = "Forbidden") -> str:
    return f"<Error><Code>{code}</Code><Message>{message}</Message></Error>"


@pytest.fixture
def reconstructor():
    """Reconstructor with a pinned fallback year."""
    r = TestFirmwareReconstructor(current_year=2025)
    yield r
    r.close()
