# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Vladislav Tislenko (keklick1337)
# Copyright (c) 2025 nanosamfw contributors

"""
FOTA manifest parsing helpers.

Provides a dataclass and parsers to extract the published version from a
version.xml document, the vendor error payload, and the disclosed
fingerprints of a version.test.xml document.

Functions:
- parse_manifest: parse response text into an XML root element.
- check_error: raise VendorError for an <Error> payload.
- parse_latest: parse the latest-version element into a LatestInfo dataclass.
- parse_fingerprints: collect every disclosed <value> fingerprint.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass

from .errors import AccessDenied, MalformedManifest, NoFirmwareFound, VendorError
from .fingerprint import normalize_fingerprints
from .versions import VersionTriplet


@dataclass(frozen=True)
class LatestInfo:
    """Published firmware from a version.xml manifest.

    Attributes:
        version: Canonical AP/CSC/CP triplet.
        platform_version: Android platform version tag (the "o" attribute), may be empty.
    """

    version: VersionTriplet
    platform_version: str


def parse_manifest(text: str) -> ET.Element:
    """
    Parse a manifest document.

    Args:
        text: Response body.

    Returns:
        ET.Element: Root element.

    Raises:
        MalformedManifest: If the body is not well-formed XML.
    """
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        raise MalformedManifest() from exc


def check_error(root: ET.Element) -> None:
    """
    Raise VendorError if the document is an <Error> payload.

    Args:
        root: Parsed manifest root.

    Raises:
        VendorError: With the <Code> and <Message> texts.
        MalformedManifest: If the error payload lacks Code or Message.
    """
    if root.tag != "Error":
        return
    code = root.find(".//Code")
    message = root.find(".//Message")
    if code is None or message is None:
        raise MalformedManifest("Code" if code is None else "Message")
    raise VendorError((code.text or "").strip(), (message.text or "").strip())


def parse_latest(root: ET.Element, model: str = "", region: str = "") -> LatestInfo:
    """
    Parse the latest published version of a version.xml manifest.

    Args:
        root: Parsed manifest root.
        model: Optional device model for error context.
        region: Optional region code for error context.

    Returns:
        LatestInfo with the canonical version triplet and platform version.

    Raises:
        AccessDenied: If no version is published and the status code is AccessDenied.
        NoFirmwareFound: If no version is published.
    """
    latest = root.find("./firmware/version/latest")
    text = latest.text.strip() if latest is not None and latest.text else ""
    if not text:
        status = root.find(".//code")
        if status is not None and (status.text or "").strip() == "AccessDenied":
            raise AccessDenied(model, region)
        raise NoFirmwareFound(model, region)
    return LatestInfo(
        version=VersionTriplet.parse(text),
        platform_version=latest.get("o", ""),  # type: ignore[union-attr]
    )


def parse_fingerprints(root: ET.Element) -> frozenset[str]:
    """
    Collect the fingerprints disclosed by a version.test.xml manifest.

    Args:
        root: Parsed test manifest root.

    Returns:
        Set of normalized fingerprints from every <value> element.
    """
    return normalize_fingerprints(e.text or "" for e in root.iter("value"))
