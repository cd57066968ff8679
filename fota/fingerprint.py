# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors
"""
FOTA fingerprint helpers.

The test manifest publishes the MD5 digest of each unreleased version string
("AP/CSC/CP"). The digest is only an opaque fingerprint compared for
equality, not a security primitive.
"""

import hashlib
from typing import Callable, Iterable

FingerprintFunc = Callable[[str], str]


def fingerprint_of(version_code: str) -> str:
    """
    Compute the fingerprint of a version string.

    Args:
        version_code: Exact candidate string, separators included.

    Returns:
        Lowercase hexadecimal MD5 digest of the UTF-8 bytes.
    """
    return hashlib.md5(version_code.encode("utf-8")).hexdigest()


def normalize_fingerprints(values: Iterable[str]) -> frozenset[str]:
    """
    Build a disclosed-fingerprint set.

    Blank entries are dropped, the rest are stripped and lowercased so
    duplicates collapse.

    Args:
        values: Raw fingerprint texts.

    Returns:
        Frozen set of normalized fingerprints.
    """
    return frozenset(v.strip().lower() for v in values if v and v.strip())
