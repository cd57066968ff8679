# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors

"""Samsung FOTA version resolution and test firmware reconstruction.

This package queries the Samsung FOTA manifest service for the firmware
published for a model/region and recovers unpublished test firmware versions
from the MD5 fingerprints disclosed in the test manifest.

Main Components:
    - VersionResolver: Stable/test manifest lookup with classified outcomes
    - TestFirmwareReconstructor: Bounded brute-force search over version strings
    - Region table: AP/CSC/CP prefixes per region code
    - Version utilities: Canonical AP/CSC/CP triplets and field decoding

Example:
    Stable firmware lookup::

        from fota import VersionResolver

        outcome = VersionResolver().resolve("SM-S9280", "CHC")
        if outcome.ok:
            print(f"Latest version: {outcome.version}")

    Test firmware reconstruction::

        outcome = VersionResolver().resolve("SM-S9280", "CHC", use_test_manifest=True)
        for v in outcome.reconstruction.versions:
            print(v.version_code)
"""

from .config import DEFAULT_CONFIG, FOTAConfig, load_config
from .errors import (
    AccessDenied,
    DecryptionExhausted,
    FOTAError,
    MalformedManifest,
    NoFirmwareFound,
    NoTestFirmwareDisclosed,
    ReconstructionCancelled,
    TransportFailure,
    VendorError,
)
from .fingerprint import fingerprint_of
from .reconstruct import (
    CandidateVersion,
    ReconstructionJob,
    ReconstructionResult,
    SearchParams,
    TestFirmwareReconstructor,
    derive_search_params,
)
from .regions import REGION_CODES, RegionCodes, get_region_codes
from .resolver import ManifestOutcome, OutcomeKind, VersionResolver
from .versions import VersionTriplet, normalize_vercode, read_firmware_info
