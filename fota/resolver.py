# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors

"""
FOTA version resolution.

VersionResolver queries the manifest of a model/region and reports a
ManifestOutcome: the canonical published version, or a classified failure.
Test manifests only disclose fingerprints, so for them the resolver hands
the fingerprints to a TestFirmwareReconstructor, calibrated on the stable
version when one can be fetched.

No exception leaves resolve(); every failure is reported in the outcome.
"""

from __future__ import annotations

import concurrent.futures
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .config import DEFAULT_CONFIG, FOTAConfig
from .errors import (
    AccessDenied,
    DecryptionExhausted,
    FOTAError,
    MalformedManifest,
    NoFirmwareFound,
    ReconstructionCancelled,
    TransportFailure,
)
from .manifest import check_error, parse_fingerprints, parse_latest, parse_manifest
from .reconstruct import ProgressCallback, ReconstructionResult, TestFirmwareReconstructor
from .transport import ManifestTransport
from .versions import VersionTriplet

logger = logging.getLogger(__name__)


class OutcomeKind(enum.Enum):
    """Classification of a ManifestOutcome."""

    RESOLVED = "resolved"
    NO_FIRMWARE = "no-firmware"
    ACCESS_DENIED = "access-denied"
    MALFORMED_MANIFEST = "malformed-manifest"
    TRANSPORT_FAILURE = "transport-failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ManifestOutcome:
    """Result of one resolve() call.

    Attributes:
        version: Resolved version, None on failure.
        platform_version: Android platform version tag, empty for test firmware.
        error: Failure, None on success.
        raw_output: Raw manifest (stable path) or a diagnostic summary; never the test manifest.
        reconstruction: Reconstruction details for the test path.
    """

    version: Optional[VersionTriplet] = None
    platform_version: str = ""
    error: Optional[Exception] = None
    raw_output: str = ""
    reconstruction: Optional[ReconstructionResult] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.version is not None

    @property
    def version_code(self) -> str:
        return str(self.version) if self.version is not None else ""

    @property
    def kind(self) -> OutcomeKind:
        if self.ok:
            return OutcomeKind.RESOLVED
        err = self.error
        if isinstance(err, AccessDenied):
            return OutcomeKind.ACCESS_DENIED
        if isinstance(err, NoFirmwareFound):
            return OutcomeKind.NO_FIRMWARE
        if isinstance(err, MalformedManifest):
            return OutcomeKind.MALFORMED_MANIFEST
        if isinstance(err, ReconstructionCancelled):
            return OutcomeKind.CANCELLED
        return OutcomeKind.TRANSPORT_FAILURE


class VersionResolver:
    """
    Resolve the published or test firmware version of a model/region.

    Args:
        cfg: FOTA configuration settings. Defaults to DEFAULT_CONFIG.
        transport: Manifest transport. A ManifestTransport is created if None.
        reconstructor: Test firmware reconstructor. Created if None.
    """

    def __init__(
        self,
        cfg: FOTAConfig = DEFAULT_CONFIG,
        transport: Optional[ManifestTransport] = None,
        reconstructor: Optional[TestFirmwareReconstructor] = None,
    ):
        self.cfg = cfg
        self.transport = transport or ManifestTransport(cfg)
        self.reconstructor = reconstructor or TestFirmwareReconstructor(cfg)

    def resolve(
        self,
        model: str,
        region: str,
        use_test_manifest: bool = False,
        progress_cb: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ManifestOutcome:
        """
        Resolve the latest firmware of a model/region.

        Args:
            model: Device model identifier (e.g. "SM-S9280").
            region: CSC/region code.
            use_test_manifest: Reconstruct test firmware from version.test.xml.
            progress_cb: Optional reconstruction progress callback(done, total).
            cancel_event: Setting it abandons a running reconstruction, which is
                then reported as a CANCELLED outcome.

        Returns:
            ManifestOutcome; failures are reported, never raised.
        """
        logger.info(
            "Resolving %s firmware for %s/%s", "test" if use_test_manifest else "stable", model, region
        )
        try:
            if use_test_manifest:
                return self._resolve_test(model, region, progress_cb, cancel_event)
            return self._resolve_stable(model, region)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = exc
            if not isinstance(exc, FOTAError):
                error = TransportFailure(f"{type(exc).__name__}: {exc}")
                error.__cause__ = exc
            logger.error("Resolution failed for %s/%s: %s", model, region, error)
            return ManifestOutcome(error=error)

    def _resolve_stable(self, model: str, region: str) -> ManifestOutcome:
        body = self.transport.fetch(model, region, test=False)
        try:
            root = parse_manifest(body)
            check_error(root)
            latest = parse_latest(root, model, region)
        except FOTAError as exc:
            logger.info("No stable firmware for %s/%s: %s", model, region, exc)
            return ManifestOutcome(error=exc, raw_output=body)
        except ValueError:
            return ManifestOutcome(error=MalformedManifest("latest", model, region), raw_output=body)

        logger.info("Latest firmware for %s/%s: %s", model, region, latest.version)
        return ManifestOutcome(
            version=latest.version,
            platform_version=latest.platform_version,
            raw_output=body,
        )

    def _calibration_version(self, model: str, region: str) -> str:
        try:
            outcome = self.resolve(model, region, use_test_manifest=False)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Reference version lookup failed for %s/%s: %s", model, region, exc)
            return ""
        if not outcome.ok:
            logger.warning(
                "No reference version for %s/%s, continuing without: %s", model, region, outcome.error
            )
            return ""
        return outcome.version_code

    def _resolve_test(
        self,
        model: str,
        region: str,
        progress_cb: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> ManifestOutcome:
        # both fetches complete before the search starts
        with concurrent.futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="fota-io") as io:
            test_future = io.submit(self.transport.fetch, model, region, True)
            ref_future = io.submit(self._calibration_version, model, region)
            reference = ref_future.result()
            try:
                body = test_future.result()
            except TransportFailure as exc:
                return ManifestOutcome(error=exc)

        try:
            root = parse_manifest(body)
            check_error(root)
        except FOTAError as exc:
            return ManifestOutcome(error=exc)
        fingerprints = parse_fingerprints(root)

        job = self.reconstructor.submit(
            model,
            region,
            fingerprints,
            reference,
            self.cfg.max_test_matches,
            cancel_event=cancel_event,
            progress_cb=progress_cb,
        )
        try:
            result = job.result()
        except BaseException:
            # interrupted while waiting, e.g. KeyboardInterrupt
            job.cancel()
            raise

        if result.error is not None:
            raw = result.error.diagnostic if isinstance(result.error, DecryptionExhausted) else ""
            return ManifestOutcome(error=result.error, raw_output=raw, reconstruction=result)

        best = result.latest_regular_update or result.versions[0]
        logger.info("Latest test firmware for %s/%s: %s", model, region, best.version_code)
        return ManifestOutcome(version=best.triplet, reconstruction=result)

    def close(self) -> None:
        """Release the reconstructor's compute executor."""
        self.reconstructor.close()

    def __enter__(self) -> "VersionResolver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
