# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors
"""
Test firmware reconstruction.

The test manifest (version.test.xml) only discloses MD5 fingerprints of
unreleased version strings. This module regenerates candidate version strings
over the vendor's encoding space, fingerprints each one and keeps those whose
fingerprint was disclosed.

The search space is the Cartesian product, outer to inner, of::

    update type (U, S) > bootloader > major letter > year > month > serial

For each serial the standard AP/CSC/CP candidate is tried, then the same
AP/CSC paired with reused baseband (CP) values, then the beta variant (major
letter "Z") and the beta variant with reused basebands.

Functions:
- derive_search_params: search bounds calibrated on a reference version.
- iter_candidates: lazy generator over the candidate space.
- categorize_versions: split matches into regular and major updates.
"""

from __future__ import annotations

import concurrent.futures
import itertools
import logging
import string
import threading
from collections import deque
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from .config import DEFAULT_CONFIG, FOTAConfig
from .errors import DecryptionExhausted, NoTestFirmwareDisclosed, ReconstructionCancelled
from .fingerprint import FingerprintFunc, fingerprint_of, normalize_fingerprints
from .regions import get_region_codes
from .versions import (
    ALPHABET,
    BETA_LETTER,
    BOOTLOADER_OFFSET,
    MAJOR_OFFSET,
    SERIAL_ALPHABET,
    YEAR_OFFSET,
    VersionTriplet,
    char_at,
    decode_year,
    month_char,
    serial_char,
    year_char,
)

MIN_YEAR = 2021
YEARS_BACK = 4
BASEBAND_CACHE_SIZE = 12
BASEBAND_PROBE_SERIALS = (1, 2)
UPDATE_TYPES = "US"
MONTHS = range(1, 13)
SERIALS = range(1, len(SERIAL_ALPHABET) + 1)

ProgressCallback = Callable[[int, int], None]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchParams:
    """Bounds of one reconstruction search.

    Attributes:
        reference_year: Year decoded from the reference version, or the current year.
        years: Years to enumerate, oldest first.
        bootloaders: Bootloader revisions to enumerate.
        update_types: Update type characters ("U" major, "S" security).
        letters: Major version letters.
    """

    reference_year: int
    years: Tuple[int, ...]
    bootloaders: str
    update_types: str = UPDATE_TYPES
    letters: str = string.ascii_uppercase

    @property
    def total_prefixes(self) -> int:
        """Number of (update type, bootloader, letter, year, month) prefixes."""
        return (
            len(self.update_types)
            * len(self.bootloaders)
            * len(self.letters)
            * len(self.years)
            * len(MONTHS)
        )


def derive_search_params(reference_version: str = "", current_year: Optional[int] = None) -> SearchParams:
    """
    Calibrate the search space on a reference (stable) version.

    Args:
        reference_version: Published version of the same model/region, may be empty.
        current_year: Fallback reference year. Defaults to today's year.

    Returns:
        SearchParams spanning [max(ref - 4, 2021), ref + 1] and the bootloader
        revisions at or after the reference's.
    """
    ap = reference_version.split("/")[0].strip()
    today = current_year if current_year is not None else date.today().year

    ref_year = None
    year_ch = char_at(ap, YEAR_OFFSET)
    if year_ch is not None:
        ref_year = decode_year(year_ch, today)
    if ref_year is None:
        ref_year = today

    start = max(ref_year - YEARS_BACK, MIN_YEAR)
    end = max(ref_year + 1, start)

    # bootloader revisions never go backwards
    bl = char_at(ap, BOOTLOADER_OFFSET)
    if bl is None or bl not in ALPHABET:
        bl = ALPHABET[0]

    return SearchParams(
        reference_year=ref_year,
        years=tuple(range(start, end + 1)),
        bootloaders=ALPHABET[ALPHABET.index(bl):],
    )


class BasebandCache:
    """Most recently matched CP values, newest first, bounded to `size` entries."""

    def __init__(self, size: int = BASEBAND_CACHE_SIZE):
        self._items: deque[str] = deque(maxlen=size)

    def add(self, cp: str) -> None:
        if cp in self._items:
            self._items.remove(cp)
        self._items.appendleft(cp)

    def __contains__(self, cp: object) -> bool:
        return cp in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)


class Candidate(NamedTuple):
    """One generated version string with the values it was built from."""

    version_code: str
    cp: str
    year: int
    month: int
    serial: int


def iter_candidates(
    model: str,
    region: str,
    params: SearchParams,
    basebands: Optional[BasebandCache] = None,
    on_prefix: Optional[ProgressCallback] = None,
) -> Iterator[Candidate]:
    """
    Lazily enumerate candidate version strings in a fixed order.

    Baseband probes are built once per prefix from serials 1 and 2 plus the
    current contents of `basebands`, so values added while iterating are
    picked up from the next prefix on.

    Args:
        model: Device model, an "SM-" prefix is stripped.
        region: Region code, selects the AP/CSC/CP prefixes.
        params: Search bounds.
        basebands: Reuse cache of matched CP values.
        on_prefix: Optional callback(done_prefixes, total_prefixes).

    Yields:
        Candidate for each string to fingerprint. Within a serial no string is
        yielded twice.
    """
    model_code = model.removeprefix("SM-")
    codes = get_region_codes(region)
    cp_prefix = codes.cp_prefix or codes.ap_prefix
    basebands = basebands if basebands is not None else BasebandCache()
    total = params.total_prefixes

    prefixes = itertools.product(
        params.update_types, params.bootloaders, params.letters, params.years, MONTHS
    )
    for done, (update, bl, letter, year, month) in enumerate(prefixes):
        if on_prefix is not None:
            on_prefix(done, total)
        date_code = year_char(year) + month_char(month)

        probes: List[str] = []
        for serial in BASEBAND_PROBE_SERIALS:
            probe = f"{model_code}{cp_prefix}{update}{bl}{letter}{date_code}{serial_char(serial)}"
            if probe not in probes:
                probes.append(probe)
        for cp in basebands:
            if cp not in probes:
                probes.append(cp)

        variants = (letter,) if letter == BETA_LETTER else (letter, BETA_LETTER)
        for serial in SERIALS:
            tail = date_code + serial_char(serial)
            for major in variants:
                ap = f"{model_code}{codes.ap_prefix}{update}{bl}{major}{tail}"
                csc = f"{model_code}{codes.csc_prefix}{bl}{major}{tail}"
                cp = f"{model_code}{cp_prefix}{update}{bl}{major}{tail}"
                yield Candidate(f"{ap}/{csc}/{cp}", cp, year, month, serial)
                for probe in probes:
                    if probe != cp:
                        yield Candidate(f"{ap}/{csc}/{probe}", probe, year, month, serial)

    if on_prefix is not None:
        on_prefix(total, total)


@dataclass(frozen=True)
class CandidateVersion:
    """A reconstructed test firmware version.

    Attributes:
        version_code: Full "AP/CSC/CP" string.
        fingerprint: Disclosed fingerprint it matched.
        year: Four-digit build year.
        month: Build month (1..12).
        serial: Build serial within the month.
    """

    version_code: str
    fingerprint: str
    year: int
    month: int
    serial: int

    @property
    def triplet(self) -> VersionTriplet:
        return VersionTriplet.parse(self.version_code)


def _latest(versions: Iterable[CandidateVersion]) -> Optional[CandidateVersion]:
    # plain string comparison, e.g. "...A9..." sorts after "...A19..."
    return max(versions, key=lambda v: v.version_code, default=None)


@dataclass(frozen=True)
class ReconstructionResult:
    """Outcome of one reconstruction.

    Attributes:
        versions: Every match, in search order.
        regular: Matches that are regular (security/maintenance) updates.
        major: Matches whose major letter is ahead of the reference's.
        coverage: Matches divided by the number of distinct disclosed fingerprints.
        error: Terminal error, None on success.
        model: Device model searched.
        region: Region searched.
        reference_version: Reference version used for calibration, may be empty.
        disclosed_count: Number of distinct disclosed fingerprints.
    """

    versions: Tuple[CandidateVersion, ...] = ()
    regular: Tuple[CandidateVersion, ...] = ()
    major: Tuple[CandidateVersion, ...] = ()
    coverage: float = 0.0
    error: Optional[Exception] = None
    model: str = ""
    region: str = ""
    reference_version: str = ""
    disclosed_count: int = 0

    @property
    def latest_regular_update(self) -> Optional[CandidateVersion]:
        return _latest(self.regular)

    @property
    def latest_major_update(self) -> Optional[CandidateVersion]:
        return _latest(self.major)

    @property
    def percentage(self) -> float:
        return self.coverage * 100.0


def categorize_versions(
    versions: Iterable[CandidateVersion], reference_version: str
) -> Tuple[List[CandidateVersion], List[CandidateVersion]]:
    """
    Separate regular updates from major version updates.

    A version is major when the major letter of its AP is strictly greater
    than the reference's. Without a usable reference every version is regular.

    Args:
        versions: Matched versions.
        reference_version: Reference version, may be empty.

    Returns:
        (regular, major) lists, preserving input order.
    """
    versions = list(versions)
    ref_char = char_at(reference_version.split("/")[0], MAJOR_OFFSET)
    if ref_char is None:
        return versions, []

    regular: List[CandidateVersion] = []
    major: List[CandidateVersion] = []
    for v in versions:
        ch = char_at(v.version_code.split("/")[0], MAJOR_OFFSET)
        if ch is not None and ch > ref_char:
            major.append(v)
        else:
            regular.append(v)
    return regular, major


class ReconstructionJob:
    """Handle on a reconstruction running on a worker thread.

    Args:
        future: Future of the running reconstruction.
        cancel_event: Event polled by the search between candidates.
    """

    def __init__(self, future: concurrent.futures.Future, cancel_event: threading.Event):
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the search to stop; it finishes with ReconstructionCancelled."""
        self._cancel_event.set()
        self._future.cancel()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> ReconstructionResult:
        """
        Wait for the reconstruction.

        Args:
            timeout: Seconds to wait, None waits forever.

        Returns:
            ReconstructionResult, with ReconstructionCancelled as error if the
            job was cancelled before it started.

        Raises:
            concurrent.futures.TimeoutError: If the timeout expires.
        """
        try:
            return self._future.result(timeout)
        except concurrent.futures.CancelledError:
            return ReconstructionResult(error=ReconstructionCancelled())


class TestFirmwareReconstructor:
    """
    Brute-force reconstruction of test firmware versions.

    Args:
        cfg: FOTA configuration settings. Defaults to DEFAULT_CONFIG.
        fingerprint: Fingerprint function, MD5 hex by default.
        current_year: Fallback reference year. Defaults to today's year.
    """

    __test__ = False  # not a pytest class

    def __init__(
        self,
        cfg: FOTAConfig = DEFAULT_CONFIG,
        fingerprint: FingerprintFunc = fingerprint_of,
        current_year: Optional[int] = None,
    ):
        self.cfg = cfg
        self.fingerprint = fingerprint
        self.current_year = current_year
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def reconstruct(
        self,
        model: str,
        region: str,
        disclosed: Iterable[str],
        reference_version: str = "",
        max_matches: Optional[int] = None,
        *,
        params: Optional[SearchParams] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> ReconstructionResult:
        """
        Reconstruct the versions behind a set of disclosed fingerprints.

        Args:
            model: Device model identifier (e.g. "SM-S9280").
            region: CSC/region code.
            disclosed: Disclosed fingerprints from the test manifest.
            reference_version: Stable version used to calibrate and categorize, may be empty.
            max_matches: Stop after this many matches. Defaults to cfg.max_test_matches.
            params: Explicit search bounds instead of derive_search_params().
            cancel_event: Checked before each candidate; setting it aborts the search.
            progress_cb: Optional callback(done_prefixes, total_prefixes).

        Returns:
            ReconstructionResult. On error it carries no versions.

        Raises:
            ValueError: If max_matches is lower than 1.
        """
        limit = self.cfg.max_test_matches if max_matches is None else max_matches
        if limit < 1:
            raise ValueError(f"max_matches must be at least 1 (got {limit})")

        fingerprints = normalize_fingerprints(disclosed)
        context = dict(
            model=model,
            region=region,
            reference_version=reference_version,
            disclosed_count=len(fingerprints),
        )
        if not fingerprints:
            return ReconstructionResult(error=NoTestFirmwareDisclosed(model, region), **context)

        if params is None:
            params = derive_search_params(reference_version, self.current_year)
        logger.info(
            "Reconstructing test firmware for %s/%s: %d fingerprints, reference=%s",
            model,
            region,
            len(fingerprints),
            reference_version or "none",
        )
        logger.debug(
            "Search params: years=%s, bootloaders=%s, max_matches=%d",
            params.years,
            params.bootloaders,
            limit,
        )

        try:
            versions = self._search(model, region, fingerprints, params, limit, cancel_event, progress_cb)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Reconstruction for %s/%s aborted: %s", model, region, exc)
            return ReconstructionResult(error=exc, **context)

        if not versions:
            error = DecryptionExhausted(model, region, len(fingerprints), reference_version)
            logger.info("%s", error.diagnostic)
            return ReconstructionResult(error=error, **context)

        regular, major = categorize_versions(versions, reference_version)
        logger.info(
            "Reconstructed %d/%d test versions for %s/%s (%d regular, %d major)",
            len(versions),
            len(fingerprints),
            model,
            region,
            len(regular),
            len(major),
        )
        return ReconstructionResult(
            versions=tuple(versions),
            regular=tuple(regular),
            major=tuple(major),
            coverage=len(versions) / len(fingerprints),
            **context,
        )

    def _search(
        self,
        model: str,
        region: str,
        fingerprints: frozenset[str],
        params: SearchParams,
        limit: int,
        cancel_event: Optional[threading.Event],
        progress_cb: Optional[ProgressCallback],
    ) -> List[CandidateVersion]:
        found: List[CandidateVersion] = []
        remaining = set(fingerprints)
        basebands = BasebandCache()

        for cand in iter_candidates(model, region, params, basebands, progress_cb):
            if cancel_event is not None and cancel_event.is_set():
                raise ReconstructionCancelled()
            digest = self.fingerprint(cand.version_code)
            if digest not in remaining:
                continue
            remaining.discard(digest)
            found.append(
                CandidateVersion(cand.version_code, digest, cand.year, cand.month, cand.serial)
            )
            logger.debug("Matched %s", cand.version_code)
            basebands.add(cand.cp)
            if len(found) >= limit or not remaining:
                break
        return found

    def submit(
        self,
        model: str,
        region: str,
        disclosed: Iterable[str],
        reference_version: str = "",
        max_matches: Optional[int] = None,
        *,
        params: Optional[SearchParams] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> ReconstructionJob:
        """
        Run reconstruct() on the compute executor.

        Arguments are those of reconstruct(). The disclosed fingerprints are
        materialized before the job starts. A cancel_event supplied by the
        caller is shared with the job, so setting it has the effect of
        job.cancel().

        Returns:
            ReconstructionJob to wait on or cancel.
        """
        if cancel_event is None:
            cancel_event = threading.Event()
        future = self._get_executor().submit(
            self.reconstruct,
            model,
            region,
            frozenset(disclosed),
            reference_version,
            max_matches,
            params=params,
            cancel_event=cancel_event,
            progress_cb=progress_cb,
        )
        return ReconstructionJob(future, cancel_event)

    def _get_executor(self) -> concurrent.futures.ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.cfg.compute_workers, thread_name_prefix="fota-search"
                )
            return self._executor

    def close(self) -> None:
        """Shut down the compute executor, waiting for running jobs."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "TestFirmwareReconstructor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
