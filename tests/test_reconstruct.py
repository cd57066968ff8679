import re
import threading

import pytest

from fota.errors import DecryptionExhausted, NoTestFirmwareDisclosed, ReconstructionCancelled
from fota.fingerprint import fingerprint_of
from fota.reconstruct import (
    BasebandCache,
    CandidateVersion,
    ReconstructionResult,
    SearchParams,
    TestFirmwareReconstructor,
    categorize_versions,
    derive_search_params,
    iter_candidates,
)
from fota.versions import ALPHABET

SCENARIO_A = "S9280UEU1BXKV/S9280OYM1BXKV/S9280UEU1BXKV"

# U, bootloader 1, letters A/B, 2024 only
SMALL = SearchParams(reference_year=2024, years=(2024,), bootloaders="1", update_types="U", letters="AB")


def _candidate(version_code: str) -> CandidateVersion:
    return CandidateVersion(version_code, fingerprint_of(version_code), 2024, 1, 1)


def test_scenario_a_single_match_without_reference(reconstructor):
    result = reconstructor.reconstruct("SM-S9280", "XAA", {fingerprint_of(SCENARIO_A)}, "")

    assert result.error is None
    assert [v.version_code for v in result.versions] == [SCENARIO_A]
    assert result.regular == result.versions
    assert result.major == ()
    assert result.coverage == 1.0
    assert result.percentage == 100.0
    match = result.versions[0]
    assert (match.year, match.month, match.serial) == (2024, 11, 31)
    assert match.fingerprint == fingerprint_of(SCENARIO_A)
    assert result.latest_regular_update == match
    assert result.latest_major_update is None


def test_scenario_b_empty_disclosed_set(reconstructor):
    result = reconstructor.reconstruct("SM-S9280", "XAA", set(), "")

    assert isinstance(result.error, NoTestFirmwareDisclosed)
    assert result.versions == ()
    assert result.coverage == 0.0


def test_blank_fingerprints_count_as_empty(reconstructor):
    result = reconstructor.reconstruct("SM-S9280", "XAA", ["", "  "], "")
    assert isinstance(result.error, NoTestFirmwareDisclosed)


def test_scenario_c_unknown_region_uses_generic_prefixes():
    params = SearchParams(reference_year=2021, years=(2021,), bootloaders="0", update_types="U", letters="A")
    first = next(iter_candidates("SM-A5560", "ZZZ", params))
    assert first.version_code == "A5560XXU0AUA1/A5560ZZZ0AUA1/A5560XXU0AUA1"


def test_fingerprints_are_case_and_whitespace_insensitive(reconstructor):
    disclosed = {f"  {fingerprint_of(SCENARIO_A).upper()}\n"}
    result = reconstructor.reconstruct("SM-S9280", "XAA", disclosed, "", params=SMALL)
    assert [v.version_code for v in result.versions] == [SCENARIO_A]


def test_determinism(reconstructor):
    wanted = [
        "S9280UEU1AXA3/S9280OYM1AXA3/S9280UEU1AXA3",
        "S9280UEU1BXC7/S9280OYM1BXC7/S9280UEU1BXC7",
    ]
    disclosed = {fingerprint_of(v) for v in wanted}

    first = reconstructor.reconstruct("SM-S9280", "XAA", disclosed, "", params=SMALL)
    second = reconstructor.reconstruct("SM-S9280", "XAA", set(disclosed), "", params=SMALL)

    assert first == second
    assert [v.version_code for v in first.versions] == wanted


def test_soundness_every_match_was_disclosed(reconstructor):
    disclosed = {
        fingerprint_of("S9280UEU1AXA3/S9280OYM1AXA3/S9280UEU1AXA3"),
        fingerprint_of("S9280UEU1BXL9/S9280OYM1BXL9/S9280UEU1BXL9"),
        "0" * 32,
    }
    result = reconstructor.reconstruct("SM-S9280", "XAA", disclosed, "", params=SMALL)

    assert len(result.versions) == 2
    assert all(v.fingerprint in disclosed for v in result.versions)
    assert result.coverage == pytest.approx(2 / 3)


def test_match_cap_halts_search():
    calls = 0

    def counting(text: str) -> str:
        nonlocal calls
        calls += 1
        return fingerprint_of(text)

    disclosed = {
        fingerprint_of("S9280UEU1AXB2/S9280OYM1AXB2/S9280UEU1AXB2"),
        fingerprint_of("S9280UEU1BXL9/S9280OYM1BXL9/S9280UEU1BXL9"),
    }
    full_space = sum(1 for _ in iter_candidates("SM-S9280", "XAA", SMALL))

    r = TestFirmwareReconstructor(fingerprint=counting)
    result = r.reconstruct("SM-S9280", "XAA", disclosed, "", max_matches=1, params=SMALL)

    assert [v.version_code for v in result.versions] == ["S9280UEU1AXB2/S9280OYM1AXB2/S9280UEU1AXB2"]
    assert calls < full_space
    assert result.coverage == 0.5


def test_max_matches_must_be_positive(reconstructor):
    with pytest.raises(ValueError):
        reconstructor.reconstruct("SM-S9280", "XAA", {"ab"}, "", max_matches=0)


def test_baseband_probe_pairs_older_serial_cp(reconstructor):
    version = "S9280UEU1AXA7/S9280OYM1AXA7/S9280UEU1AXA1"
    result = reconstructor.reconstruct("SM-S9280", "XAA", {fingerprint_of(version)}, "", params=SMALL)
    assert [v.version_code for v in result.versions] == [version]


def test_baseband_reuse_of_previously_matched_cp(reconstructor):
    older = "S9280UEU1AXA3/S9280OYM1AXA3/S9280UEU1AXA3"
    reused = "S9280UEU1BXB5/S9280OYM1BXB5/S9280UEU1AXA3"

    result = reconstructor.reconstruct(
        "SM-S9280", "XAA", {fingerprint_of(older), fingerprint_of(reused)}, "", params=SMALL
    )
    assert [v.version_code for v in result.versions] == [older, reused]

    # without the older match its CP is never offered again
    alone = reconstructor.reconstruct("SM-S9280", "XAA", {fingerprint_of(reused)}, "", params=SMALL)
    assert isinstance(alone.error, DecryptionExhausted)


def test_beta_variant_is_found_and_major(reconstructor):
    beta = "S9280UEU1ZXA4/S9280OYM1ZXA4/S9280UEU1ZXA4"
    params = SearchParams(reference_year=2024, years=(2024,), bootloaders="1", update_types="U", letters="A")

    result = reconstructor.reconstruct(
        "SM-S9280", "XAA", {fingerprint_of(beta)}, "S9280UEU1BXKV/S9280OYM1BXKV/S9280UEU1BXKV", params=params
    )
    assert [v.version_code for v in result.versions] == [beta]
    assert result.major == result.versions
    assert result.regular == ()


def test_candidates_are_unique_for_a_single_letter():
    params = SearchParams(reference_year=2024, years=(2024,), bootloaders="1", update_types="U", letters="A")
    cache = BasebandCache()
    cache.add("S9280UEU1AXA1")  # same as a probe, must not duplicate
    seen = set()
    for cand in iter_candidates("SM-S9280", "XAA", params, cache):
        key = cand.version_code
        assert key not in seen
        seen.add(key)


def test_exhausted_search_reports_diagnostic(reconstructor):
    result = reconstructor.reconstruct("SM-S9280", "XAA", {"0" * 32}, "", params=SMALL)

    assert isinstance(result.error, DecryptionExhausted)
    assert result.versions == ()
    assert result.coverage == 0.0
    diag = result.error.diagnostic
    assert "Found 1 encrypted firmware entries" in diag
    assert "SM-S9280" in diag and "XAA" in diag
    assert "not available" in diag


def test_unexpected_failure_discards_partial_matches():
    first = "S9280UEU1AXA1/S9280OYM1AXA1/S9280UEU1AXA1"
    calls = 0

    def flaky(text: str) -> str:
        nonlocal calls
        calls += 1
        if calls > 10:
            raise RuntimeError("boom")
        return fingerprint_of(text)

    r = TestFirmwareReconstructor(fingerprint=flaky)
    result = r.reconstruct("SM-S9280", "XAA", {fingerprint_of(first), "0" * 32}, "", params=SMALL)

    assert isinstance(result.error, RuntimeError)
    assert result.versions == ()


def test_cancel_event_aborts(reconstructor):
    event = threading.Event()
    event.set()
    result = reconstructor.reconstruct("SM-S9280", "XAA", {"0" * 32}, "", params=SMALL, cancel_event=event)

    assert isinstance(result.error, ReconstructionCancelled)
    assert result.versions == ()


def test_submitted_job_can_be_cancelled(reconstructor):
    job = reconstructor.submit("SM-S9280", "XAA", {"0" * 32}, "")
    job.cancel()
    result = job.result(timeout=60)

    assert isinstance(result.error, ReconstructionCancelled)
    assert job.done()


def test_submit_shares_caller_cancel_event(reconstructor):
    event = threading.Event()
    event.set()
    job = reconstructor.submit("SM-S9280", "XAA", {"0" * 32}, "", params=SMALL, cancel_event=event)

    assert isinstance(job.result(timeout=60).error, ReconstructionCancelled)


def test_submitted_job_returns_result(reconstructor):
    job = reconstructor.submit("SM-S9280", "XAA", [fingerprint_of(SCENARIO_A)], "", params=SMALL)
    result = job.result(timeout=60)
    assert [v.version_code for v in result.versions] == [SCENARIO_A]


def test_progress_callback_reports_prefixes(reconstructor):
    seen = []
    reconstructor.reconstruct(
        "SM-S9280", "XAA", {"0" * 32}, "", params=SMALL, progress_cb=lambda d, t: seen.append((d, t))
    )
    assert seen[0] == (0, SMALL.total_prefixes)
    assert seen[-1] == (SMALL.total_prefixes, SMALL.total_prefixes)
    assert SMALL.total_prefixes == 1 * 1 * 2 * 1 * 12


def test_derive_search_params_from_reference():
    params = derive_search_params("S9280UEU1BXKV/S9280OYM1BXKV/S9280UEU1BXKV", current_year=2030)

    assert params.reference_year == 2024
    assert params.years == (2021, 2022, 2023, 2024, 2025)
    assert params.bootloaders == ALPHABET[1:]


def test_derive_search_params_defaults():
    params = derive_search_params("", current_year=2026)

    assert params.reference_year == 2026
    assert params.years == (2022, 2023, 2024, 2025, 2026, 2027)
    assert params.bootloaders == ALPHABET


def test_derive_search_params_undecodable_reference():
    params = derive_search_params("S9280UEU1B1KV", current_year=2025)

    assert params.reference_year == 2025
    assert params.bootloaders == ALPHABET[1:]


def test_derive_search_params_past_the_last_year_letter():
    params = derive_search_params("S9280UEU1BZKV/S9280OYM1BZKV/S9280UEU1BZKV", current_year=2026)

    assert params.reference_year == 2026
    assert params.years == (2022, 2023, 2024, 2025, 2026, 2027)


def test_derive_search_params_reference_after_wrap():
    params = derive_search_params("S9280UEU1BAC3/S9280OYM1BAC3/S9280UEU1BAC3", current_year=2027)

    assert params.reference_year == 2027
    assert params.years == (2023, 2024, 2025, 2026, 2027, 2028)


def test_candidates_stay_alphanumeric_across_year_wrap():
    params = SearchParams(
        reference_year=2026, years=(2022, 2023, 2024, 2025, 2026, 2027), bootloaders="1", update_types="U", letters="A"
    )
    valid = re.compile(r"[0-9A-Z/]+")
    year_letters = set()
    for cand in iter_candidates("SM-S9280", "XAA", params):
        assert valid.fullmatch(cand.version_code), cand.version_code
        year_letters.add(cand.version_code[10])

    assert year_letters == set("VWXYZA")


def test_baseband_cache_is_bounded_and_newest_first():
    cache = BasebandCache(size=3)
    for cp in ["a", "b", "c", "d"]:
        cache.add(cp)

    assert list(cache) == ["d", "c", "b"]
    assert len(cache) == 3
    assert "a" not in cache


def test_baseband_cache_moves_repeat_match_to_front():
    cache = BasebandCache(size=3)
    for cp in ["a", "b", "c", "a", "d"]:
        cache.add(cp)

    # "a" matched again after "b", so "b" is the oldest and is evicted
    assert list(cache) == ["d", "a", "c"]
    assert "b" not in cache


def test_categorize_partition():
    versions = [
        _candidate("S9280UEU1AXA1/S9280OYM1AXA1/S9280UEU1AXA1"),
        _candidate("S9280UEU1BXA1/S9280OYM1BXA1/S9280UEU1BXA1"),
        _candidate("S9280UEU1CXA1/S9280OYM1CXA1/S9280UEU1CXA1"),
        _candidate("S9280UEU1ZXA1/S9280OYM1ZXA1/S9280UEU1ZXA1"),
    ]
    regular, major = categorize_versions(versions, "S9280UEU1BXKV/S9280OYM1BXKV/S9280UEU1BXKV")

    assert [v.version_code[9] for v in regular] == ["A", "B"]
    assert [v.version_code[9] for v in major] == ["C", "Z"]
    assert set(regular) | set(major) == set(versions)
    assert not set(regular) & set(major)


@pytest.mark.parametrize("reference", ["", "ABC", "ABC/DEF/GHI"])
def test_categorize_without_usable_reference(reference):
    versions = [_candidate("S9280UEU1CXA1/S9280OYM1CXA1/S9280UEU1CXA1")]
    assert categorize_versions(versions, reference) == (versions, [])


def test_latest_update_uses_string_order():
    nineteen = _candidate("S9280UEU1A19/S9280OYM1A19/S9280UEU1A19")
    nine = _candidate("S9280UEU1A9/S9280OYM1A9/S9280UEU1A9")
    result = ReconstructionResult(versions=(nineteen, nine), regular=(nineteen, nine))

    # "...A9" sorts after "...A19" although 19 > 9
    assert result.latest_regular_update == nine
