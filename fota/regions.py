# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors
"""
Region code prefixes used to rebuild Samsung version strings.

Each region maps to the prefixes placed between the model code and the
update segment of the AP, CSC and CP components, e.g. for XAA::

    S9280 UE U1BXKV / S9280 OYM 1BXKV / S9280 UE U1BXKV

An empty CP prefix means the device has no discrete modem and the CP
component mirrors the AP.
"""

from typing import Dict, NamedTuple


class RegionCodes(NamedTuple):
    """AP, CSC and CP prefixes for one region."""

    ap_prefix: str
    csc_prefix: str
    cp_prefix: str


REGION_CODES: Dict[str, RegionCodes] = {
    "CHC": RegionCodes("ZC", "CHC", "ZC"),  # China
    "CHN": RegionCodes("ZC", "CHC", "ZC"),  # China
    "TGY": RegionCodes("ZH", "OZS", "ZC"),  # Hong Kong
    "XAA": RegionCodes("UE", "OYM", "UE"),  # USA unlocked
    "ATT": RegionCodes("SQ", "OYN", "SQ"),  # USA AT&T
    "TMB": RegionCodes("SQ", "OYN", "SQ"),  # USA T-Mobile
    "VZW": RegionCodes("SQ", "OYN", "SQ"),  # USA Verizon
    "SPR": RegionCodes("SQ", "OYN", "SQ"),  # USA Sprint
    "USC": RegionCodes("SQ", "OYN", "SQ"),  # USA US Cellular
    "KOO": RegionCodes("KS", "OKR", "KS"),  # Korea
    "TPA": RegionCodes("PA", "TPA", "PA"),  # Panama
    "EUX": RegionCodes("XX", "OXM", "XX"),  # Europe
    "INS": RegionCodes("XX", "ODM", "XX"),  # India
}

GENERIC_PREFIX = "XX"


def get_region_codes(region: str) -> RegionCodes:
    """
    Look up the version prefixes of a region.

    Args:
        region: CSC/region code, e.g. "XAA".

    Returns:
        RegionCodes from the table, or ("XX", region, "XX") for unknown regions.
    """
    codes = REGION_CODES.get(region)
    if codes is None:
        return RegionCodes(GENERIC_PREFIX, region, GENERIC_PREFIX)
    return codes
