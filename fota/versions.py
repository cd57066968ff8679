# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Vladislav Tislenko (keklick1337)
# Copyright (c) 2025 nanosamfw contributors

"""
Firmware version strings for Samsung FOTA.

Provides the canonical AP/CSC/CP triplet, the character codecs used by the
vendor's version encoding, and helpers to decode an AP string into meaningful
fields (update type, bootloader, major letter, year, month, serial).

The trailing six characters of an AP string are, left to right::

    U 1 B X K V
    | | | | | +-- serial   (1..9, A..Z)
    | | | | +---- month    (A = January .. L = December)
    | | | +------ year     (R = 2018 .. Z = 2026, then A = 2027 again)
    | | +-------- major    (A, B, ..., Z = beta)
    | +---------- bootloader revision (0..9, A..Z)
    +------------ update type (U = major upgrade, S = security)

Functions:
- normalize_vercode: Normalize a version code to a 3-part representation.
- decode_ap: Extract structured fields from an AP string.
- read_firmware_info: Return parsed firmware fields as a dictionary.
- format_firmware_info: Produce a human-readable summary.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from datetime import date
from typing import NamedTuple, Optional

# Bootloader, major letter and serial symbols
ALPHABET: str = string.digits + string.ascii_uppercase
SERIAL_ALPHABET: str = ALPHABET[1:]
BETA_LETTER: str = "Z"

# Year letters count from 'A' = 2001, so 'R' = 2018 and 'X' = 2024
_YEAR_BASE = 2001
YEAR_CYCLE = len(string.ascii_uppercase)

# Offsets counted from the end of an AP string
UPDATE_TYPE_OFFSET = -6
BOOTLOADER_OFFSET = -5
MAJOR_OFFSET = -4
YEAR_OFFSET = -3
MONTH_OFFSET = -2
SERIAL_OFFSET = -1


@dataclass(frozen=True)
class VersionTriplet:
    """Canonical AP/CSC/CP firmware version.

    Attributes:
        ap: Application processor (PDA) version.
        csc: Carrier/region customization version.
        cp: Modem (baseband) version.
    """

    ap: str
    csc: str
    cp: str

    def __post_init__(self):
        if not (self.ap and self.csc and self.cp):
            raise ValueError(f"incomplete firmware version: {self.ap}/{self.csc}/{self.cp}")

    @classmethod
    def parse(cls, vercode: str) -> "VersionTriplet":
        """
        Build a triplet from a 1- to 4-part version code.

        Missing or empty CSC and CP components are filled with the AP, and a
        trailing fourth (PDA) component is dropped.

        Args:
            vercode: Firmware version string, e.g. "S9280ZCU4BXKV/S9280CHC4BXKV/".

        Returns:
            VersionTriplet with three non-empty components.

        Raises:
            ValueError: If the AP component is empty.
        """
        parts = vercode.strip().split("/")
        ap = parts[0]
        if not ap:
            raise ValueError(f"missing AP component in {vercode!r}")
        parts = (parts + [""] * 3)[:3]
        csc = parts[1] or ap
        cp = parts[2] or ap
        return cls(ap, csc, cp)

    def __str__(self) -> str:
        return f"{self.ap}/{self.csc}/{self.cp}"


def normalize_vercode(vercode: str) -> str:
    """
    Normalize a firmware version code to exactly 3 parts.

    Args:
        vercode: Firmware version string, e.g. "G900FXXU1ANE2" or "A/B/".

    Returns:
        A normalized 3-part version string separated by '/'.
    """
    return str(VersionTriplet.parse(vercode))


def year_char(year: int) -> str:
    """Encode a four-digit year as its version letter; letters restart at 'A' after 'Z' (2026)."""
    return string.ascii_uppercase[(year - _YEAR_BASE) % YEAR_CYCLE]


def decode_year(ch: str, pivot: Optional[int] = None) -> Optional[int]:
    """
    Decode a version year letter.

    Letters repeat every 26 years. Without a pivot the letter decodes into
    2001..2026; with one it decodes into the 26-year window centered on it.

    Args:
        ch: Year letter.
        pivot: Year the result should be closest to, typically today's year.

    Returns:
        Four-digit year, or None if `ch` is not an uppercase letter.
    """
    if len(ch) != 1 or ch not in string.ascii_uppercase:
        return None
    year = _YEAR_BASE + ord(ch) - ord("A")
    if pivot is None:
        return year
    low = pivot - YEAR_CYCLE // 2
    return low + (year - low) % YEAR_CYCLE


def month_char(month: int) -> str:
    """Encode a 1-based month as its version letter (1 -> 'A', 12 -> 'L')."""
    return chr(ord("A") + month - 1)


def decode_month(ch: str) -> Optional[int]:
    """Decode a version month letter into 1..12, or None."""
    if len(ch) != 1 or ch not in string.ascii_uppercase[:12]:
        return None
    return ord(ch) - ord("A") + 1


def serial_char(serial: int) -> str:
    """Encode a 1-based serial (1 -> '1', 10 -> 'A', 35 -> 'Z')."""
    return ALPHABET[serial]


def decode_serial(ch: str) -> Optional[int]:
    """Decode a serial symbol into its 1-based index, or None."""
    if len(ch) != 1 or ch not in SERIAL_ALPHABET:
        return None
    return ALPHABET.index(ch)


def char_at(ap: str, offset: int) -> Optional[str]:
    """Return the character at a negative offset of `ap`, or None if too short."""
    if len(ap) < -offset:
        return None
    return ap[offset]


class APFields(NamedTuple):
    """Fields decoded from an AP version string. Undecodable fields are None."""

    update_type: Optional[str]
    bootloader: Optional[str]
    major: Optional[str]
    year: Optional[int]
    month: Optional[int]
    serial: Optional[int]


def decode_ap(ap: str) -> APFields:
    """
    Extract firmware metadata from an AP version string.

    Args:
        ap: AP component, or a full version code (only the AP part is used).

    Returns:
        APFields with every field the string allows to decode.
    """
    ap = ap.split("/")[0]

    update_type = char_at(ap, UPDATE_TYPE_OFFSET)
    if update_type not in ("U", "S"):
        update_type = None
    bootloader = char_at(ap, BOOTLOADER_OFFSET)
    if bootloader is not None and bootloader not in ALPHABET:
        bootloader = None
    major = char_at(ap, MAJOR_OFFSET)
    if major is not None and major not in string.ascii_uppercase:
        major = None

    year_ch = char_at(ap, YEAR_OFFSET)
    month_ch = char_at(ap, MONTH_OFFSET)
    serial_ch = char_at(ap, SERIAL_OFFSET)
    return APFields(
        update_type=update_type,
        bootloader=bootloader,
        major=major,
        year=decode_year(year_ch, date.today().year) if year_ch else None,
        month=decode_month(month_ch) if month_ch else None,
        serial=decode_serial(serial_ch) if serial_ch else None,
    )


def read_firmware_info(firmware: str) -> dict:
    """
    Return parsed firmware information as a dictionary.

    Args:
        firmware: Samsung firmware version or AP string.

    Returns:
        Dictionary with keys:
            - "bl": update type and bootloader (e.g. "U1") or None
            - "date": formatted "YYYY.MM" string, or None
            - "it": iteration string "major.serial" (major "Z" is a beta build)
    """
    ff = decode_ap(firmware)
    bl = f"{ff.update_type}{ff.bootloader}" if ff.update_type and ff.bootloader else None
    built = f"{ff.year}.{ff.month:02d}" if ff.year and ff.month else None
    return {"bl": bl, "date": built, "it": f"{ff.major or '?'}.{ff.serial or 0}"}


def format_firmware_info(firmware: str) -> str:
    """
    Produce a human-readable summary of firmware information.

    Args:
        firmware: Samsung firmware version or AP string.

    Returns:
        A multi-line string with normalized firmware, bootloader (if any),
        date (YYYY.MM) and version iteration.

    Raises:
        ValueError: If the firmware string has no AP component.
    """
    info = read_firmware_info(firmware)
    norm_fw = normalize_vercode(firmware)

    result = f"Firmware: {norm_fw}\n"
    if info["bl"]:
        result += f"Bootloader type: {info['bl']}\n"
    if info["date"]:
        result += f"Date: {info['date']} (YYYY.MM)\n"
    result += f"Version iteration: {info['it']}"
    if info["it"].startswith(BETA_LETTER):
        result += " (beta)"
    return result
