# SPDX-License-Identifier: MIT
# Copyright (c) 2025 nanosamfw contributors

"""Command-line front end for FOTA version lookups.

Usage:
    python -m fota check -m SM-S9280 -r CHC
    python -m fota check -m SM-S9280 -r CHC --test --max-matches 20
    python -m fota decode S9280ZCU4BXKV/S9280CHC4BXKV/S9280ZCU4BXKV
    python -m fota regions
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import threading
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .config import DEFAULT_CONFIG, load_config
from .regions import REGION_CODES
from .resolver import ManifestOutcome, VersionResolver
from .versions import format_firmware_info

VERSION = "0.1.0"


class FOTAApp:
    """
    CLI application class for nanofota.
    Parses arguments and dispatches to check, decode or regions.
    """

    def __init__(self) -> None:
        self.parser = argparse.ArgumentParser(
            prog="nanofota", description="Resolve Samsung stable and test firmware versions"
        )
        self._setup_args()

    def _setup_args(self) -> None:
        """Define command-line arguments and subcommands."""
        p = self.parser
        p.add_argument("-c", "--config", type=Path, help="config.toml with a [fota] table")
        p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
        p.add_argument("--version", action="version", version=f"nanofota {VERSION}")

        subs = p.add_subparsers(dest="command", required=True)
        # check
        chk = subs.add_parser("check", help="print latest available firmware version")
        chk.add_argument("-m", "--dev-model", required=True, help="device model")
        chk.add_argument("-r", "--dev-region", required=True, help="device region code")
        chk.add_argument(
            "-t", "--test", action="store_true", help="reconstruct test firmware from version.test.xml"
        )
        chk.add_argument("-n", "--max-matches", type=int, help="stop after this many test versions")
        chk.add_argument("--raw", action="store_true", help="print the raw manifest / diagnostics")

        # decode
        dec = subs.add_parser("decode", help="explain a firmware version string")
        dec.add_argument("fw_ver", help="firmware version, e.g. S9280ZCU4BXKV/S9280CHC4BXKV/")

        # regions
        subs.add_parser("regions", help="list known region prefixes")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """
        Entry point: parse args and invoke the appropriate workflow.

        :return: exit code (0 on success)
        """
        args = self.parser.parse_args(argv)
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        if args.command == "decode":
            try:
                print(format_firmware_info(args.fw_ver))
            except ValueError as e:
                print(f"Could not parse firmware version: {e}")
                return 1
            return 0

        if args.command == "regions":
            for region, codes in sorted(REGION_CODES.items()):
                print(f"{region}: AP={codes.ap_prefix} CSC={codes.csc_prefix} CP={codes.cp_prefix or '-'}")
            return 0

        cfg = load_config(args.config) if args.config else DEFAULT_CONFIG
        if args.max_matches is not None:
            cfg = dataclasses.replace(cfg, max_test_matches=args.max_matches)

        resolver = VersionResolver(cfg)
        cancel = threading.Event()
        pbar: Optional[tqdm] = None

        def progress(done: int, total: int) -> None:
            nonlocal pbar
            if pbar is None:
                pbar = tqdm(total=total, unit="prefix", desc="Searching", leave=False)
            pbar.update(done - pbar.n)

        try:
            outcome = resolver.resolve(
                args.dev_model,
                args.dev_region,
                args.test,
                progress_cb=progress if args.test else None,
                cancel_event=cancel,
            )
        except KeyboardInterrupt:
            # stop the search so close() does not wait for it
            cancel.set()
            print("Interrupted")
            return 130
        finally:
            if pbar is not None:
                pbar.close()
            resolver.close()

        return self._report(outcome, args.raw)

    @staticmethod
    def _report(outcome: ManifestOutcome, raw: bool) -> int:
        if not outcome.ok:
            print(f"Error ({outcome.kind.value}): {outcome.error}")
            if outcome.raw_output and (raw or outcome.reconstruction is not None):
                print(outcome.raw_output)
            return 1

        print(outcome.version_code)
        if outcome.platform_version:
            print(f"Android: {outcome.platform_version}")

        result = outcome.reconstruction
        if result is not None:
            print(f"Decrypted {len(result.versions)}/{result.disclosed_count} ({result.percentage:.1f}%)")
            for v in result.versions:
                tag = "major" if v in result.major else "regular"
                print(f"  {v.version_code}  {v.year}-{v.month:02d} #{v.serial} [{tag}]")
            if result.latest_major_update is not None:
                print(f"Latest major update: {result.latest_major_update.version_code}")
        elif raw:
            print(outcome.raw_output)
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    return FOTAApp().run(argv)
