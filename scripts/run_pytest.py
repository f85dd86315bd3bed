#!/usr/bin/env python3
"""Run the provsign test suite.

Usage:
    python scripts/run_pytest.py            # all tests
    python scripts/run_pytest.py --unit     # skip the GnuPG round-trip tests
    python scripts/run_pytest.py --gpg      # only the GnuPG round-trip tests

The GnuPG tests need a `gpg` binary (PROVSIGN_GPG_BINARY, default `gpg`)
on PATH; without one they are reported here and skipped by pytest.
"""

from __future__ import annotations

import argparse
import os
import shutil
import subprocess
import sys

GPG_TESTS = "tests/test_gpg_integration.py"


def build_command(unit: bool, gpg_only: bool, extra: list[str]) -> list[str]:
    """Assemble the pytest command line."""
    cmd = [sys.executable, "-m", "pytest", "--tb=short", "--strict-markers"]
    if gpg_only:
        cmd.append(GPG_TESTS)
    else:
        cmd.append("tests/")
        if unit:
            cmd.extend(["--ignore", GPG_TESTS])
    return cmd + extra


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--unit", action="store_true", help="skip GnuPG round-trip tests")
    group.add_argument("--gpg", action="store_true", help="run only GnuPG round-trip tests")
    args, extra = parser.parse_known_args()

    if sys.version_info < (3, 10):
        print("provsign tests require Python 3.10+; skipping.")
        return 0

    if not args.unit:
        gpg = os.environ.get("PROVSIGN_GPG_BINARY", "gpg")
        if shutil.which(gpg) is None:
            print(f"'{gpg}' not found on PATH: GnuPG round-trip tests will be skipped.")
            if args.gpg:
                return 1

    return subprocess.call(build_command(args.unit, args.gpg, extra))


if __name__ == "__main__":
    raise SystemExit(main())
