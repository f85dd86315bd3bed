#!/usr/bin/env python3
"""Doctor script for the provsign environment.

Verifies the Python version, required packages, the GnuPG binary and
keyring, and warns about credentials left in the environment.

Usage:
    python scripts/doctor.py

Exit codes:
    0 - All checks passed
    1 - One or more checks failed
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent

PASS = "\033[32mPASS\033[0m"
FAIL = "\033[31mFAIL\033[0m"
WARN = "\033[33mWARN\033[0m"
INFO = "\033[36mINFO\033[0m"


def header(title: str) -> None:
    """Print a section header."""
    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}")


def check_python_version() -> list[str]:
    """Check Python version meets requirements."""
    errors: list[str] = []
    major, minor = sys.version_info[:2]
    if major < 3 or (major == 3 and minor < 10):
        errors.append(f"Python >= 3.10 required, found {major}.{minor}. Install Python 3.10+.")
    else:
        print(f"    Python {major}.{minor} [{PASS}]")
    return errors


def check_python_packages() -> list[str]:
    """Check required Python packages are installed."""
    errors: list[str] = []
    # Map of package name -> import name (when they differ)
    required = {
        "click": "click",
        "python-gnupg": "gnupg",
        "pyyaml": "yaml",
        "provsign": "provsign",
    }

    for pkg, import_name in required.items():
        try:
            result = subprocess.run(
                [sys.executable, "-c", f"import {import_name}"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            if result.returncode != 0:
                errors.append(f"Python package '{pkg}' not installed. Run: pip install -e '.[dev]'")
        except subprocess.TimeoutExpired:
            errors.append(f"Timeout checking package '{pkg}'")
    if not errors:
        print(f"    Required Python packages [{PASS}]")
    return errors


def check_gpg() -> list[str]:
    """Check a gpg client is installed."""
    errors: list[str] = []
    gpg = os.environ.get("PROVSIGN_GPG_BINARY", "gpg")
    if not shutil.which(gpg):
        errors.append(f"Command like '{gpg}' client must be installed (GnuPG 2.1+ recommended).")
        return errors

    try:
        result = subprocess.run([gpg, "--version"], capture_output=True, text=True, timeout=10)
        first_line = result.stdout.splitlines()[0] if result.stdout else "unknown version"
        print(f"    {first_line} [{PASS}]")
    except subprocess.TimeoutExpired:
        errors.append(f"Could not determine {gpg} version.")
    return errors


def check_keyring() -> list[str]:
    """Check the keyring has secret keys for signing."""
    errors: list[str] = []
    gpg = os.environ.get("PROVSIGN_GPG_BINARY", "gpg")
    if not shutil.which(gpg):
        return errors

    cmd = [gpg, "--batch", "--with-colons", "--list-secret-keys"]
    home = os.environ.get("PROVSIGN_GNUPGHOME") or os.environ.get("GNUPGHOME")
    if home:
        cmd[1:1] = ["--homedir", home]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=10)
    except subprocess.TimeoutExpired:
        errors.append("Timeout listing secret keys.")
        return errors

    secret_keys = [line for line in result.stdout.splitlines() if line.startswith("sec:")]
    if secret_keys:
        print(f"    {len(secret_keys)} secret key(s) available for signing [{PASS}]")
    else:
        print(f"    [{INFO}] No secret keys in keyring. Signing will fail; verification still works.")
    return errors


def check_env_vars() -> list[str]:
    """Check environment configuration."""
    errors: list[str] = []

    if os.environ.get("PROVSIGN_PASSPHRASE"):
        print(f"    [{WARN}] PROVSIGN_PASSPHRASE is set. Ensure it is not committed to source or logs.")

    signing_key = os.environ.get("PROVSIGN_SIGNING_KEY")
    if signing_key:
        print(f"    [{INFO}] Signing key: {signing_key}")

    print(f"    Environment variables [{PASS}]")
    return errors


def main() -> int:
    """Run all doctor checks."""
    header("provsign Doctor")
    all_errors: list[str] = []

    sections = [
        ("Runtime Versions", [check_python_version]),
        ("Dependencies", [check_python_packages]),
        ("GnuPG", [check_gpg, check_keyring]),
        ("Environment", [check_env_vars]),
    ]

    for section_name, checks in sections:
        print(f"\n  {section_name}:")
        for check_fn in checks:
            try:
                errors = check_fn()
            except Exception as e:
                errors = [f"Check failed unexpectedly: {e}"]
            if errors:
                for err in errors:
                    print(f"    [{FAIL}] {err}")
                all_errors.extend(errors)

    header("Summary")
    if all_errors:
        print(f"\n  {FAIL}: {len(all_errors)} issue(s) found")
        print("\n  Remediation:")
        for err in all_errors:
            print(f"    - {err}")
        return 1
    else:
        print(f"\n  {PASS}: All checks passed. Environment is healthy.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
