"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import FOO_CHART_YAML, HMACChecker, HMACClearsigner, build_tgz


@pytest.fixture
def signer() -> HMACClearsigner:
    return HMACClearsigner("A1B2C3D4E5F60718", b"release-secret")


@pytest.fixture
def checker(signer: HMACClearsigner) -> HMACChecker:
    return HMACChecker({signer.key_id: signer.secret})


@pytest.fixture
def foo_package(tmp_path: Path) -> Path:
    """A minimal chart package with one nested subchart."""
    return build_tgz(
        tmp_path / "foo-0.1.0.tgz",
        {
            "foo/Chart.yaml": FOO_CHART_YAML,
            "foo/values.yaml": b"replicas: 1\n",
            "foo/templates/deployment.yaml": b"kind: Deployment\n",
            "foo/charts/bar/Chart.yaml": b"name: bar\nversion: 9.9.9\n",
        },
    )
