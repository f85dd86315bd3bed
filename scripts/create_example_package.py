#!/usr/bin/env python3
"""Create an example chart package fixture.

This script creates examples/foo-0.1.0.tgz (with a vendored subchart) and
prints the manifest that `provctl sign` would sign for it.
Run with: python scripts/create_example_package.py
"""

import io
import sys
import tarfile
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from provsign.provenance.manifest import ProvenanceManifest

MEMBERS = {
    "foo/Chart.yaml": b"apiVersion: v2\nname: foo\nversion: 0.1.0\ndescription: Example chart\n",
    "foo/values.yaml": b"replicaCount: 1\nimage:\n  repository: nginx\n  tag: stable\n",
    "foo/templates/deployment.yaml": b"apiVersion: apps/v1\nkind: Deployment\n",
    "foo/charts/bar/Chart.yaml": b"apiVersion: v2\nname: bar\nversion: 1.2.3\n",
    "foo/charts/bar/values.yaml": b"enabled: true\n",
}


def create_example_package() -> Path:
    """Write the example package and return its path."""
    examples_dir = Path(__file__).parent.parent / "examples"
    examples_dir.mkdir(parents=True, exist_ok=True)
    package = examples_dir / "foo-0.1.0.tgz"

    with tarfile.open(package, "w:gz") as archive:
        for name, data in MEMBERS.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mtime = 1700000000
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))

    return package


if __name__ == "__main__":
    path = create_example_package()
    print(f"Created {path}\n")
    sys.stdout.write(ProvenanceManifest.build(path).render().decode("utf-8"))
