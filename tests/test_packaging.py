from __future__ import annotations

import tomllib
import unittest
from pathlib import Path
from typing import cast

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


class PackagingMetadataTests(unittest.TestCase):
    def test_metadata_does_not_publish_design_notes(self) -> None:
        with PYPROJECT.open("rb") as handle:
            data = tomllib.load(handle)
        project = cast(dict[str, object], data["project"])
        self.assertEqual(project["name"], "versemark")
        self.assertNotEqual(project.get("readme"), "DESIGN.md")
        scripts = cast(dict[str, str], project["scripts"])
        self.assertEqual(scripts["versemark"], "versemark.cli:run")


if __name__ == "__main__":
    _ = unittest.main()
