#!/usr/bin/env python3
"""Convenience runner for the end-to-end study workflow tests."""

from __future__ import annotations

import importlib
import sys
import unittest


def main() -> int:
    for module_name in ("typer.testing", "flask"):
        try:
            importlib.import_module(module_name)
        except ModuleNotFoundError as exc:  # pragma: no cover
            missing = exc.name or module_name
            print(
                f"Missing dependency '{missing}'. Install project requirements first "
                "(e.g. `python -m pip install -e .`).",
                file=sys.stderr,
            )
            return 1

    suite = unittest.defaultTestLoader.loadTestsFromName("tests.test_e2e")
    result = unittest.TextTestRunner(verbosity=2).run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    sys.exit(main())
