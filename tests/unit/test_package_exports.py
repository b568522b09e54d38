"""
Unit tests for package-level exports
"""

import importlib
import pytest


@pytest.mark.parametrize("package_name", ["core", "schemas", "ingestion"])
def test_every_exported_name_is_importable(package_name):
    package = importlib.import_module(package_name)

    missing = [name for name in package.__all__ if not hasattr(package, name)]
    assert missing == []


def test_star_import_succeeds():
    namespace = {}
    exec("from ingestion import *", namespace)

    assert "TransactionCoordinator" in namespace
