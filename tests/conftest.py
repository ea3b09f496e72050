from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.package_builder import FakeSourceKitten, PackageBuilder


@pytest.fixture
def package_builder(tmp_path: Path) -> PackageBuilder:
    """Provide a throwaway Swift package rooted at the pytest tmp_path."""
    return PackageBuilder(tmp_path)


@pytest.fixture
def fake_oracle() -> FakeSourceKitten:
    """Provide a scripted SourceKitten double."""
    return FakeSourceKitten()
