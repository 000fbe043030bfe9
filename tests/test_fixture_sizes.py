"""Ensure adapter fixtures and bundled catalogs stay small and synthetic."""

from pathlib import Path

MAX_BYTES = 50_000

PACKAGE = Path(__file__).resolve().parents[1] / "src" / "firstbites"


def test_fixture_sizes() -> None:
    paths = [*(PACKAGE / "adapters").rglob("fixtures/*"), *(PACKAGE / "templates").glob("*.yaml")]
    assert paths
    for path in paths:
        if path.is_file():
            assert path.stat().st_size <= MAX_BYTES, f"Fixture too large: {path}"
