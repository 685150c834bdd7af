"""Tests for the app catalog loader."""

from pathlib import Path

from reviewpulse.catalog import load_apps
from reviewpulse.config import APPS_FILE


class TestLoadApps:
    def test_parses_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "apps.yml"
        path.write_text(
            "apps:\n"
            "  swiggy:\n"
            "    name: Swiggy\n"
            "    package: in.swiggy.android\n"
            "  zepto:\n"
        )
        apps = load_apps(path)
        assert apps["swiggy"].name == "Swiggy"
        assert apps["swiggy"].package == "in.swiggy.android"
        assert apps["zepto"].name == "Zepto"
        assert apps["zepto"].package == ""

    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_apps(tmp_path / "absent.yml") == {}

    def test_bundled_catalog(self) -> None:
        apps = load_apps(APPS_FILE)
        assert set(apps) == {"swiggy", "zomato", "blinkit"}
        assert apps["blinkit"].package == "com.grofers.customerapp"
