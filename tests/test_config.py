"""Tests for Settings.validate_startup and derived values."""

import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nozule_admin.config import Settings


class TestSettings:
    def test_api_url_joins_cleanly(self):
        s = Settings(site_url="https://hotel.example/", api_base="/wp-json/nozule/v1/")
        assert s.api_url == "https://hotel.example/wp-json/nozule/v1"

    def test_defaults_warn_but_pass(self):
        s = Settings(nonce="", current_user_id=0)
        warnings = s.validate_startup()
        assert any("NONCE" in w for w in warnings)
        assert any("CURRENT_USER_ID" in w for w in warnings)

    def test_fully_configured_no_warnings(self):
        s = Settings(nonce="n", current_user_id=3, search_debounce_ms=300)
        assert s.validate_startup() == []

    def test_bad_site_url(self):
        with pytest.raises(ValueError):
            Settings(site_url="hotel.example").validate_startup()

    def test_bad_calendar_view(self):
        with pytest.raises(ValueError):
            Settings(calendar_view="year").validate_startup()

    def test_bad_per_page(self):
        with pytest.raises(ValueError):
            Settings(per_page=0).validate_startup()

    def test_negative_idle_timeout(self):
        with pytest.raises(ValueError):
            Settings(session_idle_minutes=-1).validate_startup()

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PER_PAGE", "50")
        monkeypatch.setenv("CALENDAR_VIEW", "month")
        s = Settings()
        assert s.per_page == 50
        assert s.calendar_view == "month"
