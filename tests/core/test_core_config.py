"""
Tests for core.config — RmsSettings and load_settings.
"""

from zoneinfo import ZoneInfo

import pytest
from django.test import override_settings

from core.config import RmsSettings, load_settings


class TestRmsSettings:
    def test_defaults(self):
        s = RmsSettings()
        assert s.store_root == "rms"
        assert s.strict_transitions is False
        assert s.transaction_max_attempts == 5
        assert s.report_timezone == "UTC"
        assert s.currency_symbol == "$"
        assert s.order_id_prefix == "order"
        assert s.order_id_width == 3

    def test_tzinfo(self):
        assert RmsSettings(report_timezone="Africa/Nairobi").tzinfo == ZoneInfo("Africa/Nairobi")

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValueError, match="report_timezone"):
            RmsSettings(report_timezone="Mars/Olympus")

    def test_invalid_attempts_rejected(self):
        with pytest.raises(ValueError, match="transaction_max_attempts"):
            RmsSettings(transaction_max_attempts=0)

    def test_invalid_width_rejected(self):
        with pytest.raises(ValueError, match="order_id_width"):
            RmsSettings(order_id_width=0)

    def test_empty_prefix_rejected(self):
        with pytest.raises(ValueError, match="order_id_prefix"):
            RmsSettings(order_id_prefix="")


class TestLoadSettings:
    def test_reads_django_settings(self):
        with override_settings(RMS_STRICT_TRANSITIONS=True, RMS_CURRENCY_SYMBOL="KSh "):
            s = load_settings()
        assert s.strict_transitions is True
        assert s.currency_symbol == "KSh "

    def test_defaults_from_settings_module(self):
        s = load_settings()
        assert s.store_root == "rms"
        assert s.order_id_prefix == "order"
