"""
RMS Core Config — Runtime Settings
=====================================
Operator-tunable knobs for the settlement, store and reporting layers.

Values come from the Django settings module (RMS_* names) when Django
is configured; otherwise the dataclass defaults apply. Services accept
an explicit RmsSettings so tests never depend on global state.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class RmsSettings:
    """
    RMS runtime settings.

    Fields:
        store_root:               Root path prefix in the backing store.
        strict_transitions:       Enforce the explicit transition table.
        transaction_max_attempts: Optimistic transaction retry budget.
        report_timezone:          IANA zone for date ranges and
                                  weekly/monthly/yearly buckets.
        currency_symbol:          Prefix for money in printable reports.
        order_id_prefix:          Sequential order id prefix.
        order_id_width:           Minimum zero-padded digit count.
    """

    store_root: str = "rms"
    strict_transitions: bool = False
    transaction_max_attempts: int = 5
    report_timezone: str = "UTC"
    currency_symbol: str = "$"
    order_id_prefix: str = "order"
    order_id_width: int = 3

    def __post_init__(self):
        if not isinstance(self.transaction_max_attempts, int) or self.transaction_max_attempts < 1:
            raise ValueError("transaction_max_attempts must be a positive integer.")
        if not isinstance(self.order_id_width, int) or self.order_id_width < 1:
            raise ValueError("order_id_width must be a positive integer.")
        if not self.order_id_prefix:
            raise ValueError("order_id_prefix must be non-empty.")
        try:
            ZoneInfo(self.report_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"report_timezone '{self.report_timezone}' is not a known zone."
            ) from exc

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.report_timezone)


def load_settings() -> RmsSettings:
    """Build RmsSettings from django.conf.settings, falling back to defaults."""
    from django.conf import settings as django_settings

    if not django_settings.configured:
        return RmsSettings()

    overrides = {}
    for f in fields(RmsSettings):
        setting_name = f"RMS_{f.name.upper()}"
        if hasattr(django_settings, setting_name):
            overrides[f.name] = getattr(django_settings, setting_name)
    return RmsSettings(**overrides)
