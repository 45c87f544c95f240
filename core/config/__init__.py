"""
RMS Core Config — Public API
===============================
Operator-tunable settings for settlement, storage and reporting.
"""

from core.config.settings import RmsSettings, load_settings

__all__ = [
    "RmsSettings",
    "load_settings",
]
