"""
RMS Store DB — App Configuration
==================================
Relational implementation of the store collaborator.

This app:
- Persists JSON documents grouped by collection
- Serialises transactions with per-collection row locks
- Notifies in-process listeners after commit

This app does NOT:
- Interpret document meaning
- Enforce order or ledger invariants (engines do that)
"""

from django.apps import AppConfig


class StoreDbConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.store_db"
    label = "rms_store"
    verbose_name = "RMS Store"
