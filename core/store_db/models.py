"""
RMS Store DB — Document Models
================================
A collection row per top-level store node ("orders", "items",
"users", "loans", ...) and one document row per child key.

    rms/orders/order001  →  StoreCollection("rms/orders")
                            StoreDocument(collection="rms/orders", key="order001")

The collection row doubles as the transaction lock: writers take
SELECT ... FOR UPDATE on it before reading documents, so two
transactions over the same collection serialise.
"""

from __future__ import annotations

from django.db import models


class StoreCollection(models.Model):
    name = models.CharField(primary_key=True, max_length=255)
    revision = models.PositiveBigIntegerField(
        default=0,
        help_text="Bumped on every committed write inside the collection.",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "rms_store_collections"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} (rev {self.revision})"


class StoreDocument(models.Model):
    collection = models.ForeignKey(
        StoreCollection,
        on_delete=models.CASCADE,
        related_name="documents",
        db_column="collection",
    )
    key = models.CharField(max_length=255)
    value = models.JSONField()
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "rms_store_documents"
        ordering = ["collection_id", "key"]
        constraints = [
            models.UniqueConstraint(
                fields=["collection", "key"],
                name="uq_store_document_collection_key",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.collection_id}/{self.key} (v{self.version})"
