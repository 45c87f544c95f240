from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StoreCollection",
            fields=[
                ("name", models.CharField(max_length=255, primary_key=True, serialize=False)),
                (
                    "revision",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Bumped on every committed write inside the collection.",
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "rms_store_collections",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="StoreDocument",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=255)),
                ("value", models.JSONField()),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "collection",
                    models.ForeignKey(
                        db_column="collection",
                        on_delete=models.CASCADE,
                        related_name="documents",
                        to="rms_store.storecollection",
                    ),
                ),
            ],
            options={
                "db_table": "rms_store_documents",
                "ordering": ["collection_id", "key"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("collection", "key"),
                        name="uq_store_document_collection_key",
                    ),
                ],
            },
        ),
    ]
