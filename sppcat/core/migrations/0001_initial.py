import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Bundle",
            fields=[
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("file", models.TextField(unique=True)),
                ("manifest_dir", models.TextField()),
                ("packages_dir", models.TextField()),
                ("name", models.TextField(default="")),
                ("description", models.TextField(default="")),
                ("alt_name", models.TextField(default="")),
                ("product_id", models.CharField(default="", max_length=200)),
                ("version_id", models.CharField(default="", max_length=200)),
                ("category", models.TextField(default="")),
                ("version", models.CharField(default="", max_length=200)),
                ("revision", models.CharField(default="", max_length=200)),
                ("full_version", models.CharField(default="", max_length=400)),
                ("release_date", models.DateTimeField(null=True)),
                ("tag", models.TextField(default="")),
                ("divisions", models.JSONField(default=list)),
                ("operating_systems", models.JSONField(default=list)),
                ("notes", models.JSONField(default=dict)),
                ("revision_history", models.JSONField(default=list)),
                ("package_contents", models.JSONField(default=list)),
                ("added_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-full_version", "file"),
            },
        ),
        migrations.CreateModel(
            name="Component",
            fields=[
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("position", models.PositiveIntegerField(default=0)),
                ("product_id", models.CharField(max_length=200)),
                ("version_id", models.CharField(max_length=200)),
                ("name", models.TextField(default="")),
                ("description", models.TextField(default="")),
                ("alt_name", models.TextField(default="")),
                ("filename", models.TextField(default="")),
                ("version", models.CharField(default="", max_length=200)),
                ("revision", models.CharField(default="", max_length=200)),
                ("full_version", models.CharField(default="", max_length=400)),
                ("upgrade_requirement", models.BooleanField(default=False)),
                (
                    "type_of_change",
                    models.PositiveSmallIntegerField(
                        choices=[(0, "Optional"), (1, "Recommended"), (2, "Critical")], default=0
                    ),
                ),
                ("build_number", models.CharField(default="", max_length=200)),
                ("manufacturer", models.TextField(default="")),
                ("category", models.TextField(default="")),
                ("disk_space", models.BigIntegerField(default=0)),
                ("release_date", models.DateTimeField(null=True)),
                ("operating_systems", models.JSONField(default=list)),
                ("divisions", models.JSONField(default=list)),
                ("files", models.JSONField(default=list)),
                ("notes", models.JSONField(default=dict)),
                ("revision_history", models.JSONField(default=list)),
                (
                    "bundle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="components",
                        to="core.bundle",
                    ),
                ),
            ],
            options={
                "ordering": ("bundle__file", "position"),
            },
        ),
        migrations.CreateModel(
            name="FilterEntity",
            fields=[
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                (
                    "dimension",
                    models.CharField(
                        choices=[
                            ("SYSTEM", "System"),
                            ("OPERATING_SYSTEM", "Operating System"),
                            ("CATEGORY", "Category"),
                            ("DEVICE", "Device"),
                            ("TYPE", "Type"),
                        ],
                        max_length=20,
                    ),
                ),
                ("key", models.CharField(max_length=200)),
                ("name", models.TextField(default="")),
                ("meta_attr", models.JSONField(default=dict)),
                (
                    "components",
                    models.ManyToManyField(related_name="filter_entities", to="core.component"),
                ),
            ],
            options={
                "ordering": ("dimension", "name"),
            },
        ),
        migrations.AddIndex(
            model_name="component",
            index=models.Index(fields=["product_id"], name="core_component_product_idx"),
        ),
        migrations.AddConstraint(
            model_name="component",
            constraint=models.UniqueConstraint(
                fields=("bundle", "product_id", "version_id"),
                name="unique_component_key_per_bundle",
            ),
        ),
        migrations.AddConstraint(
            model_name="filterentity",
            constraint=models.UniqueConstraint(
                fields=("dimension", "key"), name="unique_filter_entity_key_per_dimension"
            ),
        ),
    ]
