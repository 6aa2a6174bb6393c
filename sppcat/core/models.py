import os
from collections import defaultdict
from typing import Iterable, Optional
from uuid import uuid4

from django.db import models

from sppcat.core.matching import compile_patterns, matches_any


def build_full_version(version: str, revision: str) -> str:
    """Versions and revisions are compared as opaque strings: "1.2" + "0" is the same full
    version as "1.20" + "", and "1.10" sorts before "1.9". No separator, no normalization."""
    return f"{version}{revision}"


class TypeOfChange(models.IntegerChoices):
    OPTIONAL = 0, "Optional"
    RECOMMENDED = 1, "Recommended"
    CRITICAL = 2, "Critical"


class BundleQuerySet(models.QuerySet):
    """Helper methods to filter QuerySets of Bundles"""

    def matching(self, selectors: Optional[Iterable[str]]) -> list["Bundle"]:
        """Bundles whose file identifier matches any of the wildcard selectors,
        newest first. No selectors means every bundle."""
        bundles = list(self.order_by("-full_version", "file"))
        if selectors is None:
            return bundles
        patterns = compile_patterns(selectors)
        return [bundle for bundle in bundles if matches_any(bundle.file, patterns)]


class Bundle(models.Model):
    """One ingested release, described by a bp*.xml file and its manifest directory.

    Bundles are never updated in place: reloading a release means removing and re-adding it.
    """

    uuid = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    # Canonical absolute path of the bp*.xml file, the identifier callers select bundles by
    file = models.TextField(unique=True)
    manifest_dir = models.TextField()
    packages_dir = models.TextField()

    name = models.TextField(default="")
    description = models.TextField(default="")
    alt_name = models.TextField(default="")
    product_id = models.CharField(max_length=200, default="")
    version_id = models.CharField(max_length=200, default="")
    category = models.TextField(default="")
    version = models.CharField(max_length=200, default="")
    revision = models.CharField(max_length=200, default="")
    full_version = models.CharField(max_length=400, default="")
    release_date = models.DateTimeField(null=True)
    tag = models.TextField(default="")

    divisions = models.JSONField(default=list)
    operating_systems = models.JSONField(default=list)
    # Note kind -> list of text parts
    notes = models.JSONField(default=dict)
    # [{"version", "revision", "type_of_change", "enhancements", "fixes"}, ...]
    revision_history = models.JSONField(default=list)
    package_contents = models.JSONField(default=list)

    added_at = models.DateTimeField(auto_now_add=True)

    # implicit field "components" from Component model's ForeignKey
    components: models.Manager["Component"]

    objects = BundleQuerySet.as_manager()

    class Meta:
        ordering = ("-full_version", "file")

    def __str__(self) -> str:
        return f"{self.name} {self.full_version}"

    def save(self, *args, **kwargs):
        self.full_version = build_full_version(self.version, self.revision)
        super().save(*args, **kwargs)


class Component(models.Model):
    """One software / firmware / driver package inside a bundle.

    (product_id, version_id) is unique within a bundle. The same product_id shows up in other
    bundles when they ship the same logical component, possibly at a different version.
    """

    uuid = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    bundle = models.ForeignKey(Bundle, on_delete=models.CASCADE, related_name="components")
    # Order of the component in the bundle's manifest
    position = models.PositiveIntegerField(default=0)

    product_id = models.CharField(max_length=200)
    version_id = models.CharField(max_length=200)

    name = models.TextField(default="")
    description = models.TextField(default="")
    alt_name = models.TextField(default="")
    # The package file itself, relative to the bundle's packages directory
    filename = models.TextField(default="")
    version = models.CharField(max_length=200, default="")
    revision = models.CharField(max_length=200, default="")
    full_version = models.CharField(max_length=400, default="")
    upgrade_requirement = models.BooleanField(default=False)
    type_of_change = models.PositiveSmallIntegerField(
        choices=TypeOfChange.choices, default=TypeOfChange.OPTIONAL
    )
    build_number = models.CharField(max_length=200, default="")
    manufacturer = models.TextField(default="")
    category = models.TextField(default="")
    disk_space = models.BigIntegerField(default=0)
    release_date = models.DateTimeField(null=True)

    operating_systems = models.JSONField(default=list)
    divisions = models.JSONField(default=list)
    # [{"name", "path", "size", "modified", "checksums"}, ...] with "path" already resolved
    # against the bundle's packages directory
    files = models.JSONField(default=list)
    notes = models.JSONField(default=dict)
    revision_history = models.JSONField(default=list)

    # implicit field "filter_entities" from FilterEntity model's ManyToManyField
    filter_entities: models.Manager["FilterEntity"]

    class Meta:
        ordering = ("bundle__file", "position")
        constraints = (
            models.UniqueConstraint(
                name="unique_component_key_per_bundle",
                fields=("bundle", "product_id", "version_id"),
            ),
        )
        indexes = (models.Index(fields=("product_id",), name="core_component_product_idx"),)

    def __str__(self) -> str:
        """return name"""
        return str(self.name)

    def save(self, *args, **kwargs):
        self.full_version = build_full_version(self.version, self.revision)
        super().save(*args, **kwargs)

    @property
    def key(self) -> tuple[str, str]:
        return self.product_id, self.version_id

    @property
    def package_path(self) -> str:
        if not self.filename:
            return ""
        return os.path.join(self.bundle.packages_dir, self.filename)

    def package_files(self) -> list[str]:
        """Every file this component ships: the package itself plus its file entries"""
        paths = []
        if self.package_path:
            paths.append(self.package_path)
        for file_entry in self.files:
            path = file_entry.get("path", "")
            if path and path not in paths:
                paths.append(path)
        return paths


class FilterEntityQuerySet(models.QuerySet):
    """Helper methods to filter QuerySets of FilterEntities"""

    def for_dimension(self, dimension: str) -> "FilterEntityQuerySet":
        return self.filter(dimension=dimension)

    def in_bundles(self, bundles: Iterable[Bundle]) -> "FilterEntityQuerySet":
        """Entities with at least one member in any of the bundles"""
        bundle_pks = [bundle.pk for bundle in bundles]
        # The join on components returns one row per member, so make the entities unique again
        return self.filter(components__bundle__in=bundle_pks).distinct()

    def orphaned(self) -> "FilterEntityQuerySet":
        """Entities which no bundle references any more"""
        return self.filter(components__isnull=True)


class FilterEntity(models.Model):
    """A value in one of the five filter dimensions, e.g. a server model, an OS release or
    a category label, together with the components which belong to it.

    Entities are shared across bundles. Memberships point at per-bundle Component rows,
    so the bundle -> component keys map of an entity is derived from its components.
    """

    class Dimension(models.TextChoices):
        SYSTEM = "SYSTEM"
        OPERATING_SYSTEM = "OPERATING_SYSTEM"
        CATEGORY = "CATEGORY"
        DEVICE = "DEVICE"
        TYPE = "TYPE"

    uuid = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    dimension = models.CharField(choices=Dimension.choices, max_length=20)
    key = models.CharField(max_length=200)
    name = models.TextField(default="")
    # Dimension-specific attributes from the manifest, e.g. a system's generation
    meta_attr = models.JSONField(default=dict)

    components = models.ManyToManyField(Component, related_name="filter_entities")

    objects = FilterEntityQuerySet.as_manager()

    class Meta:
        ordering = ("dimension", "name")
        constraints = (
            models.UniqueConstraint(
                name="unique_filter_entity_key_per_dimension", fields=("dimension", "key")
            ),
        )

    def __str__(self) -> str:
        return f"{self.get_dimension_display()}: {self.name}"

    def membership(self) -> dict[str, set[tuple[str, str]]]:
        """Map each bundle's file identifier to the component keys of this entity in it"""
        members: dict[str, set[tuple[str, str]]] = defaultdict(set)
        for bundle_file, product_id, version_id in self.components.values_list(
            "bundle__file", "product_id", "version_id"
        ):
            members[bundle_file].add((product_id, version_id))
        return dict(members)
