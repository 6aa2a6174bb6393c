import logging
from typing import Callable, Iterable, Optional

from django.db import DEFAULT_DB_ALIAS, transaction

from sppcat.collectors.layout import Locator, resolve_layout
from sppcat.collectors.manifest import BundleManifest, ComponentKey, Manifest
from sppcat.core.constants import STAGE_DONE
from sppcat.core.exceptions import Conflict, ValidationError
from sppcat.core.models import Bundle, Component, FilterEntity, build_full_version
from sppcat.core.progress import ProgressCallback, report_progress

logger = logging.getLogger(__name__)


def add_bundle(
    locator: Locator,
    using: str = DEFAULT_DB_ALIAS,
    language: str = "",
    progress: Optional[ProgressCallback] = None,
) -> Bundle:
    """Read a bundle from disk and merge it into the catalog.

    Everything which can fail because of missing files or duplicates is checked before the
    catalog is touched, and the merge itself runs in one transaction, so a failed add leaves
    the catalog as it was.
    """
    layout = resolve_layout(locator)
    manifest = Manifest(layout, language=language)
    manifest.check_files()

    existing = Bundle.objects.using(using).filter(file__iexact=layout.file).first()
    if existing:
        raise Conflict(f"Bundle {existing.file} is already in the catalog")

    parsed = manifest.parse(progress)
    check_component_keys(parsed, layout.file)

    with transaction.atomic(using=using):
        bundle = Bundle(**parsed.bundle)
        bundle.save(using=using)
        components = save_components(bundle, parsed, using)
        for dimension, records in parsed.filter_entities.items():
            merge_filter_entities(bundle, dimension, records, components, using)

    logger.info(
        f"Added bundle {bundle.file} ({bundle.name} {bundle.full_version}) "
        f"with {len(components)} components"
    )
    report_progress(progress, *STAGE_DONE)
    return bundle


def check_component_keys(parsed: BundleManifest, bundle_file: str) -> None:
    seen: set[ComponentKey] = set()
    for component in parsed.components:
        key = (component["product_id"], component["version_id"])
        if key in seen:
            raise ValidationError(f"Component {key[0]}/{key[1]} is listed twice in {bundle_file}")
        seen.add(key)


def save_components(
    bundle: Bundle, parsed: BundleManifest, using: str
) -> dict[ComponentKey, Component]:
    """Create the bundle's components, with their revision history merged in by key"""
    components = []
    for data in parsed.components:
        key = (data["product_id"], data["version_id"])
        components.append(
            Component(
                bundle=bundle,
                full_version=build_full_version(data["version"], data["revision"]),
                revision_history=parsed.revision_history.get(key, []),
                **data,
            )
        )
    # bulk_create skips save(), so full_version is set explicitly above
    Component.objects.using(using).bulk_create(components)
    return {component.key: component for component in components}


def merge_filter_entities(
    bundle: Bundle,
    dimension: str,
    records: list[dict],
    components: dict[ComponentKey, Component],
    using: str,
) -> None:
    """Add this bundle's memberships to the entities of one dimension, creating the entities
    which no earlier bundle mentioned."""
    created_count = 0
    for record in records:
        members = []
        for key in record["contents"]:
            component = components.get(key)
            if component is None:
                logger.warning(
                    f"{dimension} {record['key']} lists unknown component {key[0]}/{key[1]} "
                    f"in {bundle.file}, ignoring it"
                )
                continue
            members.append(component)

        if not members:
            # An entity without members in any bundle would never be cleaned up on removal
            logger.debug(f"{dimension} {record['key']} has no components in {bundle.file}")
            continue

        entity, created = FilterEntity.objects.using(using).get_or_create(
            dimension=dimension,
            key=record["key"],
            defaults={"name": record["name"], "meta_attr": record["meta_attr"]},
        )
        entity.components.add(*members)
        created_count += created

    logger.debug(f"Merged {len(records)} {dimension} entries, {created_count} new")


def remove_bundles(
    selectors: Iterable[str],
    using: str = DEFAULT_DB_ALIAS,
    confirm: Optional[Callable[[Bundle], bool]] = None,
) -> list[str]:
    """Remove every bundle whose file matches one of the wildcard selectors.

    Each bundle is offered to confirm() first, and left alone if it returns False.
    Selectors matching nothing are not an error. Returns the removed bundle files.
    """
    removed = []
    for bundle in Bundle.objects.using(using).matching(selectors):
        if confirm is not None and not confirm(bundle):
            logger.info(f"Not removing bundle {bundle.file}")
            continue

        with transaction.atomic(using=using):
            # Deleting the bundle cascades to its components and their memberships
            _, deleted_links = Bundle.objects.using(using).filter(pk=bundle.pk).delete()
            orphaned_count, _ = FilterEntity.objects.using(using).orphaned().delete()

        logger.info(
            f"Removed bundle {bundle.file} and related models: {deleted_links}, "
            f"plus {orphaned_count} unreferenced filter entries"
        )
        removed.append(bundle.file)
    return removed
