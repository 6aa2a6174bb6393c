import logging
from collections import defaultdict
from typing import Iterable, Optional, Sequence

from django.db import DEFAULT_DB_ALIAS, models

from sppcat.core.matching import compile_patterns, matches_any
from sppcat.core.models import Bundle, Component, FilterEntity

logger = logging.getLogger(__name__)


class VersionMode(models.TextChoices):
    """How components with the same product ID in different bundles are compared"""

    ALL = "ALL"  # keep everything
    CHANGED = "CHANGED"  # in several bundles, at different versions
    UNCHANGED = "UNCHANGED"  # in several bundles, at a repeated version
    UNIQUE = "UNIQUE"  # in exactly one bundle


def get_bundles(
    selectors: Optional[Iterable[str]] = None, using: str = DEFAULT_DB_ALIAS
) -> list[Bundle]:
    """All bundles, or those whose file matches any of the selectors, newest first"""
    return Bundle.objects.using(using).matching(selectors)


def get_filter_entities(
    dimension: str,
    names: Optional[Iterable[str]] = None,
    bundles: Optional[Iterable[Bundle]] = None,
    pass_through: Optional[Iterable[FilterEntity]] = None,
    using: str = DEFAULT_DB_ALIAS,
) -> list[FilterEntity]:
    """Entities of one dimension, sorted by name, after any pass_through entities.

    Passing entities through lets callers chain lookups across dimensions, e.g. feed the
    systems they picked into a category lookup and hand the combined list to get_components().
    """
    queryset = FilterEntity.objects.using(using).for_dimension(dimension)
    if bundles is not None:
        queryset = queryset.in_bundles(bundles)

    entities = list(queryset)
    if names is not None:
        patterns = compile_patterns(names)
        entities = [entity for entity in entities if matches_any(entity.name, patterns)]
    entities.sort(key=lambda entity: (entity.name.casefold(), entity.name))

    passed = list(pass_through or ())
    passed_pks = {entity.pk for entity in passed}
    return passed + [entity for entity in entities if entity.pk not in passed_pks]


def group_filters(filters: Iterable[FilterEntity]) -> dict[str, list[FilterEntity]]:
    by_dimension: dict[str, list[FilterEntity]] = defaultdict(list)
    for entity in filters:
        by_dimension[entity.dimension].append(entity)
    return by_dimension


def get_components(
    names: Optional[Iterable[str]] = None,
    bundles: Optional[Iterable[Bundle]] = None,
    filters: Optional[Iterable[FilterEntity]] = None,
    version_mode: str = VersionMode.ALL,
    using: str = DEFAULT_DB_ALIAS,
) -> list[Component]:
    """Components of the selected bundles (all by default) which pass every filter.

    Filters of different dimensions must all match, filters of the same dimension need only
    one match. Membership is checked against the component's own bundle, because each
    Component row belongs to exactly one bundle.
    The result is sorted by name, then newest full version first.
    """
    if version_mode not in VersionMode.values:
        raise ValueError(f"Unknown version mode {version_mode!r}")

    queryset = Component.objects.using(using).select_related("bundle")
    if bundles is not None:
        queryset = queryset.filter(bundle__in=[bundle.pk for bundle in bundles])

    memberships = FilterEntity.components.through.objects.using(using)
    for entities in group_filters(filters or ()).values():
        members = memberships.filter(filterentity__in=[entity.pk for entity in entities])
        queryset = queryset.filter(pk__in=members.values("component_id"))

    components = list(queryset.order_by("bundle__file", "position"))
    if names is not None:
        patterns = compile_patterns(names)
        components = [
            component for component in components if matches_any(component.name, patterns)
        ]

    groups: dict[str, list[Component]] = defaultdict(list)
    for component in components:
        groups[component.product_id].append(component)

    selected = [
        component
        for group in groups.values()
        if keep_group(group, version_mode)
        for component in group
    ]
    logger.debug(
        f"Selected {len(selected)} of {len(components)} components in {len(groups)} groups "
        f"for version mode {version_mode}"
    )
    return sort_components(selected)


def has_repeated_version(group: Sequence[Component]) -> bool:
    """Scan the group in order and stop at the first full version seen twice"""
    seen = set()
    for component in group:
        if component.full_version in seen:
            return True
        seen.add(component.full_version)
    return False


def keep_group(group: Sequence[Component], version_mode: str) -> bool:
    if version_mode == VersionMode.ALL:
        return True
    if version_mode == VersionMode.UNIQUE:
        return len(group) == 1
    if len(group) < 2:
        return False
    # A group like [A, A, B] has a repeat, so it's UNCHANGED even though B differs
    if version_mode == VersionMode.CHANGED:
        return not has_repeated_version(group)
    if version_mode == VersionMode.UNCHANGED:
        return has_repeated_version(group)
    raise ValueError(f"Unknown version mode {version_mode!r}")


def sort_components(components: Iterable[Component]) -> list[Component]:
    """Sort by name ascending, then by full version descending.
    Full versions compare as plain strings, the same way they're grouped."""
    ordered = sorted(components, key=lambda component: component.full_version, reverse=True)
    # Stable sort, so equal names keep the version order from above
    ordered.sort(key=lambda component: (component.name.casefold(), component.name))
    return ordered
