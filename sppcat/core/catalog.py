import logging
from functools import partialmethod
from typing import Callable, Iterable, Optional

from django.core.management import call_command
from django.db import DEFAULT_DB_ALIAS, connections

from sppcat.collectors.layout import Locator
from sppcat.core import lifecycle, query
from sppcat.core.models import Bundle, Component, FilterEntity
from sppcat.core.progress import ProgressCallback
from sppcat.core.query import VersionMode

logger = logging.getLogger(__name__)


class Catalog:
    """The set of bundles loaded into one database, and the filter indexes built from them.

    Only add_bundle() and remove_bundles() change the catalog, every other method reads it.
    A Catalog is created explicitly by whoever drives it (a management command, the
    interactive shell, a test) and lives as long as its database connection.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS, language: str = ""):
        self.using = using
        self.language = language

    @classmethod
    def open(cls, using: str = DEFAULT_DB_ALIAS, language: str = "") -> "Catalog":
        """Create the catalog tables if this database doesn't have them yet.
        The default database lives in memory, so every new process starts empty."""
        if Bundle._meta.db_table not in connections[using].introspection.table_names():
            logger.debug(f"Creating catalog tables in database {using}")
            call_command("migrate", database=using, interactive=False, verbosity=0)
        return cls(using=using, language=language)

    def add_bundle(
        self, locator: Locator, progress: Optional[ProgressCallback] = None
    ) -> Bundle:
        return lifecycle.add_bundle(
            locator, using=self.using, language=self.language, progress=progress
        )

    def remove_bundles(
        self, selectors: Iterable[str], confirm: Optional[Callable[[Bundle], bool]] = None
    ) -> list[str]:
        return lifecycle.remove_bundles(selectors, using=self.using, confirm=confirm)

    def get_bundles(self, selectors: Optional[Iterable[str]] = None) -> list[Bundle]:
        return query.get_bundles(selectors, using=self.using)

    def get_filter_entities(
        self,
        dimension: str,
        names: Optional[Iterable[str]] = None,
        bundles: Optional[Iterable[Bundle]] = None,
        pass_through: Optional[Iterable[FilterEntity]] = None,
    ) -> list[FilterEntity]:
        return query.get_filter_entities(
            dimension, names=names, bundles=bundles, pass_through=pass_through, using=self.using
        )

    get_systems = partialmethod(get_filter_entities, FilterEntity.Dimension.SYSTEM)
    get_operating_systems = partialmethod(
        get_filter_entities, FilterEntity.Dimension.OPERATING_SYSTEM
    )
    get_categories = partialmethod(get_filter_entities, FilterEntity.Dimension.CATEGORY)
    get_devices = partialmethod(get_filter_entities, FilterEntity.Dimension.DEVICE)
    get_types = partialmethod(get_filter_entities, FilterEntity.Dimension.TYPE)

    def get_components(
        self,
        names: Optional[Iterable[str]] = None,
        bundles: Optional[Iterable[Bundle]] = None,
        filters: Optional[Iterable[FilterEntity]] = None,
        version_mode: str = VersionMode.ALL,
    ) -> list[Component]:
        return query.get_components(
            names=names,
            bundles=bundles,
            filters=filters,
            version_mode=version_mode,
            using=self.using,
        )
