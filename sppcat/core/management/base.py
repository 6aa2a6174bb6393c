from typing import Iterable, Optional

from django.core.management.base import BaseCommand, CommandError, CommandParser

from sppcat.core.catalog import Catalog
from sppcat.core.exceptions import CatalogError
from sppcat.core.models import Bundle, Component, FilterEntity
from sppcat.core.query import VersionMode

# Command-line option -> filter dimension, in the order they're applied
SELECTION_DIMENSIONS = (
    ("system", FilterEntity.Dimension.SYSTEM),
    ("os", FilterEntity.Dimension.OPERATING_SYSTEM),
    ("category", FilterEntity.Dimension.CATEGORY),
    ("device", FilterEntity.Dimension.DEVICE),
    ("type", FilterEntity.Dimension.TYPE),
)
DIMENSION_NAMES = dict(SELECTION_DIMENSIONS)


def add_selection_arguments(parser: CommandParser) -> None:
    """Options shared by every command which picks components out of the catalog.
    Each option takes a wildcard pattern and can be repeated."""
    parser.add_argument(
        "-n", "--name", action="append", help="Only components whose name matches this pattern"
    )
    for option, dimension in SELECTION_DIMENSIONS:
        parser.add_argument(
            f"--{option}",
            action="append",
            help=f"Only components of a {FilterEntity.Dimension(dimension).label.lower()} "
            "matching this pattern",
        )
    parser.add_argument(
        "-m",
        "--mode",
        choices=[mode.lower() for mode in VersionMode.values],
        default=VersionMode.ALL.lower(),
        help="Compare components with the same product ID across bundles: keep all of them, "
        "those whose version changed, those with a repeated version, or those in one bundle only",
    )


def select_components(
    catalog: Catalog, bundles: Optional[Iterable[Bundle]], options: dict
) -> list[Component]:
    filters: list[FilterEntity] = []
    for option, dimension in SELECTION_DIMENSIONS:
        patterns = options.get(option)
        if not patterns:
            continue
        selected = catalog.get_filter_entities(
            dimension, names=patterns, bundles=bundles, pass_through=filters
        )
        if len(selected) == len(filters):
            # Nothing in this dimension matched, so no component can pass every filter
            return []
        filters = selected

    return catalog.get_components(
        names=options.get("name") or None,
        bundles=bundles,
        filters=filters,
        version_mode=(options.get("mode") or VersionMode.ALL).upper(),
    )


class CatalogCommand(BaseCommand):
    """Load the bundles named on the command line into a fresh catalog, then act on them.

    The catalog lives in memory, so it only holds what this one command loads.
    """

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "bundle_roots",
            nargs="+",
            metavar="BUNDLE_ROOT",
            help="Directory holding an extracted bundle",
        )
        parser.add_argument(
            "-l",
            "--language",
            default="",
            help="Language of names and notes, if the manifests carry translations",
        )

    def handle(self, *args, **options) -> None:
        catalog = Catalog.open(language=options["language"])
        try:
            bundles = [
                catalog.add_bundle(root, progress=self.progress_writer(options))
                for root in options["bundle_roots"]
            ]
            self.handle_catalog(catalog, bundles, **options)
        except CatalogError as exc:
            raise CommandError(str(exc)) from exc

    def handle_catalog(self, catalog: Catalog, bundles: list[Bundle], **options) -> None:
        raise NotImplementedError("subclasses of CatalogCommand must provide a handle_catalog()")

    def progress_writer(self, options: dict):
        if options.get("verbosity", 1) < 2:
            return None

        def write_progress(message: str, percent: int) -> None:
            self.stderr.write(f"{percent:3d}% {message}")

        return write_progress
