from django.core.management.base import CommandParser

from sppcat.core.catalog import Catalog
from sppcat.core.management.base import DIMENSION_NAMES, CatalogCommand
from sppcat.core.models import Bundle


class Command(CatalogCommand):

    help = "Load bundles and list the systems, operating systems, categories, devices or types."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("dimension", choices=list(DIMENSION_NAMES), help="What to list")
        super().add_arguments(parser)
        parser.add_argument(
            "-n", "--name", action="append", help="Only list entries whose name matches a pattern"
        )

    def handle_catalog(self, catalog: Catalog, bundles: list[Bundle], **options) -> None:
        entities = catalog.get_filter_entities(
            DIMENSION_NAMES[options["dimension"]], names=options["name"], bundles=bundles
        )
        for entity in entities:
            membership = entity.membership()
            component_count = sum(len(keys) for keys in membership.values())
            self.stdout.write(
                f"{entity.name} ({entity.key}): {component_count} components "
                f"in {len(membership)} bundles"
            )
        if options["verbosity"] > 1:
            self.stdout.write(self.style.SUCCESS(f"{len(entities)} entries"))
