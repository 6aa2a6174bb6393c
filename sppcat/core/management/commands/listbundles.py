from django.core.management.base import CommandParser

from sppcat.core.catalog import Catalog
from sppcat.core.management.base import CatalogCommand
from sppcat.core.models import Bundle


class Command(CatalogCommand):

    help = "Load bundles and list them, newest first."

    def add_arguments(self, parser: CommandParser) -> None:
        super().add_arguments(parser)
        parser.add_argument(
            "-s",
            "--select",
            action="append",
            help="Only list bundles whose file matches this pattern",
        )

    def handle_catalog(self, catalog: Catalog, bundles: list[Bundle], **options) -> None:
        for bundle in catalog.get_bundles(options["select"]):
            release_date = bundle.release_date.date().isoformat() if bundle.release_date else "-"
            self.stdout.write(
                f"{bundle.name} {bundle.full_version}, released {release_date}, "
                f"{bundle.components.count()} components: {bundle.file}"
            )
