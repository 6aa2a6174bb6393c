from django.core.management.base import CommandParser

from sppcat.core.catalog import Catalog
from sppcat.core.export import copy_components
from sppcat.core.management.base import (
    CatalogCommand,
    add_selection_arguments,
    select_components,
)
from sppcat.core.models import Bundle


class Command(CatalogCommand):

    help = "Load bundles and copy the package files of the selected components to a directory."

    def add_arguments(self, parser: CommandParser) -> None:
        super().add_arguments(parser)
        add_selection_arguments(parser)
        parser.add_argument(
            "-d",
            "--destination",
            required=True,
            help="Directory to copy to, created if it doesn't exist",
        )

    def handle_catalog(self, catalog: Catalog, bundles: list[Bundle], **options) -> None:
        components = select_components(catalog, bundles, options)
        if not components:
            self.stdout.write(self.style.WARNING("No components selected, nothing to copy"))
            return

        copied = copy_components(
            components, options["destination"], progress=self.progress_writer(options)
        )
        for path in copied:
            self.stdout.write(path)
        self.stdout.write(
            self.style.SUCCESS(
                f"Copied {len(copied)} files of {len(components)} components "
                f"to {options['destination']}"
            )
        )
