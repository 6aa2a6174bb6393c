from django.core.management.base import CommandParser

from sppcat.core.catalog import Catalog
from sppcat.core.management.base import (
    CatalogCommand,
    add_selection_arguments,
    select_components,
)
from sppcat.core.models import Bundle
from sppcat.core.reports import REPORT_FORMATS


class Command(CatalogCommand):

    help = "Load bundles and write a CSV or HTML report of the selected components."

    def add_arguments(self, parser: CommandParser) -> None:
        super().add_arguments(parser)
        add_selection_arguments(parser)
        parser.add_argument(
            "-f", "--format", choices=list(REPORT_FORMATS), default="csv", help="Report format"
        )
        parser.add_argument(
            "-o", "--output", help="File to write the report to, instead of standard output"
        )
        parser.add_argument("-t", "--title", default="", help="Title of the HTML report")

    def handle_catalog(self, catalog: Catalog, bundles: list[Bundle], **options) -> None:
        components = select_components(catalog, bundles, options)
        report = REPORT_FORMATS[options["format"]](components, title=options["title"])
        if options["output"]:
            report.save(options["output"])
            self.stdout.write(
                self.style.SUCCESS(f"Wrote {len(components)} components to {options['output']}")
            )
        else:
            report.write(self.stdout)
