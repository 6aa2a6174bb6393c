import cmd
import shlex
import sys
import traceback

from django.core.management.base import BaseCommand, CommandError, CommandParser

from config.utils import running_dev
from sppcat import __version__
from sppcat.core.catalog import Catalog
from sppcat.core.exceptions import CatalogError
from sppcat.core.export import copy_components
from sppcat.core.management.base import (
    DIMENSION_NAMES,
    add_selection_arguments,
    select_components,
)
from sppcat.core.models import Bundle
from sppcat.core.reports import REPORT_FORMATS


class CatalogShell(cmd.Cmd):
    """Interactive session holding one catalog, so bundles can be added and removed between
    queries. Every command parses its own arguments; run "help COMMAND" for the options."""

    prompt = "sppcat> "

    def __init__(self, command: BaseCommand, catalog: Catalog, stdin=None):
        super().__init__(stdin=stdin, stdout=command.stdout)
        # cmd.Cmd only reads from stdin itself when it isn't the terminal
        self.use_rawinput = stdin is None or stdin is sys.stdin
        self.command = command
        self.catalog = catalog
        self.intro = f"sppcat {__version__}, type help or ? to list commands."

    def parser(self, name: str, description: str) -> CommandParser:
        # Not called from the command line, so bad arguments raise CommandError instead of exiting
        return CommandParser(
            prog=name, description=description, add_help=False, called_from_command_line=False
        )

    def parse(self, parser: CommandParser, line: str) -> dict:
        try:
            args = shlex.split(line)
        except ValueError as exc:
            raise CommandError(f"Error: {exc}") from exc
        return vars(parser.parse_args(args))

    def write(self, message: str, style=None) -> None:
        self.command.stdout.write(message, style_func=style)

    def onecmd(self, line: str) -> bool:
        try:
            return super().onecmd(line)
        except (CatalogError, CommandError, OSError) as exc:
            if running_dev():
                self.command.stderr.write(traceback.format_exc())
            self.command.stderr.write(str(exc))
            return False

    def emptyline(self) -> bool:
        return False

    def readline(self) -> str:
        if self.use_rawinput:
            return input()
        return self.stdin.readline().strip()

    def confirm(self, bundle: Bundle) -> bool:
        self.command.stdout.write(f"Remove {bundle.file}? [y/N] ", ending="")
        self.command.stdout.flush()
        try:
            answer = self.readline()
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    def selected_bundles(self, selectors):
        return self.catalog.get_bundles(selectors) if selectors else None

    def do_add(self, line: str) -> bool:
        """add BUNDLE_ROOT... | add --files BUNDLE_FILE MANIFEST_DIR PACKAGES_DIR
        Load bundles into the catalog."""
        parser = self.parser("add", "Load bundles into the catalog")
        parser.add_argument("locations", nargs="+")
        parser.add_argument(
            "--files",
            action="store_true",
            help="The locations are the bundle file, manifest directory and packages directory",
        )
        options = self.parse(parser, line)
        if options["files"]:
            if len(options["locations"]) != 3:
                raise CommandError("--files needs BUNDLE_FILE MANIFEST_DIR PACKAGES_DIR")
            locators = [tuple(options["locations"])]
        else:
            locators = options["locations"]

        for locator in locators:
            bundle = self.catalog.add_bundle(locator)
            self.write(f"Added {bundle} from {bundle.file}", self.command.style.SUCCESS)
        return False

    def do_remove(self, line: str) -> bool:
        """remove SELECTOR... [-y]
        Remove the bundles whose file matches any selector pattern."""
        parser = self.parser("remove", "Remove bundles from the catalog")
        parser.add_argument("selectors", nargs="+")
        parser.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")
        options = self.parse(parser, line)
        removed = self.catalog.remove_bundles(
            options["selectors"], confirm=None if options["yes"] else self.confirm
        )
        for bundle_file in removed:
            self.write(f"Removed {bundle_file}", self.command.style.SUCCESS)
        if not removed:
            self.write("No bundles removed")
        return False

    def do_bundles(self, line: str) -> bool:
        """bundles [SELECTOR...]
        List bundles, newest first."""
        parser = self.parser("bundles", "List bundles")
        parser.add_argument("selectors", nargs="*")
        options = self.parse(parser, line)
        for bundle in self.catalog.get_bundles(options["selectors"] or None):
            self.write(f"{bundle}: {bundle.file}")
        return False

    def do_filters(self, line: str) -> bool:
        """filters DIMENSION [--name PATTERN]... [--bundle SELECTOR]...
        List systems, operating systems, categories, devices or types."""
        parser = self.parser("filters", "List filter entries")
        parser.add_argument("dimension", choices=list(DIMENSION_NAMES))
        parser.add_argument("-n", "--name", action="append")
        parser.add_argument("-b", "--bundle", action="append")
        options = self.parse(parser, line)
        for entity in self.catalog.get_filter_entities(
            DIMENSION_NAMES[options["dimension"]],
            names=options["name"],
            bundles=self.selected_bundles(options["bundle"]),
        ):
            self.write(f"{entity.name} ({entity.key})")
        return False

    def selection_parser(self, name: str, description: str) -> CommandParser:
        parser = self.parser(name, description)
        parser.add_argument("-b", "--bundle", action="append", help="Bundle selector pattern")
        add_selection_arguments(parser)
        return parser

    def do_components(self, line: str) -> bool:
        """components [--bundle SELECTOR]... [--name PATTERN]... [--system PATTERN]...
        [--os PATTERN]... [--category PATTERN]... [--device PATTERN]... [--type PATTERN]...
        [--mode all|changed|unchanged|unique]
        List the selected components."""
        options = self.parse(self.selection_parser("components", "List components"), line)
        components = select_components(
            self.catalog, self.selected_bundles(options["bundle"]), options
        )
        for component in components:
            self.write(
                f"{component.name} {component.full_version} "
                f"({component.product_id}/{component.version_id}) in {component.bundle.file}"
            )
        return False

    def do_report(self, line: str) -> bool:
        """report --output FILE [--format csv|html] [selection options, see components]
        Write a report of the selected components."""
        parser = self.selection_parser("report", "Write a component report")
        parser.add_argument("-f", "--format", choices=list(REPORT_FORMATS), default="csv")
        parser.add_argument("-o", "--output", required=True)
        parser.add_argument("-t", "--title", default="")
        options = self.parse(parser, line)
        components = select_components(
            self.catalog, self.selected_bundles(options["bundle"]), options
        )
        REPORT_FORMATS[options["format"]](components, title=options["title"]).save(
            options["output"]
        )
        self.write(f"Wrote {len(components)} components to {options['output']}")
        return False

    def do_copy(self, line: str) -> bool:
        """copy --destination DIR [selection options, see components]
        Copy the package files of the selected components."""
        parser = self.selection_parser("copy", "Copy component package files")
        parser.add_argument("-d", "--destination", required=True)
        options = self.parse(parser, line)
        components = select_components(
            self.catalog, self.selected_bundles(options["bundle"]), options
        )
        copied = copy_components(components, options["destination"])
        self.write(f"Copied {len(copied)} files to {options['destination']}")
        return False

    def do_quit(self, line: str) -> bool:
        """quit
        Leave the shell, dropping the catalog."""
        return True

    do_EOF = do_quit


class Command(BaseCommand):

    help = "Start an interactive shell to load, query, report on and copy bundle components."
    stealth_options = ("stdin",)

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "bundle_roots",
            nargs="*",
            metavar="BUNDLE_ROOT",
            help="Bundles to load before the shell starts",
        )
        parser.add_argument("-l", "--language", default="", help="Language of names and notes")

    def handle(self, *args, **options) -> None:
        catalog = Catalog.open(language=options["language"])
        for root in options["bundle_roots"]:
            try:
                catalog.add_bundle(root)
            except CatalogError as exc:
                raise CommandError(str(exc)) from exc

        shell = CatalogShell(self, catalog, stdin=options.get("stdin"))
        if options.get("stdin") is not None:
            shell.intro = ""
        shell.cmdloop()
