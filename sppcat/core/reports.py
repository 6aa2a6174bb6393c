import csv
import io
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Optional, TextIO

from django.conf import settings
from django.template.loader import render_to_string

from sppcat import __version__
from sppcat.core.models import Component, TypeOfChange

logger = logging.getLogger(__name__)


class ReportFile(ABC):
    """A human-readable listing of components, as returned by get_components()"""

    CONTENT_TYPE = "text/plain"

    def __init__(self, components: Iterable[Component], title: str = "") -> None:
        self.components = list(components)
        self.title = title or settings.SPPCAT_REPORT_TITLE

    @abstractmethod
    def render_content(self, created_at: datetime) -> str:
        pass

    def write(self, stream: TextIO, created_at: Optional[datetime] = None) -> None:
        stream.write(self.render_content(created_at or datetime.now(tz=timezone.utc)))

    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8", newline="") as report:
            self.write(report)
        logger.info(f"Wrote {len(self.components)} components to {self.CONTENT_TYPE} report {path}")


class CsvReportFile(ReportFile):
    """One row per component, in the order they were given"""

    CONTENT_TYPE = "text/csv"
    HEADER = (
        "bundle",
        "name",
        "product id",
        "version id",
        "version",
        "revision",
        "full version",
        "type of change",
        "category",
        "filename",
        "release date",
    )

    def render_content(self, created_at: datetime) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(self.HEADER)
        for component in self.components:
            writer.writerow(self.build_row(component))
        return output.getvalue()

    @staticmethod
    def build_row(component: Component) -> tuple:
        release_date = component.release_date.date().isoformat() if component.release_date else ""
        return (
            component.bundle.file,
            component.name,
            component.product_id,
            component.version_id,
            component.version,
            component.revision,
            component.full_version,
            TypeOfChange(component.type_of_change).label,
            component.category,
            component.filename,
            release_date,
        )


class HtmlReportFile(ReportFile):
    """Components grouped by product ID, so the versions shipped by each bundle sit side by side"""

    CONTENT_TYPE = "text/html"
    TEMPLATE_NAME = "component_report.html"

    def group_components(self) -> list[dict]:
        groups: dict[str, list[Component]] = defaultdict(list)
        for component in self.components:
            groups[component.product_id].append(component)
        # Dicts keep insertion order, so groups follow the order of their first component
        return [
            {"product_id": product_id, "name": members[0].name, "components": members}
            for product_id, members in groups.items()
        ]

    def render_content(self, created_at: datetime) -> str:
        bundles = {component.bundle.pk: component.bundle for component in self.components}
        return render_to_string(
            self.TEMPLATE_NAME,
            {
                "title": self.title,
                "created_at": created_at,
                "version": __version__,
                "bundles": sorted(bundles.values(), key=lambda bundle: bundle.file),
                "groups": self.group_components(),
                "component_count": len(self.components),
            },
        )


REPORT_FORMATS = {
    "csv": CsvReportFile,
    "html": HtmlReportFile,
}
