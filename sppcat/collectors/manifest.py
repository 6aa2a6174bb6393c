import logging
import os
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Iterable, NamedTuple, Optional

from django.conf import settings

from sppcat.collectors.layout import BundleLayout
from sppcat.core.constants import (
    CATEGORY_MANIFEST,
    COMPONENT_MANIFEST,
    DEVICE_MANIFEST,
    NOTE_ELEMENTS,
    OS_MANIFEST,
    REQUIRED_MANIFEST_FILES,
    REVISION_HISTORY_MANIFEST,
    STAGE_BUNDLE,
    STAGE_CATEGORIES,
    STAGE_COMPONENTS,
    STAGE_DEVICES,
    STAGE_OPERATING_SYSTEMS,
    STAGE_REVISION_HISTORY,
    STAGE_SYSTEMS,
    STAGE_TYPES,
    SYSTEM_MANIFEST,
    TYPE_MANIFEST,
)
from sppcat.core.exceptions import NotFound, ValidationError
from sppcat.core.models import FilterEntity, TypeOfChange
from sppcat.core.progress import ProgressCallback, report_progress

logger = logging.getLogger(__name__)

ComponentKey = tuple[str, str]

# Manifest files of the five filter dimensions, in the order they are read
FILTER_MANIFESTS = (
    (FilterEntity.Dimension.SYSTEM, SYSTEM_MANIFEST, STAGE_SYSTEMS),
    (FilterEntity.Dimension.OPERATING_SYSTEM, OS_MANIFEST, STAGE_OPERATING_SYSTEMS),
    (FilterEntity.Dimension.CATEGORY, CATEGORY_MANIFEST, STAGE_CATEGORIES),
    (FilterEntity.Dimension.DEVICE, DEVICE_MANIFEST, STAGE_DEVICES),
    (FilterEntity.Dimension.TYPE, TYPE_MANIFEST, STAGE_TYPES),
)

RELEASE_DATE_PARTS = (
    ("year", None),
    ("month", 1),
    ("day", 1),
    ("hour", 0),
    ("minute", 0),
    ("second", 0),
)

TRUE_VALUES = ("1", "true", "yes", "y")


class ManifestNotFound(NotFound):
    pass


class ManifestParseError(ValidationError):
    pass


class BundleManifest(NamedTuple):
    """Everything read from one bundle, before it's merged into the catalog"""

    bundle: dict
    # Dimension -> [{"key", "name", "meta_attr", "contents": [(product_id, version_id)]}]
    filter_entities: dict[str, list[dict]]
    # (product_id, version_id) -> revision history of that component
    revision_history: dict[ComponentKey, list[dict]]
    components: list[dict]


class Manifest:
    """Reader for the XML files describing a bundle: the bp*.xml bundle file in the packages
    directory, plus the seven files in the manifest directory.

    Human-readable text is stored once per language, as <name><name_xlate lang="en">...
    The configured language is picked, or the first translation if it's missing.
    Longer texts (notes, enhancements, fixes) are split into <part> elements.
    """

    def __init__(self, layout: BundleLayout, language: str = ""):
        self.layout = layout
        self.language = (language or settings.SPPCAT_LANGUAGE).lower()

    def check_files(self) -> None:
        """Fail before anything is read if any of the required manifest files is missing"""
        missing = [
            filename
            for filename in REQUIRED_MANIFEST_FILES
            if not os.path.isfile(os.path.join(self.layout.manifest_dir, filename))
        ]
        if missing:
            raise ManifestNotFound(
                f"Missing manifest files in {self.layout.manifest_dir}: {', '.join(missing)}"
            )

    def parse(self, progress: Optional[ProgressCallback] = None) -> BundleManifest:
        report_progress(progress, *STAGE_BUNDLE)
        bundle = self.parse_bundle()

        filter_entities = {}
        for dimension, filename, stage in FILTER_MANIFESTS:
            report_progress(progress, *stage)
            filter_entities[dimension] = self.parse_filter_entities(filename)

        report_progress(progress, *STAGE_REVISION_HISTORY)
        revision_history = self.parse_revision_history()

        report_progress(progress, *STAGE_COMPONENTS)
        components = self.parse_components()

        return BundleManifest(bundle, filter_entities, revision_history, components)

    def load(self, path: str) -> ET.Element:
        try:
            return ET.parse(path).getroot()
        except FileNotFoundError:
            raise ManifestNotFound(f"Manifest file {path} does not exist")
        except ET.ParseError as exc:
            raise ManifestParseError(f"Could not parse {path}: {exc}") from exc

    def load_manifest(self, filename: str) -> ET.Element:
        return self.load(os.path.join(self.layout.manifest_dir, filename))

    def parse_bundle(self) -> dict:
        root = self.load(self.layout.file)
        version = root.find("version")
        return {
            "file": self.layout.file,
            "manifest_dir": self.layout.manifest_dir,
            "packages_dir": self.layout.packages_dir,
            "product_id": root.get("product_id", ""),
            "version_id": root.get("version_id", ""),
            "name": self.translated(root.find("name")),
            "description": self.translated(root.find("description")),
            "alt_name": self.translated(root.find("alt_name")),
            "category": self.translated(root.find("category")),
            "version": version.get("value", "") if version is not None else "",
            "revision": version.get("revision", "") if version is not None else "",
            "release_date": self.release_date(root.find("release_date"), self.layout.file),
            "tag": (root.findtext("tag") or "").strip(),
            "divisions": self.translated_list(root.findall("divisions/division")),
            "operating_systems": self.translated_list(
                root.findall("operating_systems/operating_system")
            ),
            "notes": self.notes(root),
            "revision_history": self.revisions(root.find("revision_history"), self.layout.file),
            "package_contents": [
                (element.text or "").strip()
                for element in root.findall("package_contents/filename")
                if element.text
            ],
        }

    def parse_filter_entities(self, filename: str) -> list[dict]:
        """Read one of the filter dimension manifests.
        Each child of the root element is an entity with a key, a name and the list of
        component keys which belong to it."""
        root = self.load_manifest(filename)
        entities = []
        for element in root:
            key = element.get("key", "")
            if not key:
                raise ManifestParseError(f"<{element.tag}> entry without a key in {filename}")
            entities.append(
                {
                    "key": key,
                    "name": element.get("name") or self.translated(element.find("name")) or key,
                    "meta_attr": {
                        attribute: value
                        for attribute, value in element.attrib.items()
                        if attribute not in ("key", "name")
                    },
                    "contents": [
                        self.component_key(package, filename)
                        for package in element.findall("contents/package")
                    ],
                }
            )
        logger.debug(f"Read {len(entities)} entries from {filename}")
        return entities

    def parse_revision_history(self) -> dict[ComponentKey, list[dict]]:
        root = self.load_manifest(REVISION_HISTORY_MANIFEST)
        history = {}
        for package in root.findall("package"):
            key = self.component_key(package, REVISION_HISTORY_MANIFEST)
            history[key] = self.revisions(package, REVISION_HISTORY_MANIFEST)
        return history

    def parse_components(self) -> list[dict]:
        root = self.load_manifest(COMPONENT_MANIFEST)
        return [
            self.parse_component(element, position)
            for position, element in enumerate(root.findall("component"))
        ]

    def parse_component(self, element: ET.Element, position: int) -> dict:
        product_id, version_id = self.component_key(element, COMPONENT_MANIFEST)
        version = element.find("version")
        return {
            "position": position,
            "product_id": product_id,
            "version_id": version_id,
            "name": self.translated(element.find("name")),
            "description": self.translated(element.find("description")),
            "alt_name": self.translated(element.find("alt_name")),
            "filename": (element.findtext("filename") or "").strip(),
            "version": version.get("value", "") if version is not None else "",
            "revision": version.get("revision", "") if version is not None else "",
            "type_of_change": self.type_of_change(version, COMPONENT_MANIFEST),
            "build_number": (element.findtext("build_number") or "").strip(),
            "upgrade_requirement": self.flag(element.findtext("upgrade_requirement")),
            "manufacturer": self.translated(element.find("manufacturer_name")),
            "category": self.translated(element.find("category")),
            "disk_space": self.integer(element.findtext("diskspace"), COMPONENT_MANIFEST),
            "release_date": self.release_date(element.find("release_date"), COMPONENT_MANIFEST),
            "operating_systems": self.translated_list(
                element.findall("operating_systems/operating_system")
            ),
            "divisions": self.translated_list(element.findall("divisions/division")),
            "files": [self.parse_file(file_entry) for file_entry in element.findall("files/file")],
            "notes": self.notes(element),
        }

    def parse_file(self, element: ET.Element) -> dict:
        name = element.get("name", "")
        # The location inside the packages directory; most packages sit directly in it
        location = element.get("path", "")
        return {
            "name": name,
            "path": os.path.normpath(os.path.join(self.layout.packages_dir, location, name)),
            "size": self.integer(element.get("size"), COMPONENT_MANIFEST),
            "modified": element.get("modified", ""),
            "checksums": {
                checksum.get("type", "").lower(): (checksum.text or "").strip()
                for checksum in element.findall("checksum")
            },
        }

    @staticmethod
    def component_key(element: ET.Element, source: str) -> ComponentKey:
        product_id = element.get("product_id", "")
        version_id = element.get("version_id", "")
        if not product_id or not version_id:
            raise ManifestParseError(
                f"<{element.tag}> in {source} needs both product_id and version_id, "
                f"got {product_id!r} / {version_id!r}"
            )
        return product_id, version_id

    def pick_translation(self, translations: list[ET.Element]) -> ET.Element:
        for translation in translations:
            if translation.get("lang", "").lower() == self.language:
                return translation
        return translations[0]

    def translated(self, element: Optional[ET.Element]) -> str:
        """Text of an element in the configured language"""
        if element is None:
            return ""
        translations = [child for child in element if child.tag.endswith("_xlate")]
        if not translations:
            return (element.text or "").strip()
        return (self.pick_translation(translations).text or "").strip()

    def translated_parts(self, element: Optional[ET.Element]) -> list[str]:
        """Multi-part text of an element in the configured language"""
        if element is None:
            return []
        translations = [child for child in element if child.tag.endswith("_xlate")]
        source = self.pick_translation(translations) if translations else element
        parts = [(part.text or "").strip() for part in source.findall("part")]
        if not parts:
            parts = [(source.text or "").strip()]
        return [part for part in parts if part]

    def translated_list(self, elements: Iterable[ET.Element]) -> list[str]:
        return [text for text in (self.translated(element) for element in elements) if text]

    def notes(self, element: ET.Element) -> dict[str, list[str]]:
        notes = element.find("notes")
        if notes is None:
            # Components carry their notes directly, bundles wrap them in <notes>
            notes = element
        return {
            kind: self.translated_parts(notes.find(tag)) for kind, tag in NOTE_ELEMENTS.items()
        }

    def revisions(self, element: Optional[ET.Element], source: str) -> list[dict]:
        if element is None:
            return []
        return [
            {
                "version": revision.get("version", ""),
                "revision": revision.get("revision", ""),
                "type_of_change": self.type_of_change(revision, source),
                "enhancements": self.translated_parts(revision.find("enhancements")),
                "fixes": self.translated_parts(revision.find("fixes")),
            }
            for revision in element.findall("revision")
        ]

    @staticmethod
    def type_of_change(element: Optional[ET.Element], source: str) -> int:
        if element is None:
            return TypeOfChange.OPTIONAL
        value = element.get("type_of_change", "")
        if not value:
            return TypeOfChange.OPTIONAL
        try:
            return TypeOfChange(int(value)).value
        except ValueError as exc:
            raise ManifestParseError(f"Invalid type_of_change {value!r} in {source}") from exc

    @staticmethod
    def flag(value: Optional[str]) -> bool:
        return (value or "").strip().lower() in TRUE_VALUES

    @staticmethod
    def integer(value: Optional[str], source: str) -> int:
        if not value or not value.strip():
            return 0
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ManifestParseError(f"Expected a number in {source}, got {value!r}") from exc

    @staticmethod
    def release_date(element: Optional[ET.Element], source: str) -> Optional[datetime]:
        """Assemble <release_date year= month= day= hour= minute= second=/> into a datetime"""
        if element is None or not element.get("year"):
            return None
        try:
            parts = [
                int(element.get(part) or default)  # type: ignore[arg-type]
                for part, default in RELEASE_DATE_PARTS
            ]
            return datetime(*parts, tzinfo=timezone.utc)
        except (TypeError, ValueError) as exc:
            raise ManifestParseError(f"Invalid release date in {source}: {exc}") from exc
