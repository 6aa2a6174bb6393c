"""
    catalog constants
"""

import os

# Supported bundle directory conventions, as (packages subdirectory, manifest subdirectory)
# relative to the bundle root. The first convention with an existing pair of directories wins.
BUNDLE_LAYOUTS = (
    ("packages", "manifest"),
    (os.path.join("hp", "swpackages"), "hp_manifest"),
)

# The bundle description itself, e.g. packages/bp001234.xml
BUNDLE_FILE_PATTERN = "bp*.xml"

SYSTEM_MANIFEST = "system.xml"
OS_MANIFEST = "os.xml"
CATEGORY_MANIFEST = "category.xml"
DEVICE_MANIFEST = "device.xml"
TYPE_MANIFEST = "type.xml"
COMPONENT_MANIFEST = "meta.xml"
REVISION_HISTORY_MANIFEST = "revision_history.xml"

# Every one of these must exist before a bundle is ingested
REQUIRED_MANIFEST_FILES = (
    SYSTEM_MANIFEST,
    OS_MANIFEST,
    CATEGORY_MANIFEST,
    DEVICE_MANIFEST,
    TYPE_MANIFEST,
    COMPONENT_MANIFEST,
    REVISION_HISTORY_MANIFEST,
)

# Component notes, keyed by the name used in the catalog, valued by the manifest element name
NOTE_ELEMENTS = {
    "prerequisite": "prerequisite_notes",
    "installation": "installation_notes",
    "availability": "availability_notes",
    "documentation": "documentation_notes",
}

# Ingestion progress checkpoints, in the order bundles are read
STAGE_BUNDLE = ("Reading bundle", 0)
STAGE_SYSTEMS = ("Reading systems", 10)
STAGE_OPERATING_SYSTEMS = ("Reading operating systems", 20)
STAGE_CATEGORIES = ("Reading categories", 30)
STAGE_DEVICES = ("Reading devices", 40)
STAGE_TYPES = ("Reading types", 50)
STAGE_REVISION_HISTORY = ("Reading revision history", 60)
STAGE_COMPONENTS = ("Reading components", 70)
STAGE_DONE = ("Done", 100)
