class CatalogError(Exception):
    """Base class for errors raised while changing the bundle catalog"""


class NotFound(CatalogError):
    """A bundle directory, bundle file, manifest file or package file is missing"""


class Conflict(CatalogError):
    """The bundle is already in the catalog"""


class InvalidLayout(CatalogError):
    """A bundle root matches none of the known directory conventions, or is ambiguous"""


class ValidationError(CatalogError):
    """Manifest content is malformed"""
