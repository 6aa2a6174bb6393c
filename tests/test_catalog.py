from unittest.mock import patch

import pytest

from sppcat.core.catalog import Catalog
from sppcat.core.models import FilterEntity
from tests.factories import ComponentFactory, FilterEntityFactory

pytestmark = [pytest.mark.unit, pytest.mark.django_db]


def test_open_existing_schema():
    with patch("sppcat.core.catalog.call_command") as migrate:
        catalog = Catalog.open(language="de")
    migrate.assert_not_called()
    assert catalog.using == "default"
    assert catalog.language == "de"


@patch("sppcat.core.catalog.call_command")
@patch("sppcat.core.catalog.connections")
def test_open_creates_schema(connections, migrate):
    connections["default"].introspection.table_names.return_value = []
    Catalog.open()
    migrate.assert_called_once_with("migrate", database="default", interactive=False, verbosity=0)


@pytest.mark.parametrize(
    "method,dimension",
    [
        ("get_systems", FilterEntity.Dimension.SYSTEM),
        ("get_operating_systems", FilterEntity.Dimension.OPERATING_SYSTEM),
        ("get_categories", FilterEntity.Dimension.CATEGORY),
        ("get_devices", FilterEntity.Dimension.DEVICE),
        ("get_types", FilterEntity.Dimension.TYPE),
    ],
)
def test_dimension_lookups(catalog, method, dimension):
    component = ComponentFactory()
    for value in FilterEntity.Dimension.values:
        FilterEntityFactory(dimension=value, name=value, components=[component])

    entities = getattr(catalog, method)()

    assert [entity.dimension for entity in entities] == [dimension]
    assert getattr(catalog, method)(names=["nothing"]) == []
