import os

import pytest

from sppcat.core.exceptions import Conflict, InvalidLayout, NotFound, ValidationError
from sppcat.core.lifecycle import add_bundle, remove_bundles
from sppcat.core.models import Bundle, Component, FilterEntity
from tests.bundles import bundle_file, component_record

pytestmark = [pytest.mark.unit, pytest.mark.django_db]

SYSTEM = FilterEntity.Dimension.SYSTEM
CATEGORY = FilterEntity.Dimension.CATEGORY


def assert_index_consistent():
    """Every membership points at a bundle in the catalog and a component of that bundle"""
    bundles = {bundle.file: bundle for bundle in Bundle.objects.all()}
    for entity in FilterEntity.objects.all():
        membership = entity.membership()
        assert membership, f"{entity} has no members"
        for file, keys in membership.items():
            assert file in bundles
            bundle_keys = {component.key for component in bundles[file].components.all()}
            assert keys <= bundle_keys


def test_add_sample_bundle(sample_bundle, progress_log):
    bundle = add_bundle(sample_bundle, progress=progress_log)

    assert bundle.file == os.path.join(str(sample_bundle), "packages", "bp001234.xml")
    assert bundle.full_version == "2018.03.0"
    assert str(bundle) == "Service Pack for ProLiant 2018.03.0"
    assert [component.product_id for component in bundle.components.all()] == [
        "ILO5FW",
        "NICDRV",
    ]

    ilo = bundle.components.get(product_id="ILO5FW")
    assert ilo.full_version == "1.20-1"
    assert [revision["version"] for revision in ilo.revision_history] == ["1.20", "1.15"]
    assert ilo.package_files() == [
        os.path.join(str(sample_bundle), "packages", "firmware-ilo5-1.20-1.1.x86_64.rpm"),
        os.path.join(str(sample_bundle), "packages", "firmware-ilo5-1.20-1.1.x86_64.compsig"),
    ]
    assert bundle.components.get(product_id="NICDRV").revision_history == []

    assert progress_log.calls[-1] == ("Done", 100)
    assert [percent for _, percent in progress_log.calls] == [0, 10, 20, 30, 40, 50, 60, 70, 100]


def test_add_builds_filter_index(sample_bundle):
    bundle = add_bundle(sample_bundle)

    systems = FilterEntity.objects.for_dimension(SYSTEM)
    # The Gen8 blade has no components in this bundle, so it isn't indexed
    assert sorted(systems.values_list("key", flat=True)) == ["dl360gen10", "dl380gen10"]
    dl360 = systems.get(key="dl360gen10")
    assert dl360.meta_attr == {"generation": "10"}
    assert dl360.membership() == {bundle.file: {("ILO5FW", "a0b1"), ("NICDRV", "c2d3")}}

    # Unknown members are dropped, the rest of the entity is kept
    network = FilterEntity.objects.for_dimension(CATEGORY).get(key="drv-net")
    assert network.membership() == {bundle.file: {("NICDRV", "c2d3")}}
    assert FilterEntity.objects.count() == 9
    assert_index_consistent()


def test_add_bundle_shares_entities(bundle_writer):
    first = component_record("P1", version="1.0")
    second = component_record("P1", version="1.1")
    old = add_bundle(bundle_writer("2018.03.0", [first], {SYSTEM: [("dl360", "DL360", [first])]}))
    new = add_bundle(bundle_writer("2018.06.0", [second], {SYSTEM: [("dl360", "DL360", [second])]}))

    dl360 = FilterEntity.objects.get(dimension=SYSTEM, key="dl360")
    assert dl360.membership() == {
        old.file: {("P1", "P1-1.0")},
        new.file: {("P1", "P1-1.1")},
    }
    assert_index_consistent()


def test_add_conflict(sample_bundle):
    add_bundle(sample_bundle)
    with pytest.raises(Conflict, match="bp001234.xml"):
        add_bundle(sample_bundle)
    assert Bundle.objects.count() == 1


def test_add_conflict_explicit_layout(sample_bundle):
    add_bundle(sample_bundle)
    with pytest.raises(Conflict):
        add_bundle(
            (
                sample_bundle / "packages" / "bp001234.xml",
                sample_bundle / "manifest",
                sample_bundle / "packages",
            )
        )


def test_add_conflict_ignores_case(sample_bundle):
    file = str(sample_bundle / "packages" / "bp001234.xml")
    Bundle.objects.create(
        file=file.upper(),
        manifest_dir=str(sample_bundle / "manifest"),
        packages_dir=str(sample_bundle / "packages"),
        name="Service Pack for ProLiant",
        version="2018.03",
    )
    with pytest.raises(Conflict):
        add_bundle(sample_bundle)
    assert Bundle.objects.count() == 1


def test_add_missing_root(tmp_path):
    with pytest.raises(NotFound):
        add_bundle(tmp_path / "nowhere")
    assert not Bundle.objects.exists()


def test_add_missing_manifest(sample_bundle):
    os.remove(sample_bundle / "manifest" / "revision_history.xml")
    with pytest.raises(NotFound, match="revision_history.xml"):
        add_bundle(sample_bundle)
    assert not Bundle.objects.exists()


def test_add_invalid_layout(tmp_path):
    (tmp_path / "spp" / "images").mkdir(parents=True)
    with pytest.raises(InvalidLayout):
        add_bundle(tmp_path / "spp")


def test_add_duplicate_component_key(bundle_writer):
    component = component_record("P1", version_id="V1")
    duplicate = component_record("P1", version="2.0", version_id="V1")
    root = bundle_writer("2018.03.0", [component, duplicate])
    with pytest.raises(ValidationError, match="P1/V1"):
        add_bundle(root)
    assert not Bundle.objects.exists()
    assert not Component.objects.exists()


def test_remove_cascades(bundle_writer):
    shared = component_record("P1", version="1.0")
    newer = component_record("P1", version="1.1")
    only_old = component_record("P2")
    old_root = bundle_writer(
        "2018.03.0",
        [shared, only_old],
        {
            SYSTEM: [("dl360", "DL360", [shared]), ("dl380", "DL380", [only_old])],
            CATEGORY: [("fw", "Firmware", [shared, only_old])],
        },
    )
    new_root = bundle_writer(
        "2018.06.0",
        [newer],
        {SYSTEM: [("dl360", "DL360", [newer])], CATEGORY: [("fw", "Firmware", [newer])]},
    )
    add_bundle(old_root)
    new = add_bundle(new_root)

    removed = remove_bundles([bundle_file(old_root)])

    assert removed == [bundle_file(old_root)]
    assert list(Bundle.objects.all()) == [new]
    assert Component.objects.count() == 1
    # Entities still referenced by the remaining bundle survive with only its memberships
    remaining = {new.file: {(newer["product_id"], newer["version_id"])}}
    assert FilterEntity.objects.get(key="dl360").membership() == remaining
    assert FilterEntity.objects.get(key="fw").membership() == remaining
    # DL380 was only in the removed bundle
    assert not FilterEntity.objects.filter(key="dl380").exists()
    assert_index_consistent()


def test_remove_only_bundle_drops_entity(bundle_writer):
    component = component_record("P1")
    root = bundle_writer("2018.03.0", [component], {SYSTEM: [("dl360", "DL360", [component])]})
    add_bundle(root)

    remove_bundles(["*"])

    assert not Bundle.objects.exists()
    assert not FilterEntity.objects.exists()


def test_remove_wildcard_selectors(bundle_writer):
    first = add_bundle(bundle_writer("2018.03.0", [component_record("P1")]))
    second = add_bundle(bundle_writer("2018.06.0", [component_record("P1")]))
    kept = add_bundle(bundle_writer("2019.03.0", [component_record("P1")]))

    removed = remove_bundles(["*SPP-2018.*"])

    assert sorted(removed) == sorted([first.file, second.file])
    assert list(Bundle.objects.all()) == [kept]


def test_remove_no_match_is_noop(sample_bundle):
    add_bundle(sample_bundle)
    assert remove_bundles(["*/nothing/*"]) == []
    assert Bundle.objects.count() == 1


def test_remove_confirm_declined(bundle_writer):
    first = add_bundle(bundle_writer("2018.03.0", [component_record("P1")]))
    second = add_bundle(bundle_writer("2018.06.0", [component_record("P1")]))
    asked = []

    def confirm(bundle):
        asked.append(bundle.file)
        return bundle.pk == second.pk

    removed = remove_bundles(["*"], confirm=confirm)

    assert sorted(asked) == sorted([first.file, second.file])
    assert removed == [second.file]
    assert list(Bundle.objects.all()) == [first]
