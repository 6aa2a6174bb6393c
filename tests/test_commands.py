import csv
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from sppcat.core.models import Bundle, FilterEntity
from sppcat.core.reports import CsvReportFile
from tests.bundles import component_record

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


def run(command, *args, **kwargs) -> str:
    out = StringIO()
    call_command(command, *args, stdout=out, **kwargs)
    return out.getvalue()


@pytest.fixture
def two_releases(bundle_writer):
    """The same firmware in two releases, plus a driver which only the first one ships"""
    ilo_old = component_record("ILO", name="iLO 5 firmware", version="1.20")
    ilo_new = component_record("ILO", name="iLO 5 firmware", version="1.30")
    nic = component_record("NIC", name="NIC driver", version="2.1")
    system = FilterEntity.Dimension.SYSTEM
    old = bundle_writer(
        "2018.03.0", [ilo_old, nic], {system: [("dl360", "DL360 Gen10", [ilo_old, nic])]}
    )
    new = bundle_writer("2018.06.0", [ilo_new], {system: [("dl360", "DL360 Gen10", [ilo_new])]})
    return str(old), str(new)


def test_listbundles(sample_bundle):
    output = run("listbundles", str(sample_bundle))
    assert "Service Pack for ProLiant 2018.03.0, released 2018-03-26, 2 components" in output
    assert "bp001234.xml" in output


def test_listbundles_newest_first(two_releases):
    lines = run("listbundles", *two_releases).splitlines()
    assert [line.split(",")[0] for line in lines] == [
        "Service Pack for ProLiant 2018.06.0",
        "Service Pack for ProLiant 2018.03.0",
    ]


def test_listbundles_select(two_releases):
    output = run("listbundles", *two_releases, "--select", "*2018.06.0*")
    assert len(output.splitlines()) == 1


def test_listbundles_missing_bundle(tmp_path):
    with pytest.raises(CommandError, match="does not exist"):
        call_command("listbundles", str(tmp_path / "nowhere"))
    assert not Bundle.objects.exists()


def test_listfilters(sample_bundle):
    output = run("listfilters", "system", str(sample_bundle), "--name", "*DL360*")
    assert output.splitlines() == [
        "HPE ProLiant DL360 Gen10 (dl360gen10): 2 components in 1 bundles"
    ]


def test_componentreport_csv(sample_bundle):
    output = run("componentreport", str(sample_bundle), "--system", "*DL380*")
    rows = list(csv.DictReader(StringIO(output)))
    assert [row["product id"] for row in rows] == ["ILO5FW"]
    assert rows[0]["type of change"] == "Critical"


def test_componentreport_unmatched_filter(sample_bundle):
    output = run("componentreport", str(sample_bundle), "--system", "*Synergy*")
    assert output.splitlines() == [",".join(CsvReportFile.HEADER)]


@pytest.mark.parametrize(
    "mode,expected",
    [
        ("changed", [("ILO", "1.20"), ("ILO", "1.30")]),
        ("unique", [("NIC", "2.1")]),
        ("unchanged", []),
        ("all", [("ILO", "1.20"), ("ILO", "1.30"), ("NIC", "2.1")]),
    ],
)
def test_componentreport_modes(two_releases, mode, expected):
    output = run("componentreport", *two_releases, "--mode", mode)
    rows = csv.DictReader(StringIO(output))
    assert sorted((row["product id"], row["full version"]) for row in rows) == expected


def test_componentreport_html_file(two_releases, tmp_path):
    path = tmp_path / "report.html"
    output = run(
        "componentreport",
        *two_releases,
        "--format",
        "html",
        "--output",
        str(path),
        "--title",
        "DL360 update",
        "--system",
        "dl360*",
    )
    assert f"Wrote 3 components to {path}" in output
    content = path.read_text(encoding="utf-8")
    assert "<title>DL360 update</title>" in content
    assert "iLO 5 firmware" in content


def test_componentreport_bad_mode(sample_bundle):
    with pytest.raises(CommandError):
        call_command("componentreport", str(sample_bundle), "--mode", "newest")


def test_copycomponents(two_releases, tmp_path):
    destination = tmp_path / "out"
    output = run(
        "copycomponents", *two_releases, "--destination", str(destination), "--name", "nic*"
    )
    assert "Copied 1 files of 1 components" in output
    assert sorted(path.name for path in destination.iterdir()) == ["nic-2.1.rpm"]


def test_copycomponents_nothing_selected(two_releases, tmp_path):
    output = run(
        "copycomponents", *two_releases, "--destination", str(tmp_path / "out"), "--os", "*"
    )
    assert "No components selected" in output
    assert not (tmp_path / "out").exists()


def test_catalogshell(two_releases, tmp_path):
    old, new = two_releases
    report = tmp_path / "changed.csv"
    script = "\n".join(
        [
            f"add {old}",
            f"add {new}",
            f"add {new}",
            "bundles",
            "filters system",
            "components --mode unique",
            f"report --mode changed --output {report}",
            "remove *2018.06.0*",
            "n",
            "remove *2018.03.0* -y",
            "bundles",
            "quit",
        ]
    )
    err = StringIO()
    output = run("catalogshell", stdin=StringIO(script), stderr=err)

    assert output.count("Added Service Pack for ProLiant") == 2
    assert "already in the catalog" in err.getvalue()
    assert "DL360 Gen10 (dl360)" in output
    assert "NIC driver 2.1 (NIC/NIC-2.1)" in output
    assert "Wrote 2 components" in output
    assert len(list(csv.DictReader(report.open(encoding="utf-8")))) == 2
    assert "Remove " in output
    assert "Removed" in output
    assert [bundle.full_version for bundle in Bundle.objects.all()] == ["2018.06.0"]


def test_catalogshell_preloaded_bundles(two_releases):
    output = run("catalogshell", *two_releases, stdin=StringIO("bundles\n"))
    assert output.count("Service Pack for ProLiant 2018.0") == 2


def test_catalogshell_bad_arguments(tmp_path):
    err = StringIO()
    run("catalogshell", stdin=StringIO("filters planet\ncopy\n"), stderr=err)
    assert "invalid choice" in err.getvalue()
    assert "--destination" in err.getvalue()


def test_catalogshell_keeps_catalog_after_user_errors(two_releases, tmp_path):
    script = "\n".join(
        [
            'components --name "ilo',
            f"report --output {tmp_path / 'no' / 'such' / 'report.csv'}",
            "bundles",
        ]
    )
    err = StringIO()
    output = run("catalogshell", *two_releases, stdin=StringIO(script), stderr=err)

    assert "No closing quotation" in err.getvalue()
    assert "report.csv" in err.getvalue()
    assert output.count("Service Pack for ProLiant 2018.0") == 2
    assert not (tmp_path / "no").exists()
