"""
vehicle-diagnostics — unit tests for record resolution and loading

Purpose
- Validate identifier resolution and XML/JSON/YAML deserialization into ``Vehicle``.

What this test file should cover
- Direct paths, search-dir probing and the preferred suffix order.
- Empty vs. missing XML identity elements.
- Attribute and child-element part fields.
- Parse failures surface as ``RecordParseError`` with the offending path.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from vehicle_diagnostics.domain import ConditionType, Part, PartType
from vehicle_diagnostics.records import (
    RecordError,
    RecordNotFoundError,
    RecordParseError,
    load_record,
    load_vehicle,
    resolve_record,
)

SAMPLES_DIR = Path(__file__).resolve().parents[3] / "samples" / "records"


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_resolve_uses_existing_file_directly(tmp_path: Path) -> None:
    record = _write(tmp_path / "car.json", "{}")

    assert resolve_record(str(record)) == record.resolve()


def test_resolve_probes_search_dirs_in_order(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(second / "car9.json", "{}")
    _write(second / "car9.xml", "<car/>")

    resolved = resolve_record("car9", [first, second])

    assert resolved == (second / "car9.xml").resolve()


def test_resolve_prefers_configured_suffix(tmp_path: Path) -> None:
    _write(tmp_path / "car9.xml", "<car/>")
    _write(tmp_path / "car9.yaml", "year: '2001'\n")

    assert resolve_record("car9", [tmp_path], preferred_suffix="yaml").suffix == ".yaml"
    assert resolve_record("car9", [tmp_path], preferred_suffix=".xml").suffix == ".xml"


def test_resolve_failure_lists_probed_locations(tmp_path: Path) -> None:
    with pytest.raises(RecordNotFoundError) as excinfo:
        resolve_record("ghost", [tmp_path])

    message = str(excinfo.value)
    assert "unable to locate vehicle record" in message
    assert str(tmp_path / "ghost.xml") in message
    assert str(tmp_path / "ghost.yml") in message
    assert isinstance(excinfo.value, RecordError)
    assert isinstance(excinfo.value, ValueError)


def test_resolve_tries_suffixed_name_verbatim_in_search_dirs(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    records = tmp_path / "records"
    _write(records / "car1.xml", "<car/>")
    monkeypatch.chdir(tmp_path)

    assert resolve_record("car1.xml", [records]) == (records / "car1.xml").resolve()


def test_resolve_rejects_blank_identifier() -> None:
    with pytest.raises(RecordNotFoundError, match="must not be empty"):
        resolve_record("   ")


def test_xml_record_with_attribute_parts(tmp_path: Path) -> None:
    record = _write(
        tmp_path / "car.xml",
        """<?xml version="1.0"?>
<car>
  <year>2012</year>
  <make>Chevrolet</make>
  <model>Malibu</model>
  <parts>
    <part type="ENGINE" condition="FLAT"/>
    <part type="TIRE"/>
  </parts>
</car>
""",
    )

    vehicle = load_vehicle(record)

    assert (vehicle.year, vehicle.make, vehicle.model) == ("2012", "Chevrolet", "Malibu")
    assert vehicle.parts == (
        Part(PartType.ENGINE, ConditionType.FLAT),
        Part(PartType.TIRE, None),
    )


def test_xml_missing_element_is_absent_but_empty_element_is_present(tmp_path: Path) -> None:
    record = _write(tmp_path / "car.xml", "<car><year></year><model>Civic</model></car>")

    vehicle = load_vehicle(record)

    assert vehicle.year == ""
    assert vehicle.make is None
    assert vehicle.missing_identity_fields() == ("Make",)
    assert vehicle.parts == ()


def test_xml_child_element_part_fields(tmp_path: Path) -> None:
    record = _write(
        tmp_path / "car.xml",
        """<vehicle>
  <year>1999</year><make>Saab</make><model>900</model>
  <parts><type>TIRE</type><condition>WORN</condition></parts>
  <parts><type>ENGINE</type><condition/></parts>
</vehicle>""",
    )

    vehicle = load_vehicle(record)

    assert vehicle.parts == (
        Part(PartType.TIRE, ConditionType.WORN),
        Part(PartType.ENGINE, None),
    )


def test_xml_blank_condition_attribute_is_absent(tmp_path: Path) -> None:
    record = _write(
        tmp_path / "car.xml",
        """<car>
  <year>2012</year><make>Chevrolet</make><model>Malibu</model>
  <parts>
    <part type="ENGINE" condition=""/>
    <part type="TIRE" condition="  "/>
    <part type="ELECTRICAL"><condition/></part>
  </parts>
</car>""",
    )

    vehicle = load_vehicle(record)

    assert vehicle.parts == (
        Part(PartType.ENGINE, None),
        Part(PartType.TIRE, None),
        Part(PartType.ELECTRICAL, None),
    )


@pytest.mark.parametrize(
    ("text", "fragment"),
    [
        ("<car><year>2012", "invalid XML"),
        ("<truck/>", "unexpected root element <truck>"),
        ("<car><colour>red</colour></car>", "unexpected element <colour>"),
        ("<car><make>A</make><make>B</make></car>", "duplicate <make> element"),
        ("<car><parts><part type='SPOILER'/></parts></car>", "record does not describe a vehicle"),
    ],
)
def test_xml_parse_failures(tmp_path: Path, text: str, fragment: str) -> None:
    record = _write(tmp_path / "bad.xml", text)

    with pytest.raises(RecordParseError, match=fragment) as excinfo:
        load_vehicle(record)
    assert excinfo.value.path == record


def test_json_and_yaml_records(tmp_path: Path) -> None:
    json_record = _write(
        tmp_path / "car.json",
        '{"year": 2015, "make": "Ford", "model": "Focus", "parts": [{"type": "TIRE"}]}',
    )
    yaml_record = _write(
        tmp_path / "car.yml",
        "year: '2004'\nmake: Toyota\nparts:\n  - type: engine\n    condition: good\n",
    )

    from_json = load_vehicle(json_record)
    from_yaml = load_vehicle(yaml_record)

    assert from_json.year == "2015"
    assert from_json.parts == (Part(PartType.TIRE, None),)
    assert from_yaml.model is None
    assert from_yaml.parts == (Part(PartType.ENGINE, ConditionType.GOOD),)


@pytest.mark.parametrize(
    ("name", "text", "fragment"),
    [
        ("bad.json", "{", "invalid JSON"),
        ("list.json", "[1, 2]", "record root must be an object"),
        ("bad.yaml", "year: [unclosed", "invalid YAML"),
        ("empty.yaml", "", "record root must be an object"),
        ("car.txt", "year=2012", "unsupported record format"),
    ],
)
def test_malformed_records_raise_parse_errors(
    tmp_path: Path, name: str, text: str, fragment: str
) -> None:
    record = _write(tmp_path / name, text)

    with pytest.raises(RecordParseError, match=fragment):
        load_vehicle(record)


def test_load_vehicle_missing_file_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(RecordNotFoundError, match="record file does not exist"):
        load_vehicle(tmp_path / "gone.json")


def test_load_record_returns_resolved_path_and_vehicle() -> None:
    path, vehicle = load_record("car1", [SAMPLES_DIR])

    assert path.name == "car1.xml"
    assert vehicle.make == "Chevrolet"
    assert len(vehicle.parts) == 8


@pytest.mark.parametrize(
    ("identifier", "suffix"),
    [("car2", ".xml"), ("car3", ".json"), ("car4", ".yaml")],
)
def test_sample_records_load(identifier: str, suffix: str) -> None:
    path, _ = load_record(identifier, [SAMPLES_DIR])

    assert path.suffix == suffix
