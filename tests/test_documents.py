import io

import pytest

from documents.locations import LocationTable, load_locations
from documents.records import (
    BloodType,
    DocumentFamily,
    DocumentType,
    Gender,
    IdentityRecord,
    mask_document_number,
    normalize_name,
)


def _record(**overrides) -> IdentityRecord:
    fields = dict(
        document_number="1023456789",
        first_surname="Perez",
        second_surname="",
        first_name="Maria",
        middle_name="",
        birth_date=None,
        blood_type=BloodType.UNKNOWN,
        gender=Gender.UNKNOWN,
        family=DocumentFamily.MRZ_TD1,
    )
    fields.update(overrides)
    return IdentityRecord(**fields)


def test_document_type_families():
    assert DocumentType.CC_ANTIGUA.family is DocumentFamily.LEGACY_BARCODE
    assert DocumentType.TI.family is DocumentFamily.LEGACY_BARCODE
    assert DocumentType.CC_NUEVA.family is DocumentFamily.MRZ_TD1
    assert DocumentType.CE.family is DocumentFamily.MRZ_TD1


def test_document_type_parse_is_lenient_on_case():
    assert DocumentType.parse(" cc_nueva ") is DocumentType.CC_NUEVA
    assert DocumentType.parse(DocumentType.TI) is DocumentType.TI


def test_document_type_parse_rejects_unknown():
    with pytest.raises(ValueError, match="PASSPORT"):
        DocumentType.parse("PASSPORT")


def test_record_requires_document_number():
    with pytest.raises(ValueError):
        _record(document_number="")


def test_record_confidence_is_clamped():
    assert _record(confidence=140).confidence == 100
    assert _record(confidence=-3).confidence == 0


def test_record_to_dict_omits_absent_optionals():
    out = _record(confidence=90).to_dict()
    assert out["documentNumber"] == "1023456789"
    assert out["givenNames"] == "Maria"
    assert out["birthDate"] is None
    assert "location" not in out
    assert "nuip" not in out


def test_normalize_name():
    assert normalize_name("MARIA  DEL<CARMEN ") == "Maria Del Carmen"
    assert normalize_name("") == ""


def test_mask_document_number():
    assert mask_document_number("1023456789") == "******6789"
    assert mask_document_number("123") == "***"


def test_bundled_location_table_resolves_padded_codes():
    table = load_locations()
    loc = table.resolve("5", "1")
    assert loc is not None
    assert loc.department == "Antioquia"
    assert loc.municipality == "Medellín"
    assert table.resolve("11", "001").municipality == "Bogotá D.C."


@pytest.mark.parametrize(
    "department, municipality, expected",
    [
        ("25", "899", "Zipaquirá"),
        ("15", "407", "Villa de Leyva"),
        ("52", "835", "San Andrés de Tumaco"),
        ("85", "001", "Yopal"),
        ("91", "001", "Leticia"),
        ("99", "773", "Cumaribo"),
    ],
)
def test_bundled_table_covers_every_municipality(department, municipality, expected):
    table = load_locations()
    assert len(table) > 1100
    assert table.resolve(department, municipality).municipality == expected


def test_unknown_or_non_numeric_codes_resolve_to_none():
    table = load_locations()
    assert table.resolve("99", "999") is None
    assert table.resolve("<<", "001") is None


def test_location_table_from_csv_stream():
    csv_text = "department_code,department,municipality_code,municipality\n76,Valle del Cauca,1,Cali\n"
    table = LocationTable.from_csv(io.StringIO(csv_text))
    assert len(table) == 1
    assert "76001" in table
    assert table.resolve("76", "001").to_dict() == {
        "departmentCode": "76",
        "department": "Valle del Cauca",
        "municipalityCode": "001",
        "municipality": "Cali",
    }
