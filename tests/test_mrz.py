from datetime import date

import pytest

from conftest import build_td1
from documents.errors import MalformedMRZ, UnexpectedDocumentFamily
from documents.records import BloodType, DocumentFamily, Gender
from extraction.mrz import (
    compute_check_digit,
    parse_mrz_date,
    parse_td1,
    split_names,
)

TODAY = date(2026, 6, 1)


def _flip_digit(line: str, pos: int) -> str:
    return line[:pos] + str((int(line[pos]) + 1) % 10) + line[pos + 1:]


def test_check_digit_reference_values():
    # ICAO 9303 worked examples.
    assert compute_check_digit("D23145890") == "7"
    assert compute_check_digit("740812") == "2"
    assert compute_check_digit("120415") == "9"
    assert compute_check_digit("<<<<<<") == "0"


def test_parse_valid_block(td1_lines):
    record = parse_td1(td1_lines, today=TODAY)

    assert record.family is DocumentFamily.MRZ_TD1
    assert record.document_number == "1023456789"
    assert record.nuip == "1023456789"
    assert record.first_surname == "Perez"
    assert record.second_surname == "Gomez"
    assert record.first_name == "Maria"
    assert record.middle_name == "Fernanda"
    assert record.gender is Gender.FEMALE
    assert record.blood_type is BloodType.UNKNOWN
    assert record.birth_date == date(1990, 1, 15)
    assert record.expiry_date == date(2032, 1, 15)
    assert record.location is not None and record.location.department == "Antioquia"
    assert record.names_truncated is False
    assert record.confidence == 100


def test_serial_is_used_without_nuip():
    record = parse_td1(build_td1(serial="000123456", nuip=""), today=TODAY)
    assert record.document_number == "123456"
    assert record.nuip is None


def test_single_bad_field_digit_costs_exactly_one_penalty(td1_lines):
    l1, l2, l3 = td1_lines
    record = parse_td1([l1, _flip_digit(l2, 6), l3], today=TODAY)
    # Composite is not charged on top of the field failure.
    assert record.confidence == 85


@pytest.mark.parametrize(
    "line, pos",
    [
        (0, 6),    # serial digit
        (0, 14),   # serial check digit
        (0, 16),   # department code, composite only
        (1, 2),    # birth month
        (1, 10),   # expiry month
        (1, 14),   # expiry check digit
        (1, 21),   # NUIP digit, composite only
    ],
)
def test_any_protected_character_flip_costs_exactly_one_penalty(td1_lines, line, pos):
    lines = list(td1_lines)
    lines[line] = _flip_digit(lines[line], pos)
    record = parse_td1(lines, today=TODAY)
    assert record.confidence == 100 - 15


def test_bad_composite_alone_costs_one_penalty(td1_lines):
    l1, l2, l3 = td1_lines
    record = parse_td1([l1, _flip_digit(l2, 29), l3], today=TODAY)
    assert record.confidence == 85


def test_penalties_accumulate_per_failed_field(td1_lines):
    l1, l2, l3 = td1_lines
    bad = _flip_digit(_flip_digit(l2, 6), 14)
    record = parse_td1([_flip_digit(l1, 14), bad, l3], today=TODAY)
    assert record.confidence == 55


def test_ocr_lookalikes_in_header_are_tolerated(td1_lines):
    l1, l2, l3 = td1_lines
    record = parse_td1(["1" + l1[1:2] + "C0L" + l1[5:], l2, l3], today=TODAY)
    assert record.document_number == "1023456789"


def test_foreign_country_is_rejected(td1_lines):
    l1, l2, l3 = td1_lines
    with pytest.raises(UnexpectedDocumentFamily):
        parse_td1([l1[:2] + "UTO" + l1[5:], l2, l3])


def test_wrong_line_count_is_rejected(td1_lines):
    with pytest.raises(MalformedMRZ):
        parse_td1(td1_lines[:2])


def test_wrong_line_length_is_rejected(td1_lines):
    l1, l2, l3 = td1_lines
    with pytest.raises(MalformedMRZ, match="Line 3"):
        parse_td1([l1, l2, l3[:-2]])


def test_names_without_separator_are_all_surnames():
    surnames, given = split_names("PEREZ<GOMEZ<<<<<<<<<<<<<<<<<<<")
    assert surnames == ["Perez", "Gomez"]
    assert given == []


def test_birth_date_century_pivot():
    assert parse_mrz_date("250101", expiry=False, today=TODAY) == date(2025, 1, 1)
    assert parse_mrz_date("270101", expiry=False, today=TODAY) == date(1927, 1, 1)
    assert parse_mrz_date("800101", expiry=True) == date(2080, 1, 1)
    assert parse_mrz_date("991332", expiry=True) is None
