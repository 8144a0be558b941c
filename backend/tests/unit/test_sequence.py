from __future__ import annotations

from datetime import date
from itertools import permutations, product

import pytest

from staffid.models.employee_id import IdContext
from staffid.services.id_format import render, validate_format
from staffid.services.sequence import matches_skeleton, next_sequence

TODAY = date(2024, 6, 15)
STANDARD_FORMAT = "EMP{YYYY}-{###}"


def test_next_sequence_after_existing_ids():
    assert next_sequence(STANDARD_FORMAT, {"EMP2024-001", "EMP2024-002"}, TODAY) == 3


def test_next_sequence_without_ids():
    assert next_sequence(STANDARD_FORMAT, set(), TODAY) == 1


def test_next_sequence_ignores_other_years():
    assert next_sequence(STANDARD_FORMAT, {"EMP2023-010", "EMP2024-002"}, TODAY) == 3


def test_next_sequence_ignores_ids_from_another_format():
    assert next_sequence(STANDARD_FORMAT, ["E-0099", "EMP2024-004", "u7"], TODAY) == 5


def test_next_sequence_reads_sequences_wider_than_padding():
    assert next_sequence(STANDARD_FORMAT, ["EMP2024-999", "EMP2024-1000"], TODAY) == 1001


def test_next_sequence_across_field_values():
    assert next_sequence("{DEPT}-{###}", ["HR-004", "ENG-007", "009"], TODAY) == 10


def test_next_sequence_format_without_sequence():
    assert next_sequence("EMP{YYYY}", ["EMP2024"], TODAY) == 1


def test_matches_skeleton_any_year():
    assert matches_skeleton(STANDARD_FORMAT, "EMP2019-044")
    assert matches_skeleton(STANDARD_FORMAT, "EMP2024-1234")


def test_matches_skeleton_rejects_foreign_ids():
    assert not matches_skeleton(STANDARD_FORMAT, "legacy-17")
    assert not matches_skeleton(STANDARD_FORMAT, "EMP2024-01")
    assert not matches_skeleton(STANDARD_FORMAT, "EMP2024-001\n")


def test_matches_skeleton_optional_field():
    fmt = "EMP-{DEPT}-{###}"
    assert matches_skeleton(fmt, "EMP-001")
    assert matches_skeleton(fmt, "EMP-HR-001")
    assert not matches_skeleton(fmt, "EMP-hr-001")


def test_next_sequence_field_with_digits_before_sequence():
    assert next_sequence("{DEPT}{###}", ["R2007"], TODAY) == 8


def test_matches_skeleton_adjacent_empty_fields():
    assert matches_skeleton("{DEPT}{LOC}-{###}", "001")
    assert matches_skeleton("EMP{###}-{DEPT}{LOC}", "EMP001")
    assert matches_skeleton("-{LOC}{DEPT}-{###}", "-001")


def _formats() -> list[str]:
    formats = []
    for order in permutations(["{DEPT}", "{LOC}", "{###}"]):
        for seps in product(["", "-"], repeat=4):
            fmt = seps[0] + "".join(p + s for p, s in zip(order, seps[1:]))
            if validate_format(fmt)[0]:
                formats.append(fmt)
    return formats + ["EMP{YYYY}-{DEPT}-{TYPE}-{LOC}-{###}", "{YY}{MM}/{TYPE}_{DEPT}.{####}/{LOC}"]


@pytest.mark.parametrize("fmt", _formats())
def test_rendered_ids_round_trip(fmt):
    values = {"department": "HR", "location": "NY", "employee_type": "FT"}
    for mask in product([False, True], repeat=len(values)):
        fields = {k: v for (k, v), keep in zip(values.items(), mask) if keep}
        for sequence in (1, 1234):
            rendered = render(fmt, IdContext(sequence=sequence, **fields), TODAY)
            assert matches_skeleton(fmt, rendered), rendered
            assert next_sequence(fmt, [rendered], TODAY) == sequence + 1, rendered
