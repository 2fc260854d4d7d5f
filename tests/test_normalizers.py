"""Tests for subject name normalization."""

import pytest

from app.utils.normalizers import normalize_subject_name


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Maths", "Mathematics"),
        ("quantitative aptitude", "Mathematics"),
        ("GK", "General Studies/GK"),
        ("  general   awareness ", "General Studies/GK"),
        ("DBMS and SQL", "DBMS & SQL"),
        ("OS", "Operating Systems"),
        ("English", "English Language"),
    ],
)
def test_known_aliases(raw, expected):
    assert normalize_subject_name(raw) == expected


def test_canonical_names_are_stable():
    for name in ("Reasoning", "Mathematics", "Web Technologies", "C/C++ Programming"):
        assert normalize_subject_name(name) == name


def test_unknown_subject_is_title_cased():
    assert normalize_subject_name("  electrical machines ") == "Electrical Machines"


def test_empty_input():
    assert normalize_subject_name("") == ""
    assert normalize_subject_name("   ") == ""
