"""Tests for the signal analyzers."""

from datetime import date

import pytest

from analyzers import ANALYZERS, AnalysisContext, DocumentType, suggest_document_type
from analyzers.content import analyze_content, parse_date_literal
from analyzers.fraud_patterns import analyze_fraud_patterns, formatting_inconsistency
from analyzers.metadata import analyze_metadata, expected_recipient_name
from analyzers.statistics import analyze_statistics, char_distribution_deviation
from analyzers.structure import analyze_structure


TODAY = date(2024, 6, 1)

BIRTH_TEXT = (
    "CERTIFICATE OF BIRTH\n"
    "State of Ohio, County of Franklin\n"
    "Name: Jane Smith\n"
    "Date of Birth: 03/14/1990\n"
    "Place: Columbus, Ohio\n"
    "This certifies that the child was born on the date above.\n"
)

SAMPLE_TEXT = "SAMPLE DOCUMENT Name: John Doe Date of Birth: 01/15/1995"


def ctx(document_type=None, metadata=None):
    return AnalysisContext(
        document_type=document_type,
        metadata=metadata or {},
        reference_date=TODAY,
    )


# ---------------------------------------------------------------------------
# structure
# ---------------------------------------------------------------------------

def test_structure_full_template_match():
    res = analyze_structure(BIRTH_TEXT, ctx("birth_certificate"))
    assert res.sub_score == 60
    assert res.flags == ()
    assert res.details["valid"] is True
    assert res.details["missing_fields"] == []
    assert res.details["missing_phrases"] == []


def test_structure_partial_match_flags_template_mismatch():
    res = analyze_structure(SAMPLE_TEXT, ctx("academic_transcript"))
    assert res.sub_score == 20
    assert res.flags == ("TEMPLATE_MISMATCH",)
    assert res.details["found_fields"]["name"] is True
    assert set(res.details["missing_fields"]) == {"institution", "grade"}
    assert res.details["valid"] is False


def test_structure_unknown_type_is_neutral_zero():
    res = analyze_structure(BIRTH_TEXT, ctx("passport"))
    assert res.sub_score == 0
    assert res.flags == ()
    assert res.details == {"valid": False, "reason": "Unknown document type"}


def test_structure_empty_text_misses_every_field():
    res = analyze_structure("", ctx("birth_certificate"))
    assert res.sub_score == 0
    assert res.details["missing_fields"] == ["name", "date", "place"]
    assert "TEMPLATE_MISMATCH" in res.flags


# ---------------------------------------------------------------------------
# content
# ---------------------------------------------------------------------------

def test_content_clean_document_scores_100():
    res = analyze_content(BIRTH_TEXT, ctx())
    assert res.sub_score == 100
    assert res.flags == ()
    assert res.details["dates"] == ["03/14/1990"]
    assert res.details["has_valid_names"] is True


def test_content_short_text_is_an_issue():
    res = analyze_content(SAMPLE_TEXT, ctx())
    assert res.details["word_count"] == 9
    assert res.flags == ("Insufficient content extracted",)
    assert res.sub_score == 90


def test_content_future_date_is_invalid():
    text = "Name: Jane Smith issued this statement about the record on 12/31/2099 today"
    res = analyze_content(text, ctx())
    assert res.flags == ("Invalid date: 12/31/2099",)
    assert res.sub_score == 100 - 25 - 10


def test_content_impossible_calendar_date_is_invalid():
    text = "Name: Jane Smith issued this statement about the record on 02/30/2020 today"
    res = analyze_content(text, ctx())
    assert "Invalid date: 02/30/2020" in res.flags
    assert res.details["has_valid_dates"] is False


def test_content_missing_date_is_not_penalised():
    text = "Name: Jane Smith worked with the company for many years in total here"
    res = analyze_content(text, ctx())
    assert res.sub_score == 100


def test_content_empty_text_collects_both_issues():
    res = analyze_content("", ctx())
    assert res.flags == ("No valid names found", "Insufficient content extracted")
    assert res.sub_score == 100 - 25 - 20


def test_content_reference_date_controls_future_check():
    text = "Name: Jane Smith issued this statement about the record on 05/01/2024 today"
    assert analyze_content(text, AnalysisContext(reference_date=date(2024, 6, 1))).sub_score == 100
    assert analyze_content(text, AnalysisContext(reference_date=date(2024, 4, 1))).sub_score == 65


@pytest.mark.parametrize(
    "literal, expected",
    [
        ("1/2/2020", date(2020, 1, 2)),
        ("12-31-1999", date(1999, 12, 31)),
        ("1/2/49", date(2049, 1, 2)),
        ("1/2/50", date(1950, 1, 2)),
        ("13/01/2020", None),
        ("2/29/2023", None),
    ],
)
def test_parse_date_literal(literal, expected):
    assert parse_date_literal(literal) == expected


# ---------------------------------------------------------------------------
# metadata
# ---------------------------------------------------------------------------

def test_metadata_name_and_type_confirmed():
    meta = {"recipient_name": "Jane Smith", "documentType": "birth_certificate"}
    res = analyze_metadata(BIRTH_TEXT, ctx(metadata=meta))
    assert res.sub_score == 70
    assert res.flags == ("NAME_MATCH", "TYPE_MATCH")


def test_metadata_nested_recipient_info():
    meta = {"recipientInfo": {"name": "jane smith"}}
    assert expected_recipient_name(meta) == "jane smith"
    res = analyze_metadata(BIRTH_TEXT, ctx(metadata=meta))
    assert res.sub_score == 40
    assert res.flags == ("NAME_MATCH",)


def test_metadata_mismatch_never_penalises():
    meta = {"recipient_name": "Someone Else", "document_type": "academic_transcript"}
    res = analyze_metadata(BIRTH_TEXT, ctx(metadata=meta))
    assert res.sub_score == 0
    assert res.flags == ()


def test_metadata_empty_is_zero():
    res = analyze_metadata(BIRTH_TEXT, ctx())
    assert res.sub_score == 0
    assert res.details["expected_name"] is None


# ---------------------------------------------------------------------------
# fraud patterns
# ---------------------------------------------------------------------------

def test_fraud_sample_watermark():
    res = analyze_fraud_patterns(SAMPLE_TEXT, ctx())
    assert res.flags == ("COPY_WATERMARK",)
    assert res.sub_score == 30
    assert res.details["risk_score"] == 30


def test_fraud_patterns_are_additive_in_config_order():
    res = analyze_fraud_patterns("This is a test copy, edited in photoshop", ctx())
    assert res.flags == ("COPY_WATERMARK", "TEST_DOCUMENT", "EDITING_TRACES")
    assert res.sub_score == 30 + 40 + 50


def test_fraud_pattern_counts_once_per_pattern():
    res = analyze_fraud_patterns("copy copy duplicate sample", ctx())
    assert res.sub_score == 30
    assert res.details["suspicious_patterns"][0]["matches"] == 4


def test_fraud_redaction_is_case_sensitive():
    assert analyze_fraud_patterns("SSN: ***-**-1234", ctx()).flags == ("REDACTED_CONTENT",)
    assert analyze_fraud_patterns("Account xxxx1234", ctx()).flags == ("REDACTED_CONTENT",)
    assert analyze_fraud_patterns("Account XXXX1234", ctx()).flags == ()


def test_fraud_inconsistent_formatting():
    text = "\n".join(["a" * 40, "b" * 40, "ok", "hi"])
    layout = formatting_inconsistency(text)
    assert layout["deviant_lines"] == 4
    assert layout["inconsistent"] is True
    res = analyze_fraud_patterns(text, ctx())
    assert res.flags == ("INCONSISTENT_FORMATTING",)
    assert res.sub_score == 15


def test_fraud_uniform_lines_are_consistent():
    assert formatting_inconsistency("\n".join(["abcd"] * 5))["inconsistent"] is False
    assert formatting_inconsistency("")["lines"] == 0


# ---------------------------------------------------------------------------
# statistics
# ---------------------------------------------------------------------------

def test_statistics_abnormal_char_distribution():
    res = analyze_statistics("zzz qqq", ctx())
    assert res.flags == ("ABNORMAL_CHAR_DISTRIBUTION",)
    assert res.sub_score == 15
    assert char_distribution_deviation("zzz qqq") == pytest.approx(80.7 / 12)


def test_statistics_short_words():
    res = analyze_statistics("a b c d e", ctx())
    assert "UNUSUAL_WORD_LENGTH" in res.flags
    assert res.sub_score == 25


def test_statistics_long_words():
    res = analyze_statistics("internationalization", ctx())
    assert "UNUSUAL_WORD_LENGTH" in res.flags


def test_statistics_no_letters_no_flags():
    res = analyze_statistics("12345 678 90", ctx())
    assert res.flags == ()
    assert res.sub_score == 0
    assert res.details["char_deviation"] is None


def test_statistics_repeated_words_are_informational():
    res = analyze_statistics(" ".join(["data"] * 6), ctx())
    assert res.details["repeated_words"] == ["data"]


# ---------------------------------------------------------------------------
# registry / determinism
# ---------------------------------------------------------------------------

def test_all_analyzers_are_deterministic():
    meta = {"recipient_name": "Jane Smith", "documentType": "birth_certificate"}
    c = ctx("birth_certificate", meta)
    first = {name: fn(BIRTH_TEXT, c) for name, fn in ANALYZERS.items()}
    second = {name: fn(BIRTH_TEXT, c) for name, fn in reversed(list(ANALYZERS.items()))}
    assert first == second


def test_suggest_document_type():
    assert suggest_document_type("Official Transcript, GPA 3.8") == DocumentType.ACADEMIC_TRANSCRIPT
    assert suggest_document_type("Republic of Utopia PASSPORT") == DocumentType.PASSPORT
    assert suggest_document_type("") == DocumentType.OTHER
    assert suggest_document_type("lorem ipsum") == DocumentType.OTHER
    assert DocumentType.parse("Birth_Certificate") == DocumentType.BIRTH_CERTIFICATE
    assert DocumentType.parse("nonsense") == DocumentType.OTHER
