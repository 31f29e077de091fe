"""Tests for reply normalization and extracted-signal parsing."""

from __future__ import annotations

from signaldesk.webhooks.normalizer import ExtractedSignal, normalize


def test_flat_object_passes_through() -> None:
    assert normalize({"summary": "S", "title": "T"}) == {"summary": "S", "title": "T"}


def test_output_wrapper_is_merged_with_inner_winning() -> None:
    raw = {
        "output": {"summary": "inner", "title": "Inner title"},
        "summary": "outer",
        "sourceUrl": "https://example.com/a",
    }
    assert normalize(raw) == {
        "summary": "inner",
        "title": "Inner title",
        "sourceUrl": "https://example.com/a",
    }


def test_array_wrapper_uses_first_element() -> None:
    raw = [{"output": {"summary": "S"}}, {"output": {"summary": "ignored"}}]
    assert normalize(raw) == {"summary": "S"}


def test_all_shapes_normalize_identically() -> None:
    flat = {"summary": "S", "key_insights": ["a"]}
    nested = {"output": {"summary": "S", "key_insights": ["a"]}}
    wrapped = [{"output": {"summary": "S", "key_insights": ["a"]}}]
    assert normalize(flat) == normalize(nested) == normalize(wrapped)


def test_empty_array_is_empty_record() -> None:
    assert normalize([]) == {}


def test_non_object_reply_is_empty_record() -> None:
    assert normalize("just text") == {}
    assert normalize(None) == {}


def test_output_that_is_not_an_object_is_kept_as_a_field() -> None:
    assert normalize({"output": "plain", "title": "T"}) == {"output": "plain", "title": "T"}


def test_extracted_signal_reads_camel_and_snake_case() -> None:
    data = ExtractedSignal.from_canonical(
        {"sourceUrl": "https://example.com", "raw_content": "raw", "key_insights": ["a", "b"]}
    )
    assert data.source_url == "https://example.com"
    assert data.raw_content == "raw"
    assert data.key_insights == ["a", "b"]


def test_extracted_signal_reads_camel_case_lists() -> None:
    data = ExtractedSignal.from_canonical(
        normalize({"output": {"keyInsights": ["k1"], "actionableTakeaways": "Do it"}})
    )
    assert data.key_insights == ["k1"]
    assert data.actionable_takeaways == ["Do it"]


def test_extracted_signal_coerces_loose_values() -> None:
    data = ExtractedSignal.from_canonical(
        {"title": "  ", "key_insights": "single", "topics": ["ai", None, ""], "sentiment": 3}
    )
    assert data.title is None
    assert data.key_insights == ["single"]
    assert data.topics == ["ai"]
    assert data.sentiment == "3"


def test_extracted_signal_takes_id_as_signal_id() -> None:
    assert ExtractedSignal.from_canonical({"id": "abc"}).signal_id == "abc"
    assert ExtractedSignal.from_canonical({"signalId": "xyz", "id": "abc"}).signal_id == "xyz"


def test_identifying_content() -> None:
    assert ExtractedSignal.from_canonical({"summary": "S"}).has_identifying_content
    assert ExtractedSignal.from_canonical({"key_insights": ["a"]}).has_identifying_content
    assert ExtractedSignal.from_canonical({"title": "T"}).has_identifying_content
    assert not ExtractedSignal.from_canonical({"sourceUrl": "https://x.test"}).has_identifying_content
