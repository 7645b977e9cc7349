"""Tests for Atlassian Document Format text extraction."""

from jira_sync.core.adf import extract_text_from_adf


def _paragraph(*texts):
    return {"type": "paragraph", "content": [{"type": "text", "text": t} for t in texts]}


def test_single_paragraph():
    doc = {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]}]}
    assert extract_text_from_adf(doc) == "Hello"


def test_paragraphs_are_separated_by_newlines():
    doc = {"type": "doc", "content": [_paragraph("Hello"), _paragraph("World")]}
    assert extract_text_from_adf(doc) == "Hello\nWorld"


def test_text_nodes_within_a_paragraph_are_concatenated():
    doc = {"type": "doc", "content": [_paragraph("Hello, ", "World")]}
    assert extract_text_from_adf(doc) == "Hello, World"


def test_nested_structures():
    doc = {
        "type": "doc",
        "content": [
            {
                "type": "bulletList",
                "content": [
                    {"type": "listItem", "content": [_paragraph("one")]},
                    {"type": "listItem", "content": [_paragraph("two")]},
                ],
            },
            _paragraph("after"),
        ],
    }
    assert extract_text_from_adf(doc) == "one\ntwo\nafter"


def test_top_level_list():
    assert extract_text_from_adf([_paragraph("a"), _paragraph("b")]) == "a\nb"


def test_unrecognized_shapes_contribute_nothing():
    doc = {
        "type": "doc",
        "content": [
            {"type": "mention", "attrs": {"id": "123"}},
            {"type": "text", "text": 42},
            "stray",
            None,
            {"type": "paragraph", "content": "not a list"},
            _paragraph("kept"),
        ],
    }
    assert extract_text_from_adf(doc) == "kept"


def test_non_document_values():
    assert extract_text_from_adf(None) == ""
    assert extract_text_from_adf("plain") == ""
    assert extract_text_from_adf({}) == ""


def test_deep_nesting_does_not_hit_recursion_limit():
    node = _paragraph("deep")
    for _ in range(5000):
        node = {"type": "blockquote", "content": [node]}

    assert extract_text_from_adf({"type": "doc", "content": [node]}) == "deep"


def test_paragraph_without_content_adds_no_newline():
    doc = [_paragraph("A"), {"type": "paragraph"}, _paragraph("B")]
    assert extract_text_from_adf(doc) == "A\nB"


def test_empty_paragraph_content_still_ends_the_paragraph():
    doc = [_paragraph("A"), {"type": "paragraph", "content": []}, _paragraph("B")]
    assert extract_text_from_adf(doc) == "A\n\nB"
