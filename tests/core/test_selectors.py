# tests/core/test_selectors.py
import pytest

from a11y_graph.dom.core import ElementNode, NodeType
from a11y_graph.dom.selectors import (
    candidate_selectors, parse_compound, selector_matches, specificity, strip_pseudo
)


@pytest.fixture
def button():
    return ElementNode(
        id="el-1",
        tag_name="button",
        attributes={"id": "submit", "class": "primary large", "aria-expanded": "false", "role": "button"},
    )


def test_parse_compound_selector():
    """Test of een samengestelde selector in onderdelen wordt gesplitst."""
    compound = parse_compound('button.primary[aria-expanded="false"]')
    assert compound.tag == "button"
    assert compound.classes == ("primary",)
    assert compound.attributes == (("aria-expanded", "false"),)


@pytest.mark.parametrize("selector", [
    "#submit", ".primary", ".primary.large", "button", "BUTTON", "*",
    "[aria-expanded]", '[aria-expanded="false"]', "[aria-expanded='false']",
    "button.primary[aria-expanded]", '[role="button"]',
])
def test_supported_selectors_match(button, selector):
    """Test de ondersteunde selector-subset."""
    assert selector_matches(button, selector)


@pytest.mark.parametrize("selector", [
    "#other", ".primary.missing", "a", '[aria-expanded="true"]', "[data-x]",
])
def test_non_matching_selectors(button, selector):
    assert not selector_matches(button, selector)


@pytest.mark.parametrize("selector", [
    "div > button", "button:focus", "a, button", "###", "", "   ", "[unclosed", None, 42,
])
def test_unsupported_selectors_fail_open(button, selector):
    """Test dat onbekende syntax niets matcht en nooit een exceptie gooit."""
    assert selector_matches(button, selector) is False


def test_text_nodes_never_match():
    text = ElementNode(id="text-1", node_type=NodeType.TEXT, text_content="hello")
    assert not selector_matches(text, "*")
    assert candidate_selectors(text) == []


def test_candidate_selectors(button):
    """Test dat alle vormen waarmee een behavior het element kan adresseren worden gegenereerd."""
    assert candidate_selectors(button) == [
        "#submit", ".primary", ".large", "button", "[aria-expanded]", '[role="button"]',
    ]


@pytest.mark.parametrize("selector,expected", [
    ("button", (0, 0, 0, 1)),
    (".btn", (0, 0, 1, 0)),
    ("#submit", (0, 1, 0, 0)),
    ("button.btn:focus", (0, 0, 2, 1)),
    ("#submit.primary:hover", (0, 1, 2, 0)),
    ('[role="button"]', (0, 0, 1, 0)),
    ("nav ul li a", (0, 0, 0, 4)),
    ("p::before", (0, 0, 0, 2)),
])
def test_specificity(selector, expected):
    assert specificity(selector) == expected


def test_strip_pseudo():
    assert strip_pseudo("#submit:focus") == "#submit"
    assert strip_pseudo("a:focus-visible") == "a"


def test_strip_pseudo_keeps_colons_in_attribute_values():
    assert strip_pseudo('a[href="https://x.org"]') == 'a[href="https://x.org"]'
    assert strip_pseudo('a[href="https://x.org"]:hover') == 'a[href="https://x.org"]'
    assert strip_pseudo("[data-time='10:30']::after") == "[data-time='10:30']"
