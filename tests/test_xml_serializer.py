"""
Tests for XML serialization
"""
from xml.etree.ElementTree import Element, SubElement, fromstring

import pytest

from ubl_converter.utils.error_responses import SerializationError
from ubl_converter.utils.xml_serializer import XML_DECLARATION, serialize_tree, validate_tree


def simple_tree() -> Element:
    root = Element("Root")
    root.set("xmlns:cbc", "urn:example:cbc")
    child = SubElement(root, "cbc:Child")
    child.text = "value"
    SubElement(root, "cbc:Empty")
    return root


def test_output_layout():
    assert serialize_tree(simple_tree()) == (
        b'<?xml version="1.0" encoding="UTF-8"?>\n'
        b'<Root xmlns:cbc="urn:example:cbc">\n'
        b'  <cbc:Child>value</cbc:Child>\n'
        b'  <cbc:Empty/>\n'
        b'</Root>'
    )


def test_custom_indent():
    xml = serialize_tree(simple_tree(), indent="    ")
    assert b"\n    <cbc:Child>value</cbc:Child>\n" in xml


def test_single_declaration():
    xml = serialize_tree(simple_tree()).decode("utf-8")
    assert xml.startswith(XML_DECLARATION + "\n<Root")
    assert xml.count("<?xml") == 1


def test_no_blank_lines():
    lines = serialize_tree(simple_tree()).decode("utf-8").split("\n")
    assert all(line.strip() for line in lines)


def test_is_deterministic():
    assert serialize_tree(simple_tree()) == serialize_tree(simple_tree())


def test_escapes_markup_and_keeps_utf8():
    root = Element("Root")
    SubElement(root, "Name").text = "PEÑA & HIJOS <S.A.>"
    xml = serialize_tree(root)
    assert "<Name>PEÑA &amp; HIJOS &lt;S.A.&gt;</Name>".encode("utf-8") in xml


def test_invalid_character_in_text():
    root = Element("Root")
    SubElement(root, "Child").text = "bad\x00value"
    with pytest.raises(SerializationError) as exc_info:
        serialize_tree(root)
    assert exc_info.value.error_code == "SERIALIZATION_FAILED"
    assert exc_info.value.context["path"] == "/Root/Child"


def test_invalid_character_in_attribute():
    root = Element("Root")
    root.set("attr", "bell\x07")
    with pytest.raises(SerializationError) as exc_info:
        validate_tree(root)
    assert exc_info.value.context["path"] == "/Root/@attr"


def test_non_text_value():
    root = Element("Root")
    SubElement(root, "Amount").text = 5
    with pytest.raises(SerializationError, match="must be text"):
        serialize_tree(root)


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf"])
def test_non_finite_value(value):
    root = Element("Root")
    SubElement(root, "Amount").text = value
    with pytest.raises(SerializationError, match="not a finite number"):
        serialize_tree(root)


def test_tabs_and_newlines_allowed():
    root = Element("Root")
    SubElement(root, "Child").text = "a\tb"
    validate_tree(root)


def test_multiline_text_is_kept():
    root = Element("Root")
    SubElement(root, "Description").text = "Line one\n\nLine three"
    xml = serialize_tree(root)
    assert fromstring(xml).findtext("Description") == "Line one\n\nLine three"
