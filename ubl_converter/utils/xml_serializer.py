"""
Deterministic serialization of UBL trees to UTF-8 bytes.
"""
import re
from typing import Optional
from xml.dom import minidom
from xml.etree.ElementTree import Element, tostring

from ubl_converter.utils.error_responses import SerializationError

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# Characters outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(
    "[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)

_NON_FINITE_VALUES = frozenset({
    "nan", "+nan", "-nan", "snan",
    "inf", "+inf", "-inf",
    "infinity", "+infinity", "-infinity",
})


def _check_value(value: object, path: str, what: str) -> None:
    if not isinstance(value, str):
        raise SerializationError(
            f"{what} must be text, got {type(value).__name__}",
            path=path
        )

    match = _INVALID_XML_CHARS.search(value)
    if match:
        raise SerializationError(
            f"{what} contains a character not allowed in XML: {match.group()!r}",
            path=path
        )

    if value.strip().lower() in _NON_FINITE_VALUES:
        raise SerializationError(f"{what} is not a finite number: {value!r}", path=path)


def validate_tree(element: Element, parent_path: Optional[str] = None) -> None:
    """
    Check every tag, attribute and text value of a tree.

    Raises:
        SerializationError: Naming the path of the first offending element
    """
    if not isinstance(element.tag, str):
        raise SerializationError("Element tag must be text", path=parent_path)

    path = f"{parent_path}/{element.tag}" if parent_path else f"/{element.tag}"

    for name, value in element.attrib.items():
        _check_value(name, path, "Attribute name")
        _check_value(value, f"{path}/@{name}", "Attribute value")

    if element.text is not None:
        _check_value(element.text, path, "Text")

    for child in element:
        validate_tree(child, path)


def serialize_tree(root: Element, indent: str = "  ") -> bytes:
    """
    Serialize a UBL tree.

    Output is the XML declaration, a newline and the indented root. The same
    tree always yields the same bytes.

    Args:
        root: Root element built by UBLTreeBuilder
        indent: Indentation unit per nesting level

    Returns:
        UTF-8 encoded XML

    Raises:
        SerializationError: If a value cannot be represented in XML
    """
    validate_tree(root)

    # Convert to string
    rough_string = tostring(root, encoding="unicode")

    # Format the root element only, so minidom adds no declaration of its own
    reparsed = minidom.parseString(rough_string)
    formatted = reparsed.documentElement.toprettyxml(indent=indent)

    # Text values keep their own line breaks; only the final newline is dropped
    return (XML_DECLARATION + "\n" + formatted.rstrip("\n")).encode("utf-8")
