"""
Conversion between XML elements and plain Python values.

XML has no native notion of objects, lists or numbers, so the toolbox uses
one simple, reversible-enough convention in both directions:

    <user id="7">                 {"id": "7",
      <name>Ada</name>              "name": "Ada",
      <tag>a</tag>                  "tag": ["a", "b"]}
      <tag>b</tag>
    </user>

- attributes and child elements both become keys
- a repeated child tag becomes a list
- a leaf element becomes its text
- the text of an element that also has attributes is kept under "#text"
- the root tag itself is not part of the value

Typed conversion ("7" → 7) is left to pydantic, which validates the
resulting mapping against the decode target.
"""

import re
from typing import Any
from xml.etree import ElementTree as ET


XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Element names we are willing to emit (a conservative subset of XML Name).
_TAG_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")

# Key holding the text of an element that also has attributes or children.
TEXT_KEY = "#text"


def _local_name(tag: str) -> str:
    # "{http://example.com/ns}name" → "name"
    return tag.rsplit("}", 1)[-1]


def from_element(element: ET.Element) -> Any:
    """Convert a parsed element into str / dict / list values."""
    children = list(element)
    if not children and not element.attrib:
        return element.text or ""

    value: dict[str, Any] = {_local_name(k): v for k, v in element.attrib.items()}
    if element.text and element.text.strip():
        value[TEXT_KEY] = element.text
    for child in children:
        name = _local_name(child.tag)
        item = from_element(child)
        if name not in value:
            value[name] = item
        elif isinstance(value[name], list):
            value[name].append(item)
        else:
            value[name] = [value[name], item]
    return value


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_element(value: Any, tag: str) -> ET.Element:
    """
    Convert a JSON-compatible value (dict/list/scalars) into an element.

    None values are left out, the same way an empty optional field is.
    A list at the top level becomes repeated <item> children.
    """
    if not _TAG_NAME.match(tag):
        raise ValueError(f"{tag!r} is not a valid XML element name")
    element = ET.Element(tag)
    if isinstance(value, dict):
        for key, child in value.items():
            if child is None:
                continue
            if key == TEXT_KEY:
                element.text = _scalar_text(child)
                continue
            if isinstance(child, list):
                for item in child:
                    element.append(to_element(item, str(key)))
            else:
                element.append(to_element(child, str(key)))
    elif isinstance(value, list):
        for item in value:
            element.append(to_element(item, "item"))
    elif value is not None:
        element.text = _scalar_text(value)
    return element


def dumps(value: Any, root: str) -> bytes:
    """Serialize `value` under a `root` element, with the XML declaration."""
    body = ET.tostring(to_element(value, root), encoding="unicode")
    return (XML_HEADER + body).encode("utf-8")
