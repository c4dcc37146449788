"""
SVG upload validation and sanitization.

Uploaded SVG is rejected outright when it carries a known attack signature
(scripts, event handlers, ``javascript:`` URLs, data URLs with scripts).
Whatever passes is rebuilt from an allow-list of elements and attributes, so
markup the allow-list does not name never reaches storage.
"""

import re
import xml.etree.ElementTree as ET
from typing import Optional
from xml.sax.saxutils import escape, quoteattr

from pydantic import BaseModel

from .logger import logger

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

ALLOWED_TAGS = frozenset(
    {
        "svg", "g", "path", "rect", "circle", "ellipse", "line", "polyline",
        "polygon", "text", "tspan", "defs", "linearGradient", "radialGradient",
        "stop", "pattern", "clipPath", "mask", "use", "image", "title", "desc",
        "metadata",
    }
)  # fmt: skip

ALLOWED_ATTRIBUTES = frozenset(
    {
        # identity and styling
        "id", "class", "style", "transform", "fill", "fill-opacity", "fill-rule",
        "stroke", "stroke-width", "stroke-opacity", "stroke-linecap",
        "stroke-linejoin", "stroke-dasharray", "stroke-dashoffset", "opacity",
        "clip-path", "clip-rule", "mask", "font-family", "font-size",
        "font-weight", "text-anchor",
        # geometry
        "x", "y", "width", "height", "cx", "cy", "r", "rx", "ry", "x1", "y1",
        "x2", "y2", "fx", "fy", "dx", "dy", "points", "d", "offset",
        # gradients, patterns and stops
        "stop-color", "stop-opacity", "gradientUnits", "gradientTransform",
        "patternUnits", "patternTransform", "spreadMethod",
        # document
        "viewBox", "preserveAspectRatio", "version",
    }
)  # fmt: skip

# href is only kept on these elements
LINKING_TAGS = frozenset({"use", "image"})
ALLOWED_URL_SCHEMES = frozenset({"http", "https", "data"})

# Removed together with their text, unlike other unknown elements which are
# unwrapped so their allowed children survive
DROP_WITH_CONTENT = frozenset(
    {"script", "style", "foreignObject", "iframe", "object", "embed", "textarea"}
)

_SCRIPT_TAG_RE = re.compile(r"<script", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
_JAVASCRIPT_URL_RE = re.compile(r"javascript\s*:", re.IGNORECASE)
_DATA_SCRIPT_RE = re.compile(r"data:[^\"']*script", re.IGNORECASE)
_ENTITY_DECL_RE = re.compile(r"<!ENTITY", re.IGNORECASE)
_URL_SCHEME_RE = re.compile(r"^\s*([a-zA-Z][a-zA-Z0-9+.\-]*):")
_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")


class SvgValidationResult(BaseModel):
    valid: bool
    sanitized: Optional[str] = None
    error: Optional[str] = None


def is_svg_safe(svg_content: str) -> bool:
    """Signature check for dangerous SVG content."""
    if _SCRIPT_TAG_RE.search(svg_content):
        logger.warning("SVG contains script tag")
        return False

    if _EVENT_HANDLER_RE.search(svg_content):
        logger.warning("SVG contains event handlers")
        return False

    if _JAVASCRIPT_URL_RE.search(svg_content):
        logger.warning("SVG contains javascript protocol")
        return False

    if _DATA_SCRIPT_RE.search(svg_content):
        logger.warning("SVG contains data URL with script")
        return False

    if _ENTITY_DECL_RE.search(svg_content):
        logger.warning("SVG declares XML entities")
        return False

    return True


def _split_name(qualified: str) -> tuple[Optional[str], str]:
    """Split an ElementTree ``{namespace}local`` name."""
    if qualified.startswith("{"):
        namespace, _, local = qualified[1:].partition("}")
        return namespace, local
    return None, qualified


def _is_allowed_url(value: str) -> bool:
    match = _URL_SCHEME_RE.match(value)
    if match is None:
        # Relative references and fragments (use href="#shape")
        return True
    return match.group(1).lower() in ALLOWED_URL_SCHEMES


class _SvgWriter:
    """Serialize an ElementTree SVG document through the allow-lists."""

    def __init__(self):
        self.parts: list[str] = []
        self.uses_xlink = False

    def _clean_attributes(self, tag: str, attrib: dict[str, str]) -> list[str]:
        cleaned = []
        for qualified, value in attrib.items():
            namespace, local = _split_name(qualified)

            if local == "href" and namespace in (None, XLINK_NAMESPACE):
                if tag not in LINKING_TAGS or not _is_allowed_url(value):
                    continue
                if namespace == XLINK_NAMESPACE:
                    self.uses_xlink = True
                    local = "xlink:href"
            elif namespace is not None or local not in ALLOWED_ATTRIBUTES:
                continue

            cleaned.append(f"{local}={quoteattr(value)}")
        return cleaned

    def write(self, element: ET.Element, is_root: bool = False) -> None:
        namespace, tag = _split_name(element.tag)
        allowed = namespace in (None, SVG_NAMESPACE) and tag in ALLOWED_TAGS

        if not allowed:
            if tag in DROP_WITH_CONTENT:
                return
            if element.text:
                self.parts.append(escape(element.text))
            self._write_children(element)
            return

        attributes = self._clean_attributes(tag, element.attrib)
        if is_root:
            attributes.insert(0, f'xmlns="{SVG_NAMESPACE}"')

        start = " ".join([tag, *attributes])
        if element.text is None and len(element) == 0:
            self.parts.append(f"<{start}/>")
            return

        self.parts.append(f"<{start}>")
        if element.text:
            self.parts.append(escape(element.text))
        self._write_children(element)
        self.parts.append(f"</{tag}>")

    def _write_children(self, element: ET.Element) -> None:
        for child in element:
            self.write(child)
            if child.tail:
                self.parts.append(escape(child.tail))

    def result(self) -> str:
        document = "".join(self.parts)
        if self.uses_xlink and document.startswith("<svg"):
            document = f'<svg xmlns:xlink="{XLINK_NAMESPACE}"' + document[len("<svg") :]
        return document


def sanitize_svg(svg_content: str) -> str:
    """Rebuild an SVG document keeping only allow-listed markup.

    Raises:
        ValueError: if the content is not well-formed XML or not an SVG
    """
    # The declaration may name an encoding that no longer applies to a str
    svg_content = _XML_DECLARATION_RE.sub("", svg_content, count=1)
    try:
        root = ET.fromstring(svg_content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid SVG: {e}")

    namespace, root_tag = _split_name(root.tag)
    if root_tag != "svg" or namespace not in (None, SVG_NAMESPACE):
        raise ValueError("Invalid SVG: root element is not <svg>")

    writer = _SvgWriter()
    writer.write(root, is_root=True)
    return writer.result()


def validate_and_sanitize_svg(svg_content: str) -> SvgValidationResult:
    """Validate an uploaded SVG and return its sanitized form."""
    if not svg_content.strip().startswith("<"):
        return SvgValidationResult(
            valid=False, error="Invalid SVG: does not start with XML tag"
        )

    if not is_svg_safe(svg_content):
        return SvgValidationResult(
            valid=False,
            error="SVG contains potentially dangerous content (scripts, event handlers)",
        )

    try:
        sanitized = sanitize_svg(svg_content.strip())
    except ValueError as e:
        logger.warning(f"SVG sanitization failed: {e}")
        return SvgValidationResult(valid=False, error=str(e))

    return SvgValidationResult(valid=True, sanitized=sanitized)
