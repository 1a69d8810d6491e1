"""Flatten rich-text content into ordered, link-tagged text fragments.

Two content shapes are supported: Lexical JSON trees (``{"root": {...}}``)
as stored by the CMS, and legacy HTML strings carried over from earlier
imports. Both are walked depth-first in document order with an explicit
stack, so deeply nested trees never hit the interpreter recursion limit.

Every node falls into one of a closed set of variants:

* text leaf - emitted as a fragment tagged with the innermost enclosing link;
* line break / tab - emitted as a single space;
* link - its descendants inherit a new :class:`LinkContext`;
* container - entering and leaving it starts a new block, so text from
  different paragraphs, list items or headings is never merged.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple, Union

from bs4 import BeautifulSoup, FeatureNotFound, NavigableString, Tag  # type: ignore
from bs4.element import PreformattedString  # type: ignore

from .errors import MalformedContentError
from .types import ContentDocument, Fragment, IndexedDocument, LinkContext, Reference

_TEXT = "text"
_BREAK = "break"
_LINK = "link"
_CONTAINER = "container"
_SKIP = "skip"

_LEXICAL_LINK_TYPES = {"link", "autolink"}
_LEXICAL_BREAK_TYPES = {"linebreak", "tab"}

# HTML elements that never start a new block of text
INLINE_TAGS: set[str] = {
    "a",
    "abbr",
    "b",
    "cite",
    "code",
    "em",
    "i",
    "mark",
    "q",
    "s",
    "small",
    "span",
    "strong",
    "sub",
    "sup",
    "u",
}

# HTML elements whose text is never part of the readable content
SKIP_TAGS: set[str] = {"script", "style", "template", "noscript"}

# Marks the point where a container's children have all been visited
_EXIT = object()

_StackItem = Union[object, Tuple[Any, Optional[LinkContext]]]


class _Walker:
    """Mutable cursor shared by the Lexical and HTML walks."""

    def __init__(self) -> None:
        self.fragments: List[Fragment] = []
        self.block = 0
        self.serial = 0

    def emit(self, text: str, link: Optional[LinkContext]) -> None:
        if text:
            self.fragments.append(Fragment(text=text, link=link, block=self.block))

    def next_serial(self) -> int:
        self.serial += 1
        return self.serial


def flatten(content: Any) -> Tuple[Fragment, ...]:
    """Return the text fragments of ``content`` in document order.

    Raises
    ------
    MalformedContentError
        If ``content`` is neither empty, a Lexical tree nor an HTML string,
        or if a Lexical tree contains nodes of the wrong shape.
    """

    if content is None or content == "":
        return ()
    if isinstance(content, str):
        return _flatten_html(content)
    if isinstance(content, Mapping):
        return _flatten_lexical(content)
    raise MalformedContentError(f"Unsupported content type: {type(content).__name__}")


def index_document(document: ContentDocument) -> IndexedDocument:
    """Flatten every field of ``document`` once.

    A traversal failure is recorded on the result instead of being raised so
    a single broken document cannot take a whole request down with it.
    """

    fields: List[Tuple[str, Tuple[Fragment, ...]]] = []
    for name, value in document.fields.items():
        try:
            fields.append((name, flatten(value)))
        except MalformedContentError as exc:
            return IndexedDocument(document=document, fields=(), error=f"{name}: {exc}")
    return IndexedDocument(document=document, fields=tuple(fields))


def _flatten_lexical(content: Mapping[str, Any]) -> Tuple[Fragment, ...]:
    root = content.get("root")
    if not isinstance(root, Mapping):
        raise MalformedContentError("Lexical content has no root node")

    walker = _Walker()
    stack: List[_StackItem] = [(root, None)]
    while stack:
        item = stack.pop()
        if item is _EXIT:
            walker.block += 1
            continue
        node, link = item  # type: ignore[misc]
        if not isinstance(node, Mapping):
            raise MalformedContentError(f"Lexical node is not an object: {node!r}")

        kind = _lexical_kind(node)
        if kind == _TEXT:
            text = node.get("text")
            if not isinstance(text, str):
                raise MalformedContentError("Lexical text node has no text")
            walker.emit(text, link)
        elif kind == _BREAK:
            walker.emit(" ", link)
        elif kind == _LINK:
            context = _lexical_link_context(node, walker.next_serial())
            _push_lexical_children(stack, node, context)
        elif kind == _CONTAINER:
            walker.block += 1
            stack.append(_EXIT)
            _push_lexical_children(stack, node, link)

    return tuple(walker.fragments)


def _lexical_kind(node: Mapping[str, Any]) -> str:
    node_type = node.get("type")
    if node_type == "text":
        return _TEXT
    if node_type in _LEXICAL_BREAK_TYPES:
        return _BREAK
    if node_type in _LEXICAL_LINK_TYPES:
        return _LINK
    if "children" in node:
        return _CONTAINER
    return _SKIP


def _push_lexical_children(
    stack: List[_StackItem],
    node: Mapping[str, Any],
    link: Optional[LinkContext],
) -> None:
    children = node.get("children") or []
    if not isinstance(children, list):
        raise MalformedContentError("Lexical children must be a list")
    for child in reversed(children):
        stack.append((child, link))


def _lexical_link_context(node: Mapping[str, Any], serial: int) -> LinkContext:
    fields = node.get("fields")
    if not isinstance(fields, Mapping):
        fields = {}

    doc = fields.get("doc")
    if fields.get("linkType") != "custom" and isinstance(doc, Mapping):
        value = doc.get("value")
        if isinstance(value, Mapping):
            value = value.get("id")
        relation = doc.get("relationTo")
        if relation and value not in (None, ""):
            return LinkContext(serial=serial, reference=Reference.of(relation, value))

    url = fields.get("url") or node.get("url")
    return LinkContext(serial=serial, url=url if isinstance(url, str) else None)


def _parse_html(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except FeatureNotFound:
        # Fallback to html.parser if lxml isn't installed
        return BeautifulSoup(html, "html.parser")


def _flatten_html(html: str) -> Tuple[Fragment, ...]:
    if "<" not in html:
        return (Fragment(text=html, link=None, block=0),)

    walker = _Walker()
    stack: List[_StackItem] = [(_parse_html(html), None)]
    while stack:
        item = stack.pop()
        if item is _EXIT:
            walker.block += 1
            continue
        node, link = item  # type: ignore[misc]

        if isinstance(node, NavigableString):
            # Comments, doctypes and CDATA carry no readable text
            if not isinstance(node, PreformattedString):
                walker.emit(str(node), link)
            continue
        if not isinstance(node, Tag):
            continue

        name = (node.name or "").lower()
        if name in SKIP_TAGS:
            continue
        if name == "br":
            walker.emit(" ", link)
            continue
        if name == "a" and node.get("href") is not None:
            context = LinkContext(serial=walker.next_serial(), url=str(node.get("href")))
            _push_html_children(stack, node, context)
        elif name in INLINE_TAGS:
            _push_html_children(stack, node, link)
        else:
            walker.block += 1
            stack.append(_EXIT)
            _push_html_children(stack, node, link)

    return tuple(walker.fragments)


def _push_html_children(stack: List[_StackItem], node: Tag, link: Optional[LinkContext]) -> None:
    for child in reversed(list(node.children)):
        stack.append((child, link))
