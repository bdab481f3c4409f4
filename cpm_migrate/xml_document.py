"""
XML document handling for MSBuild files.

Wraps xml.etree.ElementTree with the pieces a project rewriter needs:
elements are matched by local name regardless of any default namespace, and
the framing of a loaded file is carried over on save: the XML declaration,
anything before the root element, the root start tag, the character encoding
and byte order mark, CRLF line endings and the final newline. Inner tags are
re-rendered by ElementTree (double quotes, `<Tag />` for empty elements).
"""

from __future__ import annotations

import codecs
import copy
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from .common import write_bytes
from .errors import NotFoundError, ParseError, ReadError

_DECLARATION_RE = re.compile(r"<\?xml[^>]*\?>")
# Markup before the root: comments, doctype, processing instructions, or the root start tag
_MARKUP_RE = re.compile(r"<!--.*?-->|<![^>]*>|<\?.*?\?>|<[^>]*>", re.DOTALL)
_ENCODING_RE = re.compile(rb"<\?xml[^>]*?\bencoding\s*=\s*[\"']([A-Za-z0-9._-]+)[\"']")

# Byte order marks, checked in this order
_BOMS = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

DEFAULT_INDENT = "  "


@dataclass
class Document:
    """
    A parsed XML file.

    Attributes:
        tree: Parsed element tree
        namespace: Default namespace URI of the root element, or None
        raw: Bytes the document was parsed from (empty for new documents)
        declaration: XML declaration to write back, or None
        prolog: Text between the declaration and the root element
        root_start: Root start tag as written in the source
        root_attrib: Root attributes at parse time
        encoding: Python codec name used to decode and re-encode the file
        bom: Whether the source started with a byte order mark
        crlf: Whether most line breaks in the source were Windows line endings
        trailing_newline: Whether the source ended with a newline
        path: File the document was loaded from, if any
    """
    tree: ET.ElementTree
    namespace: str | None = None
    raw: bytes = b""
    declaration: str | None = None
    prolog: str = ""
    root_start: str | None = None
    root_attrib: dict[str, str] = field(default_factory=dict)
    encoding: str = "utf-8"
    bom: bool = False
    crlf: bool = False
    trailing_newline: bool = True
    path: str | None = None

    @property
    def root(self) -> ET.Element:
        return self.tree.getroot()


def local_name(tag) -> str:
    """Return the tag without its '{namespace}' prefix ('' for comments)."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def namespace_of(tag) -> str | None:
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


def _qualify(name: str, namespace: str | None) -> str:
    return f"{{{namespace}}}{name}" if namespace else name


def _split_prolog(text: str) -> tuple[str | None, str, str | None]:
    """Return (declaration, prolog, root start tag) of a document's text."""
    declaration = _DECLARATION_RE.match(text)
    pos = declaration.end() if declaration else 0
    for match in _MARKUP_RE.finditer(text, pos):
        if not match.group(0).startswith(("<!", "<?")):
            return (
                declaration.group(0) if declaration else None,
                text[pos:match.start()],
                match.group(0),
            )
    return (declaration.group(0) if declaration else None, "", None)


def detect_encoding(data: bytes) -> tuple[str, bool]:
    """
    Determine the encoding of XML bytes.

    A byte order mark wins, then UTF-16 without one, then the encoding named
    in the XML declaration; UTF-8 otherwise.

    Returns:
        (encoding name as found, whether a byte order mark is present)
    """
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            return encoding, True
    if data.startswith(b"<\x00?\x00"):
        return "utf-16-le", False
    if data.startswith(b"\x00<\x00?"):
        return "utf-16-be", False
    match = _ENCODING_RE.match(data)
    if match:
        return match.group(1).decode("ascii"), False
    return "utf-8", False


def parse_document(data: bytes, path: str | None = None) -> Document:
    """
    Parse XML bytes into a Document.

    Raises:
        ParseError: If the content is not well-formed XML or cannot be
            decoded with its declared encoding
    """
    declared, bom = detect_encoding(data)
    try:
        encoding = codecs.lookup(declared).name
        text = data.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        raise ParseError(f"Cannot decode as {declared}: {e}", path=path) from e
    if bom:
        text = text[1:]

    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        root = ET.fromstring(data, parser=parser)
    except ET.ParseError as e:
        raise ParseError(f"Malformed XML: {e}", path=path) from e

    newlines = text.count("\n")
    crlf = text.count("\r\n") * 2 > newlines
    trailing_newline = text.endswith("\n")
    text = text.replace("\r\n", "\n")
    declaration, prolog, root_start = _split_prolog(text)

    return Document(
        tree=ET.ElementTree(root),
        namespace=namespace_of(root.tag),
        raw=data,
        declaration=declaration,
        prolog=prolog,
        root_start=root_start,
        root_attrib=dict(root.attrib),
        encoding=encoding,
        bom=bom,
        crlf=crlf,
        trailing_newline=trailing_newline,
        path=path,
    )


def load_document(path: str | Path) -> Document:
    """
    Read and parse an XML file.

    Raises:
        NotFoundError: If the file does not exist
        ReadError: If the path cannot be read (a directory, no permission)
        ParseError: If the file is not well-formed XML
    """
    path = str(path)
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError as e:
        raise NotFoundError("File not found", path=path) from e
    except OSError as e:
        raise ReadError(f"Failed to read file: {e}", path=path) from e
    return parse_document(data, path=path)


def new_document(root_name: str = "Project", namespace: str | None = None) -> Document:
    """Create an empty document with a single root element."""
    root = ET.Element(_qualify(root_name, namespace))
    return Document(tree=ET.ElementTree(root), namespace=namespace)


def _unqualified_copy(root: ET.Element, namespace: str) -> ET.Element:
    """
    Copy of the tree with the default namespace removed from element tags.

    ElementTree refuses unprefixed attributes together with its
    default_namespace option, so the xmlns attribute is written directly.
    """
    root = copy.deepcopy(root)
    prefix = "{" + namespace + "}"
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith(prefix):
            element.tag = element.tag[len(prefix):]
    root.set("xmlns", namespace)
    return root


def serialize_document(document: Document) -> bytes:
    """Render a Document to bytes, reproducing the source file's framing."""
    root = document.root
    if document.namespace:
        root = _unqualified_copy(root, document.namespace)
    body = ET.tostring(root, encoding="unicode").rstrip()

    # Source start tag is reused while the root attributes are unchanged
    if document.root_start and dict(document.root.attrib) == document.root_attrib:
        end = body.index(">") + 1
        if body[:end].endswith("/>") == document.root_start.endswith("/>"):
            body = document.root_start + body[end:]

    text = (document.declaration or "") + document.prolog + body
    if document.trailing_newline:
        text += "\n"
    if document.crlf:
        text = text.replace("\n", "\r\n")

    # Characters the source encoding lacks become character references
    data = text.encode(document.encoding, errors="xmlcharrefreplace")
    if document.bom:
        data = _bom_for(document.encoding) + data
    return data


def _bom_for(encoding: str) -> bytes:
    for bom, name in _BOMS:
        if name == encoding:
            return bom
    return b""


def save_document(
    document: Document,
    path: str | Path,
    preview: bool,
    skip_unchanged: bool = False,
    verbose: bool = False,
) -> bool:
    """
    Serialize and write a document through the preview gate.

    Returns:
        True if the file was written
    """
    return write_bytes(
        path,
        serialize_document(document),
        preview=preview,
        skip_unchanged=skip_unchanged,
        verbose=verbose,
    )


def select(node: Document | ET.Element, path: str) -> list[ET.Element]:
    """
    Select elements by a slash-separated path of local names.

    'PropertyGroup/Foo' walks children of the root; a leading '//' makes the
    first step match any descendant. Namespaces are ignored.
    """
    if isinstance(node, Document):
        node = node.root

    descendants = path.startswith("//")
    steps = [step for step in path.split("/") if step and step != "."]

    current = [node]
    for i, step in enumerate(steps):
        matched = []
        for parent in current:
            candidates: Iterator[ET.Element] = parent.iter() if (i == 0 and descendants) else iter(parent)
            for candidate in candidates:
                if candidate is not parent and local_name(candidate.tag) == step:
                    matched.append(candidate)
        current = matched
    return current


def find_child(parent: ET.Element, name: str) -> ET.Element | None:
    """Return the first direct child with the given local name."""
    for child in parent:
        if local_name(child.tag) == name:
            return child
    return None


def attribute_key(element: ET.Element, name: str) -> str | None:
    """Return the actual key of the attribute whose local name is `name`."""
    for key in element.attrib:
        if local_name(key) == name:
            return key
    return None


def _parent_map(document: Document) -> dict[ET.Element, ET.Element]:
    return {child: parent for parent in document.root.iter() for child in parent}


def _leading_indent(document: Document, element: ET.Element) -> str:
    """Whitespace on the line before `element` (empty for the root)."""
    parent = _parent_map(document).get(element)
    if parent is None:
        return ""
    index = list(parent).index(element)
    before = parent.text if index == 0 else parent[index - 1].tail
    if not before or before.strip():
        return ""
    return before.rsplit("\n", 1)[-1]


def _indent_unit(document: Document) -> str:
    root = document.root
    if len(root):
        unit = _leading_indent(document, root[0])
        if unit:
            return unit
    return DEFAULT_INDENT


def append_child(
    document: Document,
    parent: ET.Element,
    name: str,
    text: str | None = None,
    attrib: dict[str, str] | None = None,
) -> ET.Element:
    """
    Append a new element to `parent`, matching the surrounding indentation.

    The new element takes the parent's namespace.
    """
    child = ET.Element(_qualify(name, namespace_of(parent.tag)), attrib or {})
    child.text = text

    if len(parent):
        last = parent[-1]
        child.tail = last.tail
        last.tail = parent.text
    else:
        outer = _leading_indent(document, parent)
        parent.text = "\n" + outer + _indent_unit(document)
        child.tail = "\n" + outer

    parent.append(child)
    return child


def remove_child(parent: ET.Element, child: ET.Element) -> None:
    """
    Remove `child` and the whitespace that introduced it.

    A parent left with only whitespace inside collapses to an empty element.
    """
    children = list(parent)
    index = children.index(child)
    if index == len(children) - 1:
        if index == 0:
            parent.text = child.tail
        else:
            children[index - 1].tail = child.tail
    parent.remove(child)

    if not len(parent) and parent.text is not None and not parent.text.strip():
        parent.text = None


def indent_document(document: Document, space: str = DEFAULT_INDENT) -> None:
    """Pretty-print a generated document in place."""
    ET.indent(document.tree, space=space)
