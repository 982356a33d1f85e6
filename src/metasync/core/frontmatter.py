"""Frontmatter extraction: split a Markdown document into header metadata and body.

A document carries a header only when it starts with a ``---`` line. The
header runs until the next ``---`` line and is decoded as a YAML mapping::

    ---
    title: Hiking the ridge
    tags: [outdoors, autumn]
    ---
    Body text...

Documents without an opening or closing delimiter have no header; that is
not an error. Extraction is pure and never touches storage.
"""

from __future__ import annotations

from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from metasync.models.metadata import Metadata

DELIMITER = b"---"

_OPENING = DELIMITER + b"\n"
_CLOSING = b"\n" + DELIMITER + b"\n"


class FrontmatterDecodeError(Exception):
    """Raised when a header block is present but cannot be decoded."""

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{message}")


class _HeaderLoader(yaml.SafeLoader):
    """Safe YAML loader that keeps plain scalars as written text.

    Only ``null`` is resolved implicitly; booleans, numbers and timestamps
    stay strings, so ``title: Yes`` or ``actionDate: 010`` survive unchanged.
    """


_TEXT_TAGS = frozenset(
    f"tag:yaml.org,2002:{kind}" for kind in ("bool", "int", "float", "timestamp")
)

_HeaderLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TEXT_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def split_frontmatter(content: bytes) -> tuple[bytes | None, bytes]:
    """Locate the raw header block.

    Returns:
        ``(header, body)`` where ``header`` is the bytes between the
        delimiters, or ``(None, content)`` when the document has no header.
    """
    if not content.startswith(_OPENING):
        return None, content

    # Search from the opening newline so an empty header block still matches.
    end = content.find(_CLOSING, len(_OPENING) - 1)
    if end == -1:
        return None, content

    header = content[len(_OPENING) : end] if end >= len(_OPENING) else b""
    return header, content[end + len(_CLOSING) :]


def decode_header(header: bytes, source: str | None = None) -> Metadata:
    """Decode a raw header block into ``Metadata``.

    Raises:
        FrontmatterDecodeError: If the block is not UTF-8, not valid YAML,
            not a mapping, or holds a value of the wrong type.
    """
    try:
        text = header.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FrontmatterDecodeError(f"frontmatter is not valid UTF-8: {e}", source) from e

    try:
        data: Any = yaml.load(text, Loader=_HeaderLoader)  # noqa: S506
    except yaml.YAMLError as e:
        raise FrontmatterDecodeError(f"failed to parse YAML frontmatter: {e}", source) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterDecodeError(
            f"frontmatter must be a mapping, got {type(data).__name__}",
            source,
        )

    try:
        return Metadata.model_validate(data)
    except ValidationError as e:
        raise FrontmatterDecodeError(f"invalid frontmatter field: {e}", source) from e


def extract_frontmatter(content: bytes, source: str | None = None) -> tuple[Metadata | None, bytes]:
    """Extract header metadata and the remaining body from a document.

    Args:
        content: Raw document bytes.
        source: Document identifier, used in error messages only.

    Returns:
        ``(metadata, body)``; ``metadata`` is ``None`` when the document
        has no header, in which case ``body`` is the original content.

    Raises:
        FrontmatterDecodeError: If a header is present but invalid.
    """
    header, body = split_frontmatter(content)
    if header is None:
        return None, body
    return decode_header(header, source), body
