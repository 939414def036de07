"""
Content records: frontmatter extraction and output path derivation.

A content file is either Markdown (``.md``), which may start with a YAML
frontmatter block delimited by ``---`` lines, or raw HTML (``.html``), which
is published untouched.
"""

import os
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

import yaml

from .exceptions import ContentError, FrontmatterError

FRONTMATTER_MARKER = '---'
MARKDOWN_EXT = '.md'
HTML_EXT = '.html'
CONTENT_EXTENSIONS = {MARKDOWN_EXT: 'markdown', HTML_EXT: 'html'}

DATE_FORMATS = ['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%b %d, %Y']


@dataclass(frozen=True)
class ContentRecord:
    """One content file as read from disk."""
    source_path: str
    extension: str
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    body: str = ''

    @property
    def is_markdown(self) -> bool:
        return self.extension == 'markdown'


@dataclass(frozen=True)
class OutputTarget:
    """Where a content file lands in the build root and how it is addressed."""
    relative_path: str
    output_path: str
    public_url: str


def extract_frontmatter(text: str, source: str = '<string>') -> Tuple[Dict[str, Any], str]:
    """
    Split ``text`` into its frontmatter mapping and the remaining body.

    Args:
        text: Full file text.
        source: Name used in error messages.

    Returns:
        ``(metadata, body)``. Without a frontmatter block the metadata is empty
        and the body is ``text`` unchanged.

    Raises:
        FrontmatterError: If the block is not valid YAML or not a mapping.
    """
    stripped = text[1:] if text.startswith('\ufeff') else text
    lines = stripped.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONTMATTER_MARKER:
        return {}, text

    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_MARKER:
            break
    else:
        # An opening marker with no closing one is just body text.
        return {}, text

    block = ''.join(lines[1:index])
    body = ''.join(lines[index + 1:])

    try:
        metadata = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise FrontmatterError(source, f"invalid YAML frontmatter: {e}") from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise FrontmatterError(
            source, f"frontmatter must be a mapping, got {type(metadata).__name__}")

    return {str(key): value for key, value in metadata.items()}, body


def content_kind(filename: str) -> Optional[str]:
    """Return ``'markdown'``, ``'html'`` or ``None`` for a filename."""
    return CONTENT_EXTENSIONS.get(os.path.splitext(filename)[1])


def read_content(path: str, content_dir: str) -> ContentRecord:
    """Read a content file into a ContentRecord."""
    kind = content_kind(path)
    if kind is None:
        raise ContentError(path, "not a Markdown or HTML file")

    relative_path = os.path.relpath(path, content_dir)
    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            text = f.read()
    except (IOError, OSError, UnicodeDecodeError) as e:
        raise ContentError(path, f"could not read file: {e}") from e

    if kind == 'html':
        return ContentRecord(relative_path, kind, {}, text)

    metadata, body = extract_frontmatter(text, source=path)
    return ContentRecord(relative_path, kind, metadata, body)


def derive_output(relative_path: str, output_dir: str) -> OutputTarget:
    """
    Map a content-relative path to its build path and public URL.

    ``blog/post.md`` becomes ``<output_dir>/blog/post.html`` published at
    ``/blog/post.html``. HTML files keep their name.
    """
    rel = relative_path.replace(os.sep, '/').replace('\\', '/')
    if rel.endswith(MARKDOWN_EXT):
        rel = rel[:-len(MARKDOWN_EXT)] + HTML_EXT
    output_path = os.path.join(output_dir, *rel.split('/'))
    return OutputTarget(relative_path=rel, output_path=output_path, public_url='/' + rel)


def parse_date(value) -> Optional[date]:
    """Parse a frontmatter date value, returning ``None`` when it is not a date."""
    if isinstance(value, datetime):
        return value.date()
    elif isinstance(value, date):
        return value
    elif isinstance(value, str):
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value.strip(), fmt).date()
            except ValueError:
                continue
    return None
