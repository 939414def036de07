"""Tests for content reading, frontmatter extraction and output paths."""

import pytest
import os
from datetime import date, datetime
from pathlib import Path

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sitewright_pkg.content import derive_output, extract_frontmatter, parse_date, read_content
from sitewright_pkg.core import get_content_files
from sitewright_pkg.exceptions import ContentError, FrontmatterError
from conftest import write


class TestExtractFrontmatter:
    """Test cases for extract_frontmatter."""

    def test_basic_frontmatter(self):
        text = "---\ntitle: Test Page\ntags: [a, b]\n---\n# Hello World\n"
        metadata, body = extract_frontmatter(text)

        assert metadata == {'title': 'Test Page', 'tags': ['a', 'b']}
        assert body == "# Hello World\n"

    def test_dates_are_parsed_by_yaml(self):
        metadata, _ = extract_frontmatter("---\ndate: 2024-01-01\n---\nbody")
        assert metadata['date'] == date(2024, 1, 1)

    def test_no_frontmatter(self):
        text = "# Just Markdown\n\nNo metadata here."
        assert extract_frontmatter(text) == ({}, text)

    def test_empty_frontmatter(self):
        assert extract_frontmatter("---\n---\nbody\n") == ({}, "body\n")

    def test_unclosed_frontmatter_is_body(self):
        text = "---\ntitle: Oops\n# Heading\n"
        assert extract_frontmatter(text) == ({}, text)

    def test_marker_must_start_the_file(self):
        text = "intro\n---\ntitle: x\n---\n"
        assert extract_frontmatter(text) == ({}, text)

    def test_byte_order_mark(self):
        metadata, body = extract_frontmatter("\ufeff---\ntitle: BOM\n---\nbody")
        assert metadata == {'title': 'BOM'}
        assert body == "body"

    def test_crlf_line_endings(self):
        metadata, body = extract_frontmatter("---\r\ntitle: Windows\r\n---\r\nbody\r\n")
        assert metadata == {'title': 'Windows'}
        assert body == "body\r\n"

    def test_invalid_yaml(self):
        with pytest.raises(FrontmatterError, match="page.md"):
            extract_frontmatter("---\ntitle: [unclosed\n---\nbody", source='page.md')

    def test_frontmatter_must_be_a_mapping(self):
        with pytest.raises(FrontmatterError, match="mapping"):
            extract_frontmatter("---\n- one\n- two\n---\nbody")

    def test_keys_are_strings(self):
        metadata, _ = extract_frontmatter("---\n2024: year\n---\n")
        assert metadata == {'2024': 'year'}


class TestReadContent:
    """Test cases for read_content."""

    def test_markdown_record(self, temp_dir):
        path = write(temp_dir, 'content/blog/post.md', "---\ntitle: Post\n---\nText\n")
        record = read_content(str(path), os.path.join(temp_dir, 'content'))

        assert record.source_path == os.path.join('blog', 'post.md')
        assert record.is_markdown
        assert record.frontmatter == {'title': 'Post'}
        assert record.body == "Text\n"

    def test_html_record_keeps_text(self, temp_dir):
        html = "---\nnot: frontmatter\n---\r\n<p>Raw</p>"
        path = write(temp_dir, 'content/raw.html', html)
        record = read_content(str(path), os.path.join(temp_dir, 'content'))

        assert not record.is_markdown
        assert record.frontmatter == {}
        assert record.body == html

    def test_unsupported_extension(self, temp_dir):
        path = write(temp_dir, 'content/notes.txt', 'x')
        with pytest.raises(ContentError):
            read_content(str(path), os.path.join(temp_dir, 'content'))

    def test_invalid_utf8(self, temp_dir):
        path = write(temp_dir, 'content/bad.md', b'\xff\xfe\x00bad')
        with pytest.raises(ContentError, match="could not read"):
            read_content(str(path), os.path.join(temp_dir, 'content'))


class TestDeriveOutput:
    """Test cases for derive_output."""

    def test_markdown_becomes_html(self):
        target = derive_output(os.path.join('blog', 'post.md'), '/out')

        assert target.relative_path == 'blog/post.html'
        assert target.output_path == os.path.join('/out', 'blog', 'post.html')
        assert target.public_url == '/blog/post.html'

    def test_html_keeps_name(self):
        target = derive_output('contact.html', '/out')

        assert target.relative_path == 'contact.html'
        assert target.public_url == '/contact.html'

    def test_index(self):
        assert derive_output('index.md', '/out').public_url == '/index.html'


class TestParseDate:
    """Test cases for parse_date."""

    @pytest.mark.parametrize('value, expected', [
        (date(2024, 1, 1), date(2024, 1, 1)),
        (datetime(2024, 1, 1, 12, 30), date(2024, 1, 1)),
        ('2024-03-05', date(2024, 3, 5)),
        ('2024-03-05T10:00:00', date(2024, 3, 5)),
        ('Mar 05, 2024', date(2024, 3, 5)),
    ])
    def test_recognised_values(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize('value', ['yesterday', '', 42, None])
    def test_unrecognised_values(self, value):
        assert parse_date(value) is None


class TestGetContentFiles:
    """Test cases for get_content_files."""

    def test_sorted_markdown_and_html_only(self, site_root):
        content_dir = str(site_root / 'content')
        files = [os.path.relpath(path, content_dir) for path in get_content_files(content_dir)]

        assert files == [
            'about.md',
            os.path.join('blog', 'first-post.md'),
            'contact.html',
            'index.md',
        ]

    @pytest.mark.skipif(not hasattr(os, 'symlink'), reason="symlinks not supported")
    def test_symlinks_are_skipped(self, site_root, temp_dir):
        outside = write(temp_dir, 'elsewhere/secret.md', '# Secret')
        os.symlink(str(outside), str(site_root / 'content' / 'linked.md'))
        os.symlink(str(outside.parent), str(site_root / 'content' / 'linked_dir'))

        files = get_content_files(str(site_root / 'content'))

        assert not any('linked' in path for path in files)
        assert len(files) == 4

    def test_empty_directory(self, temp_dir):
        empty = Path(temp_dir) / 'content'
        empty.mkdir()
        assert get_content_files(str(empty)) == []
