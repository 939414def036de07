"""Test configuration and fixtures for Sitewright tests."""

import pytest
import tempfile
import shutil
import logging
import os
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

BUILD_DATE = date(2024, 6, 1)

# 1x1 PNG
PNG_DATA = (b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00'
            b'\x00\x00\x90wS\xde\x00\x00\x00\x0cIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05'
            b'\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82')


def write(root, relative_path, text):
    """Write ``text`` to ``root/relative_path``, creating parent directories."""
    path = Path(root) / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(text, bytes):
        path.write_bytes(text)
    else:
        path.write_text(text, encoding='utf-8')
    return path


def snapshot(directory):
    """Map every file under ``directory`` to its bytes."""
    root = Path(directory)
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob('*')) if path.is_file()
    }


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def site_root(temp_dir):
    """A small project: templates with partials, Markdown and HTML content, static files."""
    root = Path(temp_dir) / 'site'

    write(root, 'templates/default.hbs', """<!DOCTYPE html>
<html>
<head><title>{{title}}</title></head>
<body>
{{> blog/header}}
{{{content}}}
{{> footer}}
</body>
</html>
""")
    write(root, 'templates/post.hbs', """<article>
<h1>{{title}}</h1>
{{#if author}}<p class="byline">By {{author}}</p>{{/if}}
{{{content}}}
</article>
""")
    write(root, 'templates/partials/footer.hbs', '<footer>Site footer</footer>')
    write(root, 'templates/partials/blog/header.hbs', '<header>Blog header</header>')

    write(root, 'content/index.md', """---
title: Home
---

# Welcome
""")
    write(root, 'content/about.md', """---
title: Test Page
date: 2024-01-01
template: default
---
# Hello World

This is a test.
""")
    write(root, 'content/blog/first-post.md', """---
title: First Post
date: 2024-02-10
author: Ann
template: post
---
Post body.
""")
    write(root, 'content/contact.html', '<!DOCTYPE html>\n<p>Contact us</p>\n')
    write(root, 'content/notes.txt', 'not content')

    write(root, 'static/images/logo.png', PNG_DATA)
    write(root, 'static/robots.txt', 'User-agent: *\n')

    return root


@pytest.fixture
def make_builder(site_root):
    """Factory for a SiteBuilder over ``site_root`` with a fixed build date."""
    from sitewright_pkg.core import SiteBuilder

    def factory(**kwargs):
        kwargs.setdefault('root_dir', str(site_root))
        kwargs.setdefault('build_date', BUILD_DATE)
        return SiteBuilder(**kwargs)
    return factory


@pytest.fixture
def clean_logger():
    """Remove handlers that setup_logging attaches during a test."""
    logger = logging.getLogger('Sitewright')
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in logger.handlers[:]:
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
