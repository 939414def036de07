"""
XML sitemap accumulation and serialization.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import List
from xml.sax.saxutils import escape

SITEMAP_NAMESPACE = 'http://www.sitemaps.org/schemas/sitemap/0.9'
SITEMAP_FILENAME = 'sitemap.xml'
DEFAULT_SITE_URL = 'https://example.com'

ROOT_PRIORITY = '1.0'
BLOG_PRIORITY = '0.8'
DEFAULT_PRIORITY = '0.7'


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    last_modified: date
    priority: str


def url_priority(public_url: str) -> str:
    """Priority for a public URL: the home page first, then blog posts, then the rest."""
    if public_url in ('/', '/index.html'):
        return ROOT_PRIORITY
    elif '/blog/' in public_url:
        return BLOG_PRIORITY
    return DEFAULT_PRIORITY


def sitemap_url(public_url: str, clean_urls: bool = False) -> str:
    """The URL recorded in the sitemap for a page published at ``public_url``."""
    if public_url == '/index.html':
        return '/'
    if clean_urls and public_url.endswith('.html'):
        return public_url[:-len('.html')]
    return public_url


class SitemapAccumulator:
    """Collects one entry per published page, in processing order."""

    def __init__(self, site_url: str = DEFAULT_SITE_URL, clean_urls: bool = False):
        self.site_url = (site_url or DEFAULT_SITE_URL).rstrip('/')
        self.clean_urls = clean_urls
        self.entries: List[SitemapEntry] = []
        self.logger = logging.getLogger('Sitewright.sitemap')

    def add(self, public_url: str, last_modified: date) -> SitemapEntry:
        entry = SitemapEntry(
            url=sitemap_url(public_url, self.clean_urls),
            last_modified=last_modified,
            priority=url_priority(public_url),
        )
        self.entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self.entries)

    def to_xml(self) -> str:
        """Serialize the entries as a sitemap protocol document."""
        xml = '<?xml version="1.0" encoding="UTF-8"?>\n'
        xml += f'<urlset xmlns="{SITEMAP_NAMESPACE}">\n'
        for entry in self.entries:
            xml += self.format_entry(entry)
        xml += '</urlset>\n'
        return xml

    def format_entry(self, entry: SitemapEntry) -> str:
        return f'''  <url>
    <loc>{escape(self.site_url + entry.url)}</loc>
    <lastmod>{entry.last_modified.isoformat()}</lastmod>
    <priority>{entry.priority}</priority>
  </url>
'''

    def write(self, output_dir: str) -> bool:
        """
        Write ``sitemap.xml`` into ``output_dir``.

        Returns:
            False without writing anything when no entries were collected.
        """
        if not self.entries:
            self.logger.info("No pages published, skipping sitemap")
            return False

        self.logger.info("🗺️  Generating sitemap...")
        sitemap_file = os.path.join(output_dir, SITEMAP_FILENAME)
        with open(sitemap_file, 'w', encoding='utf-8') as f:
            f.write(self.to_xml())
        self.logger.info(f"  ✓ {SITEMAP_FILENAME} ({len(self.entries)} URLs)")
        return True
