"""
Sitewright - a convention-over-configuration static site builder.

Sitewright renders Markdown content with YAML frontmatter through
Handlebars-style templates and reusable partials, copies static assets,
optionally compiles a Tailwind stylesheet scoped to the generated markup,
and writes a sitemap.
"""

__version__ = "1.0.0"

from .core import SiteBuilder, BuildResult, BuildState, ContentProcessor

__all__ = ['SiteBuilder', 'BuildResult', 'BuildState', 'ContentProcessor']
