#!/usr/bin/env python3
"""
Command-line interface for Sitewright - static site builder.
"""

import os
import sys
import argparse
from typing import Any, Dict, List, Optional

from . import __version__
from .core import SiteBuilder, setup_logging
from .exceptions import SitewrightError
from .server import run_dev, serve
from .settings import SiteSettings

STARTER_FILES = {
    'templates/default.hbs': """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{title}}</title>
  {{#if description}}<meta name="description" content="{{description}}">{{/if}}
  <link rel="stylesheet" href="/styles.css">
</head>
<body class="bg-gray-50 text-gray-900">
  {{> header}}

  <main class="container mx-auto px-4 py-8 max-w-4xl">
    <article class="prose prose-lg mx-auto">
      {{{content}}}
    </article>
  </main>

  {{> footer}}
</body>
</html>
""",
    'templates/blog.hbs': """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{title}}</title>
  {{#if description}}<meta name="description" content="{{description}}">{{/if}}
  <link rel="stylesheet" href="/styles.css">
</head>
<body class="bg-gray-50 text-gray-900">
  {{> header}}

  <main class="container mx-auto px-4 py-8 max-w-3xl">
    <article class="bg-white rounded-lg shadow-sm p-8">
      <header class="mb-8">
        <h1 class="text-4xl font-bold mb-2">{{title}}</h1>
        {{> blog/meta}}
      </header>
      <div class="prose prose-lg max-w-none">
        {{{content}}}
      </div>
    </article>
  </main>

  {{> footer}}
</body>
</html>
""",
    'templates/partials/header.hbs': """<header class="bg-white shadow-sm">
  <nav class="container mx-auto px-4 py-4 flex items-center justify-between">
    <a href="/" class="text-2xl font-bold text-blue-600">My Site</a>
    <ul class="flex space-x-6">
      <li><a href="/" class="hover:text-blue-600">Home</a></li>
      <li><a href="/about.html" class="hover:text-blue-600">About</a></li>
      <li><a href="/blog/first-post.html" class="hover:text-blue-600">Blog</a></li>
    </ul>
  </nav>
</header>
""",
    'templates/partials/footer.hbs': """<footer class="bg-gray-800 text-white mt-16">
  <div class="container mx-auto px-4 py-8 text-center text-gray-400">
    Built with Sitewright
  </div>
</footer>
""",
    'templates/partials/blog/meta.hbs': """<div class="text-gray-600 text-sm">
  <time datetime="{{date}}">{{date}}</time>
  {{#if author}}<span class="mx-2">&bull;</span><span>By {{author}}</span>{{/if}}
</div>
""",
    'styles/main.css': """@import "tailwindcss";
""",
    'static/.gitkeep': '',
    'content/index.md': """---
title: Welcome
description: A site built with Sitewright
---

# Welcome

This page lives at `content/index.md` and is rendered with `templates/default.hbs`.

- Write pages in Markdown with YAML frontmatter
- Pick a template with the `template` field
- Reuse markup with partials from `templates/partials/`
""",
    'content/about.md': """---
title: About
---

# About

Content files can be Markdown (`.md`) or plain HTML (`.html`).

```
project/
├── content/          # Markdown and HTML files
├── templates/        # Templates
│   └── partials/     # Reusable template fragments
├── styles/           # CSS framework entry point
├── static/           # Files copied as-is
└── build/            # Generated site
```
""",
    'content/blog/first-post.md': """---
title: First Post
date: 2024-01-15
author: Site Author
template: blog
description: Getting started with Sitewright
---

The metadata at the top of this file is frontmatter. Templates read it as
`{{title}}`, `{{author}}` and so on.

This post uses the `blog` template, which includes the namespaced partial
`{{> blog/meta}}` from `templates/partials/blog/meta.hbs`.
""",
    '.gitignore': """build/
logs/
.DS_Store
""",
}


def create_starter_structure(directory: str) -> List[str]:
    """Create a starter project in ``directory``. Existing files are left alone."""
    created = []
    for relative_path, text in STARTER_FILES.items():
        path = os.path.join(directory, *relative_path.split('/'))
        if os.path.exists(path):
            print(f"File already exists: {relative_path}")
            continue
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        print(f"Created: {relative_path}")
        created.append(relative_path)
    return created


def init_project(directory: str, config_format: str = 'yml') -> int:
    directory = os.path.abspath(directory)
    os.makedirs(directory, exist_ok=True)
    print(f"Creating starter project in {directory}\n")

    create_starter_structure(directory)

    settings_loader = SiteSettings(config_dir=directory)
    if settings_loader._find_config_file():
        print(f"Configuration file already exists in {directory}")
    else:
        config_path = settings_loader.create_sample_config(config_format)
        print(f"Created configuration file: {os.path.basename(config_path)}")

    print("\n✅ Starter project created successfully!")
    print("\nNext steps:")
    print("1. Edit the templates in 'templates/'")
    print("2. Add Markdown or HTML pages to 'content/'")
    print("3. Run 'sitewright dev' to build, watch and serve the site")
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--root', type=str, default=None,
                        help='Project root directory (default: current directory)')
    common.add_argument('--content', type=str, help='Content directory')
    common.add_argument('--templates', type=str, help='Templates directory')
    common.add_argument('--static', type=str, help='Static assets directory')
    common.add_argument('--styles', type=str, help='Stylesheet entry point directory')
    common.add_argument('--output', type=str, help='Output directory for the generated site')
    common.add_argument('--site-url', type=str, help='Base URL used in sitemap.xml')
    common.add_argument('--clean-urls', action='store_true', default=None,
                        help='Drop the .html suffix from sitemap URLs')
    common.add_argument('--markdown-engine', type=str, choices=['mistune', 'markdown'],
                        help='Markdown renderer')
    common.add_argument('--css-compiler', type=str, help="CSS compiler command (default: 'npx tailwindcss')")
    common.add_argument('--minify', action='store_true', default=None,
                        help='Write minified copies of static CSS and JS files')
    common.add_argument('--log-dir', type=str, help='Directory for build log files')
    common.add_argument('--verbose', '-v', action='store_true', help='Show debug output')

    parser = argparse.ArgumentParser(prog='sitewright', description='Sitewright - Static Site Builder')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(dest='command', metavar='command')

    subparsers.add_parser('build', parents=[common], help='Build the static site')

    serve_parser = subparsers.add_parser('serve', parents=[common], help='Serve the built site locally')
    serve_parser.add_argument('--port', type=int, help='Port to listen on (default: 3000)')

    dev_parser = subparsers.add_parser('dev', parents=[common],
                                       help='Build, watch for changes and serve')
    dev_parser.add_argument('--port', type=int, help='Port to listen on (default: 3000)')

    init_parser = subparsers.add_parser('init', help='Create a starter project')
    init_parser.add_argument('directory', nargs='?', default='.', help='Target directory')
    init_parser.add_argument('--config-format', choices=['yml', 'yaml', 'json'], default='yml',
                             help='Format of the generated configuration file')
    return parser


def load_settings(args: argparse.Namespace) -> Dict[str, Any]:
    """Config file settings overridden by command-line arguments."""
    root = args.root or os.getcwd()
    settings_loader = SiteSettings(config_dir=root)
    settings_loader.load_settings()
    args_dict = {k: v for k, v in vars(args).items() if v is not None}
    settings = settings_loader.merge_with_args(args_dict)
    settings['root'] = root
    return settings


def make_builder(settings: Dict[str, Any]) -> SiteBuilder:
    return SiteBuilder(
        root_dir=settings['root'],
        content_dir=settings['content'],
        templates_dir=settings['templates'],
        static_dir=settings['static'],
        styles_dir=settings['styles'],
        output_dir=os.path.expanduser(settings['output']),
        site_url=settings['site_url'],
        clean_urls=settings['clean_urls'],
        markdown_engine=settings['markdown_engine'],
        css_compiler=settings['css_compiler'],
        minify=settings['minify'],
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == 'init':
        try:
            return init_project(args.directory, args.config_format)
        except (SitewrightError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    try:
        settings = load_settings(args)
        setup_logging(verbose=args.verbose, log_dir=settings['log_dir'])
        builder = make_builder(settings)
    except SitewrightError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == 'build':
        result = builder.build()
        return 0 if result.succeeded else 1

    if args.command == 'serve':
        if not os.path.isdir(builder.output_dir):
            print(f"Error: {builder.output_dir} does not exist, run 'sitewright build' first",
                  file=sys.stderr)
            return 1
        serve(builder.output_dir, settings['port'])
        return 0

    watch_dirs = [builder.content_dir, builder.templates_dir, builder.static_dir, builder.styles_dir]
    run_dev(builder, watch_dirs, settings['port'])
    return 0


if __name__ == '__main__':
    sys.exit(main())
