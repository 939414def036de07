import os
import shutil
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

import csscompressor
import rjsmin

from .content import content_kind, derive_output, parse_date, read_content, ContentRecord, OutputTarget
from .exceptions import ConfigurationError, ContentError, StylesheetError
from .sitemap import DEFAULT_SITE_URL, SitemapAccumulator
from .styles import DEFAULT_COMPILER, FAILED, StylesheetPipeline
from .templates import (DEFAULT_TEMPLATE, PartialRegistry, TemplateRenderer,
                        create_markdown_renderer)


def setup_logging(verbose=False, log_dir=None):
    """Set up the Sitewright console logger and, optionally, a log file."""
    logger = logging.getLogger('Sitewright')
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            log_filename = datetime.now().strftime('sitewright_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(log_dir, log_filename), encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(file_handler)

    return logger


def get_content_files(directory: str) -> List[str]:
    """
    Recursively list Markdown and HTML files under ``directory``.

    Entries are visited in name order so repeated builds publish pages, and
    sitemap entries, in the same order. Symlinks are skipped.
    """
    content_files = []
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda entry: entry.name)

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            content_files.extend(get_content_files(entry.path))
        elif entry.is_file(follow_symlinks=False) and content_kind(entry.name):
            content_files.append(entry.path)
    return content_files


class ContentProcessor:
    """Turns one content file into one published page."""

    def __init__(self, content_dir, output_dir, renderer, markdown_parser, build_date=None):
        self.content_dir = content_dir
        self.output_dir = output_dir
        self.renderer = renderer
        self.markdown_parser = markdown_parser
        self.build_date = build_date or date.today()
        self.logger = logging.getLogger('Sitewright.content')

    def build_context(self, record: ContentRecord, html_content: str) -> dict:
        """Frontmatter fields plus the reserved ``content`` and ``frontmatter`` keys."""
        context = dict(record.frontmatter)
        context['content'] = html_content
        context['frontmatter'] = record.frontmatter
        return context

    def render(self, record: ContentRecord) -> str:
        if not record.is_markdown:
            return record.body
        html_content = self.markdown_parser(record.body)
        template_name = str(record.frontmatter.get('template') or DEFAULT_TEMPLATE)
        return self.renderer.render(template_name, self.build_context(record, html_content))

    def last_modified(self, record: ContentRecord) -> date:
        """The page's ``date`` frontmatter field, or the build date."""
        value = record.frontmatter.get('date') if record.is_markdown else None
        if value:
            parsed = parse_date(value)
            if parsed:
                return parsed
            self.logger.warning(
                f"  ! Unrecognised date '{value}' in {record.source_path}, using the build date")
        return self.build_date

    def process(self, file_path: str) -> Tuple[OutputTarget, date]:
        """
        Read, render and write a single content file.

        Returns:
            The output target and the page's last-modified date.
        """
        record = read_content(file_path, self.content_dir)
        html = self.render(record)
        target = derive_output(record.source_path, self.output_dir)

        try:
            os.makedirs(os.path.dirname(target.output_path), exist_ok=True)
            with open(target.output_path, 'w', encoding='utf-8', newline='') as f:
                f.write(html)
        except (IOError, OSError) as e:
            raise ContentError(target.output_path, f"could not write page: {e}") from e

        source_name = record.source_path.replace(os.sep, '/')
        self.logger.info(f"  ✓ {source_name} → {target.relative_path}")
        return target, self.last_modified(record)


class BuildState(Enum):
    START = 'start'
    PARTIALS_REGISTERED = 'partials_registered'
    OUTPUT_CLEANED = 'output_cleaned'
    STATIC_COPIED = 'static_copied'
    STYLES_COMPILED = 'styles_compiled'
    CONTENT_PROCESSED = 'content_processed'
    SITEMAP_WRITTEN = 'sitemap_written'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class BuildResult:
    state: BuildState
    last_state: BuildState
    error: Optional[BaseException] = None
    pages_written: int = 0
    sitemap_urls: int = 0
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state is BuildState.DONE


class SiteBuilder:
    """
    Builds a site from a project directory.

    A build walks a fixed sequence of states, from START to DONE. The first
    step that raises moves the build to FAILED and no later step runs. Output
    already written is left in place.
    """

    def __init__(self, root_dir='.', content_dir='content', templates_dir='templates',
                 partials_dir=None, static_dir='static', styles_dir='styles', output_dir='build',
                 site_url=DEFAULT_SITE_URL, clean_urls=False, markdown_engine='mistune',
                 css_compiler=DEFAULT_COMPILER, minify=False, build_date=None):
        self.root_dir = root_dir
        self.content_dir = self._resolve(content_dir)
        self.templates_dir = self._resolve(templates_dir)
        self.partials_dir = self._resolve(partials_dir) if partials_dir else os.path.join(self.templates_dir, 'partials')
        self.static_dir = self._resolve(static_dir)
        self.styles_dir = self._resolve(styles_dir)
        self.output_dir = self._resolve(output_dir)
        self.site_url = (site_url or DEFAULT_SITE_URL).rstrip('/')
        self.clean_urls = clean_urls
        self.css_compiler = css_compiler
        self.minify = minify
        self.build_date = build_date
        self.logger = logging.getLogger('Sitewright')

        self.markdown_engine = markdown_engine
        self.markdown_parser = create_markdown_renderer(markdown_engine)

        self.state = BuildState.START
        self.partials = None
        self.renderer = None
        self.sitemap = None
        self.pages_written = 0

    def _resolve(self, path):
        return path if os.path.isabs(path) else os.path.join(self.root_dir, path)

    def steps(self) -> List[Tuple[BuildState, Callable[[], None]]]:
        """Build steps paired with the state each one leads to."""
        return [
            (BuildState.PARTIALS_REGISTERED, self.register_partials),
            (BuildState.OUTPUT_CLEANED, self.clean_output),
            (BuildState.STATIC_COPIED, self.copy_static),
            (BuildState.STYLES_COMPILED, self.compile_styles),
            (BuildState.CONTENT_PROCESSED, self.process_content),
            (BuildState.SITEMAP_WRITTEN, self.write_sitemap),
        ]

    def build(self) -> BuildResult:
        """Run a full build. Never raises; failures are reported in the result."""
        start_time = time.time()
        self.logger.info("🔨 Building site...")

        self.state = BuildState.START
        self.partials = PartialRegistry()
        self.renderer = TemplateRenderer(self.templates_dir, self.partials)
        self.sitemap = SitemapAccumulator(self.site_url, self.clean_urls)
        self.pages_written = 0

        for next_state, step in self.steps():
            try:
                step()
            except Exception as e:
                last_state = self.state
                self.state = BuildState.FAILED
                self.logger.error(f"❌ Build failed: {e}")
                self.logger.debug("Build failed after state %s", last_state.value, exc_info=True)
                return self._result(last_state, start_time, error=e)
            self.state = next_state

        self.state = BuildState.DONE
        result = self._result(BuildState.DONE, start_time)
        self.logger.info(f"✨ Build complete! ({result.pages_written} pages in {result.duration:.3f}s)")
        return result

    def _result(self, last_state, start_time, error=None) -> BuildResult:
        return BuildResult(
            state=self.state,
            last_state=last_state,
            error=error,
            pages_written=self.pages_written,
            sitemap_urls=len(self.sitemap) if self.sitemap is not None else 0,
            duration=time.time() - start_time,
        )

    def register_partials(self):
        """Register every partial under the partials directory."""
        if not os.path.isdir(self.partials_dir):
            self.logger.info(f"No partials directory at {self.partials_dir}, skipping")
            return
        self.logger.info("🧩 Registering partials...")
        self.partials.load(self.partials_dir)

    def check_output_dir(self):
        """Refuse output directories whose removal would delete project sources."""
        output = os.path.realpath(self.output_dir)
        root = os.path.realpath(self.root_dir)
        if output == root or root.startswith(output + os.sep):
            raise ConfigurationError(
                f"Output directory {self.output_dir} contains the project root")

        sources = {
            'content': self.content_dir,
            'templates': self.templates_dir,
            'static': self.static_dir,
            'styles': self.styles_dir,
        }
        for name, path in sources.items():
            path = os.path.realpath(path)
            if path == output or path.startswith(output + os.sep):
                raise ConfigurationError(
                    f"Output directory {self.output_dir} contains the {name} directory")

    def clean_output(self):
        """Delete and recreate the output directory."""
        self.check_output_dir()
        if os.path.exists(self.output_dir):
            shutil.rmtree(self.output_dir)
        os.makedirs(self.output_dir, exist_ok=True)

    def copy_static(self):
        """Mirror the static directory into the output directory."""
        if not os.path.isdir(self.static_dir):
            self.logger.info(f"No static directory at {self.static_dir}, skipping")
            return
        self.logger.info("📁 Copying static files...")
        shutil.copytree(self.static_dir, self.output_dir, dirs_exist_ok=True)
        if self.minify:
            self.minify_assets()

    def minify_assets(self):
        """Write ``.min.css`` / ``.min.js`` siblings for the copied static assets."""
        minifiers = {'.css': csscompressor.compress, '.js': rjsmin.jsmin}
        for dirpath, _, filenames in os.walk(self.static_dir):
            relative_dir = os.path.relpath(dirpath, self.static_dir)
            for filename in sorted(filenames):
                stem, ext = os.path.splitext(filename)
                if ext not in minifiers or stem.endswith('.min'):
                    continue
                asset_path = os.path.normpath(os.path.join(self.output_dir, relative_dir, filename))
                minified_path = os.path.normpath(
                    os.path.join(self.output_dir, relative_dir, f"{stem}.min{ext}"))
                with open(asset_path, 'r', encoding='utf-8') as f:
                    source = f.read()
                with open(minified_path, 'w', encoding='utf-8') as f:
                    f.write(minifiers[ext](source))
                self.logger.debug(f"Minified {filename}")

    def compile_styles(self):
        pipeline = StylesheetPipeline(
            root_dir=self.root_dir,
            styles_dir=self.styles_dir,
            templates_dir=self.templates_dir,
            content_dir=self.content_dir,
            static_dir=self.static_dir,
            output_dir=self.output_dir,
            compiler=self.css_compiler,
        )
        if pipeline.run() == FAILED:
            raise StylesheetError(pipeline.error)

    def process_content(self):
        """Render every content file and record it in the sitemap."""
        if not os.path.isdir(self.content_dir):
            self.logger.info(f"No content directory at {self.content_dir}, skipping")
            return

        self.logger.info("📝 Processing content files...")
        processor = ContentProcessor(
            self.content_dir, self.output_dir, self.renderer, self.markdown_parser,
            build_date=self.build_date,
        )
        for file_path in get_content_files(self.content_dir):
            target, last_modified = processor.process(file_path)
            self.sitemap.add(target.public_url, last_modified)
            self.pages_written += 1

    def write_sitemap(self):
        self.sitemap.write(self.output_dir)
