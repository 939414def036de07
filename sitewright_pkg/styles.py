"""
Utility-first stylesheet compilation.

A stylesheet is compiled only when one of the conventional entry points
imports the CSS framework (``@import "tailwindcss";``). The compiler scans
templates, content and the build output for class names and writes a
minified ``styles.css`` into the build root. A hand-written
``static/styles.css`` is appended after the compiled rules.
"""

import logging
import os
import shlex
import subprocess
from typing import List, Optional

DEFAULT_COMPILER = 'npx tailwindcss'
FRAMEWORK_DIRECTIVES = ('@import "tailwindcss"', "@import 'tailwindcss'")
OUTPUT_STYLESHEET = 'styles.css'
LEGACY_STYLESHEET = 'styles.css'

COMPILED = 'compiled'
SKIPPED = 'skipped'
FAILED = 'failed'


class StylesheetPipeline:
    def __init__(self, root_dir='.', styles_dir='styles', templates_dir='templates',
                 content_dir='content', static_dir='static', output_dir='build',
                 compiler=DEFAULT_COMPILER):
        self.root_dir = root_dir
        self.styles_dir = styles_dir
        self.templates_dir = templates_dir
        self.content_dir = content_dir
        self.static_dir = static_dir
        self.output_dir = output_dir
        self.compiler = compiler or DEFAULT_COMPILER
        self.error: Optional[str] = None
        self.logger = logging.getLogger('Sitewright.styles')

    @property
    def output_path(self) -> str:
        return os.path.join(self.output_dir, OUTPUT_STYLESHEET)

    @property
    def legacy_path(self) -> str:
        return os.path.join(self.static_dir, LEGACY_STYLESHEET)

    def candidate_entry_points(self) -> List[str]:
        """Entry points in lookup order: the styles directory first, then the project root."""
        return [
            os.path.join(self.styles_dir, 'main.css'),
            os.path.join(self.styles_dir, 'styles.css'),
            os.path.join(self.styles_dir, 'tailwind.css'),
            os.path.join(self.root_dir, 'tailwind.css'),
            os.path.join(self.styles_dir, 'index.css'),
        ]

    def find_entry_point(self) -> Optional[str]:
        """Return the first candidate that exists and imports the framework."""
        for candidate in self.candidate_entry_points():
            if not os.path.isfile(candidate):
                continue
            with open(candidate, 'r', encoding='utf-8') as f:
                text = f.read()
            if any(directive in text for directive in FRAMEWORK_DIRECTIVES):
                return candidate
        return None

    def content_globs(self) -> List[str]:
        """Source globs, relative to the project root the compiler runs in."""
        return [
            os.path.join(os.path.relpath(self.templates_dir, self.root_dir), '**', '*.hbs'),
            os.path.join(os.path.relpath(self.content_dir, self.root_dir), '**', '*.{md,html}'),
            os.path.join(os.path.relpath(self.output_dir, self.root_dir), '**', '*.html'),
        ]

    def compiler_command(self, entry_point: str) -> List[str]:
        command = shlex.split(self.compiler)
        command += ['-i', os.path.abspath(entry_point),
                    '-o', os.path.abspath(self.output_path), '--minify']
        for pattern in self.content_globs():
            command += ['--content', pattern]
        return command

    def run(self) -> str:
        """
        Compile the stylesheet if an entry point is found.

        Returns:
            ``COMPILED``, ``SKIPPED`` (no framework entry point) or ``FAILED``.
            On failure the reason is kept in ``self.error``.
        """
        self.error = None
        entry_point = self.find_entry_point()
        if entry_point is None:
            self.logger.info("No CSS framework detected, skipping stylesheet compilation")
            return SKIPPED

        self.logger.info("🎨 Compiling Tailwind CSS...")
        os.makedirs(self.output_dir, exist_ok=True)
        command = self.compiler_command(entry_point)
        self.logger.debug(f"Running: {' '.join(command)}")

        try:
            subprocess.run(command, check=True, cwd=self.root_dir)
        except FileNotFoundError:
            return self._fail(f"CSS compiler not found: {command[0]}")
        except subprocess.CalledProcessError as e:
            return self._fail(f"CSS compiler exited with status {e.returncode}")

        self.logger.info(f"  ✓ Compiled Tailwind CSS to {OUTPUT_STYLESHEET}")

        try:
            self.merge_legacy_stylesheet()
        except (IOError, OSError, UnicodeDecodeError) as e:
            return self._fail(f"Could not merge {self.legacy_path}: {e}")
        return COMPILED

    def merge_legacy_stylesheet(self) -> bool:
        """Append the static stylesheet after the compiled output, if there is one."""
        if not os.path.isfile(self.legacy_path):
            return False

        legacy_name = os.path.relpath(self.legacy_path, self.root_dir).replace(os.sep, '/')
        self.logger.info(f"  📎 Appending {legacy_name} to Tailwind output")

        with open(self.legacy_path, 'r', encoding='utf-8') as f:
            legacy_css = f.read()
        with open(self.output_path, 'r', encoding='utf-8') as f:
            compiled_css = f.read()

        with open(self.output_path, 'w', encoding='utf-8') as f:
            f.write(compiled_css + f'\n\n/* Custom CSS from {legacy_name} */\n' + legacy_css)
        return True

    def _fail(self, message: str) -> str:
        self.error = message
        self.logger.error(f"  ❌ Tailwind compilation failed: {message}")
        return FAILED
