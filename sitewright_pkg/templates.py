"""
Template handling for Sitewright.

Templates and partials are written in a small Handlebars dialect::

    {{title}}              escaped interpolation
    {{{content}}}          raw interpolation
    {{#if author}}..{{else}}..{{/if}}, {{#unless draft}}..{{/unless}}
    {{> blog/header}}      partial inclusion
    {{! comment }}

The dialect is translated to Jinja2 source and rendered by a Jinja2
Environment, which also caches compiled templates by name. Partials live in
a PartialRegistry owned by a single build and reach Jinja2 through
HandlebarsLoader under the ``partial:`` prefix.
"""

import logging
import os
import re
from typing import Any, Callable, Dict, Iterator, Optional

import markdown
import mistune
from jinja2 import (BaseLoader, ChainableUndefined, Environment, TemplateNotFound,
                    TemplateSyntaxError, pass_context)
from jinja2.exceptions import UndefinedError
from jinja2.loaders import split_template_path
from jinja2.utils import missing
from markupsafe import Markup

from .exceptions import (ConfigurationError, PartialNotFoundError, TemplateError,
                         TemplateNotFoundError)

TEMPLATE_EXT = '.hbs'
PARTIAL_PREFIX = 'partial:'
DEFAULT_TEMPLATE = 'default'

TAG_RE = re.compile(
    r'\{\{!--.*?--\}\}'
    r'|\{\{!.*?\}\}'
    r'|\{\{\{\s*(?P<raw>.*?)\s*\}\}\}'
    r'|\{\{\s*(?P<tag>.*?)\s*\}\}',
    re.DOTALL,
)
PATH_RE = re.compile(r'^[A-Za-z_][\w-]*(?:\.[\w-]+)*$')
IDENTIFIER_RE = re.compile(r'^[A-Za-z_]\w*$')
PARTIAL_NAME_RE = re.compile(r'^[\w.\-]+(?:/[\w.\-]+)*$')
JINJA_OPENER_RE = re.compile(r'\{[{%#]')

# Global used for top-level names that are not Jinja identifiers, e.g. ``og-image``.
LOOKUP_GLOBAL = '_sitewright_lookup'


class PartialRegistry:
    """Named template fragments, keyed by their slash-namespaced name."""

    def __init__(self, extension: str = TEMPLATE_EXT):
        self.extension = extension
        self._partials: Dict[str, str] = {}
        self.logger = logging.getLogger('Sitewright.partials')

    def register(self, name: str, source: str) -> None:
        """Register ``source`` under ``name``. A later registration replaces an earlier one."""
        if name in self._partials:
            self.logger.warning(f"  ! Partial '{name}' registered twice, the later file wins")
        self._partials[name] = source
        self.logger.info(f"  ✓ Registered partial: {name}")

    def load(self, partials_dir: str, namespace: str = '') -> int:
        """
        Recursively register every partial file under ``partials_dir``.

        ``partials/blog/header.hbs`` is registered as ``blog/header``. A missing
        directory registers nothing.

        Returns:
            Number of partial files registered.
        """
        if not os.path.isdir(partials_dir):
            return 0

        count = 0
        with os.scandir(partials_dir) as it:
            entries = sorted(it, key=lambda entry: entry.name)

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                count += self.load(entry.path, f"{namespace}{entry.name}/")
            elif entry.is_file() and entry.name.endswith(self.extension):
                name = namespace + entry.name[:-len(self.extension)]
                try:
                    with open(entry.path, 'r', encoding='utf-8') as f:
                        source = f.read()
                except (IOError, OSError, UnicodeDecodeError) as e:
                    raise TemplateError(f"Could not read partial {entry.path}: {e}") from e
                self.register(name, source)
                count += 1
        return count

    def get(self, name: str) -> Optional[str]:
        return self._partials.get(name)

    def names(self):
        return sorted(self._partials)

    def __contains__(self, name) -> bool:
        return name in self._partials

    def __len__(self) -> int:
        return len(self._partials)

    def __iter__(self) -> Iterator[str]:
        return iter(self._partials)


def _expression(path: str, template_name: str) -> str:
    """
    Translate a dotted path to a Jinja2 expression.

    Segments that are not identifiers (``og-image``) become subscripts, the
    first one through the lookup global.
    """
    if not PATH_RE.match(path):
        raise TemplateError(f"Invalid expression '{path}' in template '{template_name}'")

    first, *rest = path.split('.')
    expression = first if IDENTIFIER_RE.match(first) else f"{LOOKUP_GLOBAL}('{first}')"
    for segment in rest:
        if IDENTIFIER_RE.match(segment):
            expression += f".{segment}"
        elif segment.isdigit():
            expression += f"[{segment}]"
        else:
            expression += f"['{segment}']"
    return expression


def _literal(text: str) -> str:
    # Each Jinja2 opener in plain text is emitted as a string expression.
    return JINJA_OPENER_RE.sub(lambda match: "{{ '" + match.group(0) + "' }}", text)


def translate_template(source: str, template_name: str = '<string>') -> str:
    """
    Translate Handlebars-dialect ``source`` into Jinja2 source.

    Raises:
        TemplateError: On unsupported helpers, malformed tags or unbalanced blocks.
    """
    out = []
    blocks = []
    position = 0

    for match in TAG_RE.finditer(source):
        out.append(_literal(source[position:match.start()]))
        position = match.end()

        raw = match.group('raw')
        tag = match.group('tag')
        if raw is not None:
            out.append('{{ ' + _expression(raw, template_name) + '|raw }}')
            continue
        if tag is None:
            # Comment.
            continue

        if tag.startswith('>'):
            name = tag[1:].strip()
            if not PARTIAL_NAME_RE.match(name):
                raise TemplateError(f"Invalid partial name '{name}' in template '{template_name}'")
            out.append('{% include "' + PARTIAL_PREFIX + name + '" %}')
        elif tag.startswith('#'):
            helper, _, argument = tag[1:].partition(' ')
            argument = argument.strip()
            if helper not in ('if', 'unless'):
                raise TemplateError(
                    f"Unsupported block helper '#{helper}' in template '{template_name}'")
            if not argument:
                raise TemplateError(f"'#{helper}' needs an argument in template '{template_name}'")
            blocks.append(helper)
            condition = _expression(argument, template_name)
            if helper == 'unless':
                condition = f"not ({condition})"
            out.append('{% if ' + condition + ' %}')
        elif tag.startswith('/'):
            helper = tag[1:].strip()
            if not blocks or blocks[-1] != helper:
                raise TemplateError(f"Unexpected '{{{{/{helper}}}}}' in template '{template_name}'")
            blocks.pop()
            out.append('{% endif %}')
        elif tag == 'else':
            if not blocks:
                raise TemplateError(f"'{{{{else}}}}' outside a block in template '{template_name}'")
            out.append('{% else %}')
        elif tag.startswith('else if '):
            if not blocks or blocks[-1] != 'if':
                raise TemplateError(f"'{{{{else if}}}}' outside '#if' in template '{template_name}'")
            out.append('{% elif ' + _expression(tag[len('else if '):].strip(), template_name) + ' %}')
        else:
            out.append('{{ ' + _expression(tag, template_name) + ' }}')

    out.append(_literal(source[position:]))

    if blocks:
        raise TemplateError(f"Unclosed '#{blocks[-1]}' block in template '{template_name}'")
    return ''.join(out)


class HandlebarsLoader(BaseLoader):
    """
    Jinja2 loader for ``<templates_dir>/<name>.hbs`` files and registered partials.

    Every source is translated to Jinja2 before compilation.
    """

    def __init__(self, templates_dir: str, partials: PartialRegistry, extension: str = TEMPLATE_EXT):
        self.templates_dir = templates_dir
        self.partials = partials
        self.extension = extension

    def get_source(self, environment, template):
        if template.startswith(PARTIAL_PREFIX):
            name = template[len(PARTIAL_PREFIX):]
            source = self.partials.get(name)
            if source is None:
                raise TemplateNotFound(template)
            return translate_template(source, name), None, lambda: True

        pieces = split_template_path(template)
        path = os.path.join(self.templates_dir, *pieces) + self.extension
        if not os.path.isfile(path):
            raise TemplateNotFound(template)

        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        mtime = os.path.getmtime(path)

        def uptodate():
            try:
                return os.path.getmtime(path) == mtime
            except OSError:
                return False

        return translate_template(source, template), path, uptodate


def _finalize(value):
    """Render values the way Handlebars prints JavaScript values."""
    if value is None:
        return ''
    elif isinstance(value, bool):
        return 'true' if value else 'false'
    elif isinstance(value, (list, tuple)):
        return ','.join(str(_finalize(item)) for item in value)
    return value


def _raw(value):
    return Markup(_finalize(value))


@pass_context
def _lookup(context, name):
    value = context.resolve_or_missing(name)
    if value is missing:
        return context.environment.undefined(name=name)
    return value


class TemplateRenderer:
    """Resolve templates by name and render them against a context."""

    def __init__(self, templates_dir: str, partials: PartialRegistry, extension: str = TEMPLATE_EXT):
        self.templates_dir = templates_dir
        self.partials = partials
        self.env = Environment(
            loader=HandlebarsLoader(templates_dir, partials, extension),
            autoescape=True,
            undefined=ChainableUndefined,
            keep_trailing_newline=True,
            finalize=_finalize,
        )
        self.env.filters['raw'] = _raw
        self.env.globals[LOOKUP_GLOBAL] = _lookup

    def get_template(self, name: str):
        """Return the compiled template ``name``, compiling it on first use."""
        try:
            return self.env.get_template(name)
        except TemplateNotFound as e:
            raise TemplateNotFoundError(name) from e
        except TemplateSyntaxError as e:
            raise TemplateError(f"Syntax error in template '{name}': {e}") from e

    def render(self, name: str, context: Dict[str, Any]) -> str:
        """
        Render template ``name`` with ``context``.

        Raises:
            TemplateNotFoundError: No ``<name>.hbs`` under the templates directory.
            PartialNotFoundError: The template includes an unregistered partial.
            TemplateError: Any other compile or render failure.
        """
        template = self.get_template(name)
        try:
            return template.render(context)
        except TemplateNotFound as e:
            partial = e.name[len(PARTIAL_PREFIX):] if e.name.startswith(PARTIAL_PREFIX) else e.name
            raise PartialNotFoundError(partial, name) from e
        except TemplateSyntaxError as e:
            raise TemplateError(f"Syntax error in a partial of template '{name}': {e}") from e
        except UndefinedError as e:
            raise TemplateError(f"Error rendering template '{name}': {e}") from e


def create_markdown_renderer(engine: str = 'mistune') -> Callable[[str], str]:
    """
    Return a function converting Markdown text to HTML.

    ``mistune`` (default) lets raw HTML through and enables tables,
    strikethrough, task lists, footnotes and bare-URL links. ``markdown``
    uses Python-Markdown with tables and fenced code.
    """
    if engine == 'mistune':
        return mistune.create_markdown(
            escape=False,
            plugins=['table', 'strikethrough', 'task_lists', 'footnotes', 'url'],
        )
    elif engine == 'markdown':
        parser = markdown.Markdown(extensions=['tables', 'fenced_code'])

        def render(text):
            parser.reset()
            return parser.convert(text)
        return render
    raise ConfigurationError(f"Unknown markdown engine: {engine}")
