"""
Exceptions raised by the Sitewright build pipeline.
"""


class SitewrightError(Exception):
    """Base class for every error the build reports."""


class ConfigurationError(SitewrightError):
    """Invalid settings or an unsafe project layout."""


class ContentError(SitewrightError):
    """A content file could not be read or processed."""

    def __init__(self, path, message):
        self.path = path
        super().__init__(f"{path}: {message}")


class FrontmatterError(ContentError):
    """The frontmatter block of a content file is malformed."""


class TemplateError(SitewrightError):
    """A template failed to compile or render."""


class TemplateNotFoundError(TemplateError):
    def __init__(self, name):
        self.name = name
        super().__init__(f"Template not found: {name}")


class PartialNotFoundError(TemplateError):
    def __init__(self, name, template=None):
        self.name = name
        self.template = template
        where = f" (referenced from template '{template}')" if template else ""
        super().__init__(f"Partial not found: {name}{where}")


class StylesheetError(SitewrightError):
    """The CSS compiler could not be run or exited with an error."""
