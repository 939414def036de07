#!/usr/bin/env python3
"""
Settings loader for the Sitewright static site builder.
Supports configuration from sitewright.yml, sitewright.yaml, or sitewright.json files.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError


class SiteSettings:
    """Load and manage Sitewright configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'content': 'content',
        'templates': 'templates',
        'static': 'static',
        'styles': 'styles',
        'output': 'build',
        'site_url': 'https://example.com',
        'clean_urls': False,
        'markdown_engine': 'mistune',
        'css_compiler': 'npx tailwindcss',
        'minify': False,
        'log_dir': None,
        'port': 3000,
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['sitewright.yml', 'sitewright.yaml', 'sitewright.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings

        Raises:
            ConfigurationError: If the configuration file cannot be parsed.
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            unknown = sorted(set(loaded_settings) - set(self.DEFAULT_SETTINGS))
            if unknown:
                raise ConfigurationError(
                    f"Unknown setting(s) in {config_file}: {', '.join(unknown)}")
            self.settings.update(loaded_settings)

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    loaded = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    loaded = json.load(f) or {}
                else:
                    raise ConfigurationError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file {config_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}") from e
        except (IOError, OSError) as e:
            raise ConfigurationError(f"Error reading configuration file {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        if file_format not in ['yml', 'yaml', 'json']:
            raise ConfigurationError(f"Unsupported config file format: {file_format}")

        filename = f'sitewright.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# Sitewright configuration\n\n")
                    f.write("# Public address used in sitemap.xml\n")
                    f.write("site_url: https://example.com\n")
                    f.write("clean_urls: false\n\n")
                    f.write("# Project layout\n")
                    f.write("content: content\n")
                    f.write("templates: templates\n")
                    f.write("static: static\n")
                    f.write("styles: styles\n")
                    f.write("output: build\n\n")
                    f.write("# Rendering\n")
                    f.write("markdown_engine: mistune  # mistune or markdown\n")
                    f.write("css_compiler: npx tailwindcss\n")
                    f.write("minify: false\n\n")
                    f.write("# Development server\n")
                    f.write("port: 3000\n")
                elif file_format == 'json':
                    sample_config = {k: v for k, v in self.DEFAULT_SETTINGS.items() if v is not None}
                    json.dump(sample_config, f, indent=2)
        except (IOError, OSError) as e:
            raise ConfigurationError(f"Error writing configuration file {config_path}: {e}") from e

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        for key, value in args_dict.items():
            if value is not None and key in self.DEFAULT_SETTINGS:
                merged[key] = value

        return merged
