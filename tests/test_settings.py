"""Tests for the settings loader."""

import pytest
import os
import json
import yaml

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sitewright_pkg.exceptions import ConfigurationError
from sitewright_pkg.settings import SiteSettings
from conftest import write


class TestSiteSettings:
    """Test cases for SiteSettings."""

    def test_defaults_without_config_file(self, temp_dir):
        settings = SiteSettings(config_dir=temp_dir).load_settings()

        assert settings == SiteSettings.DEFAULT_SETTINGS
        assert settings['output'] == 'build'
        assert settings['port'] == 3000

    def test_yaml_config(self, temp_dir):
        write(temp_dir, 'sitewright.yml', "output: public\nsite_url: https://site.test\nminify: true\n")
        loader = SiteSettings(config_dir=temp_dir)
        settings = loader.load_settings()

        assert settings['output'] == 'public'
        assert settings['site_url'] == 'https://site.test'
        assert settings['minify'] is True
        assert settings['content'] == 'content'
        assert loader.config_file_path == os.path.join(temp_dir, 'sitewright.yml')

    def test_json_config(self, temp_dir):
        write(temp_dir, 'sitewright.json', json.dumps({'port': 8080, 'clean_urls': True}))
        settings = SiteSettings(config_dir=temp_dir).load_settings()

        assert settings['port'] == 8080
        assert settings['clean_urls'] is True

    def test_yml_preferred_over_json(self, temp_dir):
        write(temp_dir, 'sitewright.yml', "output: from-yml\n")
        write(temp_dir, 'sitewright.json', '{"output": "from-json"}')

        assert SiteSettings(config_dir=temp_dir).load_settings()['output'] == 'from-yml'

    def test_empty_yaml_file(self, temp_dir):
        write(temp_dir, 'sitewright.yaml', "# nothing here\n")
        assert SiteSettings(config_dir=temp_dir).load_settings() == SiteSettings.DEFAULT_SETTINGS

    def test_unknown_setting(self, temp_dir):
        write(temp_dir, 'sitewright.yml', "output: build\ntheme: dark\n")
        with pytest.raises(ConfigurationError, match="theme"):
            SiteSettings(config_dir=temp_dir).load_settings()

    def test_root_is_not_a_setting(self, temp_dir):
        """The project root comes from --root; the config file cannot move it."""
        write(temp_dir, 'sitewright.yml', "root: elsewhere\n")
        with pytest.raises(ConfigurationError, match=r"Unknown setting\(s\).*root"):
            SiteSettings(config_dir=temp_dir).load_settings()
        assert 'root' not in SiteSettings.DEFAULT_SETTINGS

    def test_invalid_yaml(self, temp_dir):
        write(temp_dir, 'sitewright.yml', "output: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            SiteSettings(config_dir=temp_dir).load_settings()

    def test_invalid_json(self, temp_dir):
        write(temp_dir, 'sitewright.json', "{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            SiteSettings(config_dir=temp_dir).load_settings()

    def test_config_must_be_mapping(self, temp_dir):
        write(temp_dir, 'sitewright.yml', "- output\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            SiteSettings(config_dir=temp_dir).load_settings()

    def test_merge_with_args(self, temp_dir):
        write(temp_dir, 'sitewright.yml', "output: public\nport: 4000\n")
        loader = SiteSettings(config_dir=temp_dir)
        loader.load_settings()

        merged = loader.merge_with_args({'output': 'dist', 'port': None, 'verbose': True})

        assert merged['output'] == 'dist'
        assert merged['port'] == 4000
        assert 'verbose' not in merged


class TestSampleConfig:
    """Test cases for create_sample_config."""

    @pytest.mark.parametrize('file_format', ['yml', 'yaml'])
    def test_yaml_sample_loads_as_defaults(self, temp_dir, file_format):
        loader = SiteSettings(config_dir=temp_dir)
        path = loader.create_sample_config(file_format)

        assert path == os.path.join(temp_dir, f'sitewright.{file_format}')
        with open(path, encoding='utf-8') as f:
            sample = yaml.safe_load(f)
        expected = {k: v for k, v in SiteSettings.DEFAULT_SETTINGS.items() if v is not None}
        assert sample == expected

    def test_json_sample(self, temp_dir):
        path = SiteSettings(config_dir=temp_dir).create_sample_config('json')

        with open(path, encoding='utf-8') as f:
            sample = json.load(f)
        assert sample['site_url'] == 'https://example.com'
        assert 'log_dir' not in sample
        assert SiteSettings(config_dir=temp_dir).load_settings()['port'] == 3000

    def test_unsupported_format(self, temp_dir):
        with pytest.raises(ConfigurationError):
            SiteSettings(config_dir=temp_dir).create_sample_config('toml')
        assert os.listdir(temp_dir) == []
