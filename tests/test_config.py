from __future__ import annotations

import logging

import pytest

import logind_idle_control
from logind_idle_control import config


def test_empty_config_is_defaults() -> None:
	assert config.parse('') == config.defaults
	assert config.defaults.state_on_start is False
	assert config.defaults.disable_on_lock is True
	assert config.defaults.log_level == 'info'


def test_settings_override_defaults() -> None:
	parsed = config.parse('state_on_start = true\ndisable_on_lock = false\nlog_level = "debug"\n')
	assert parsed == config.Config(state_on_start=True, disable_on_lock=False, log_level='debug')


def test_unknown_setting_is_ignored(caplog) -> None:
	with caplog.at_level(logging.WARNING):
		parsed = config.parse('colour = "blue"\n', 'config.toml')
	assert parsed == config.defaults
	assert "Ignoring unknown configuration setting 'colour'" in caplog.text


@pytest.mark.parametrize('text', ['disable_on_lock = "yes"\n', 'log_level = 3\n', 'state_on_start = 1\n'])
def test_wrong_type_is_an_error(text) -> None:
	with pytest.raises(logind_idle_control.UserError):
		config.parse(text)


def test_invalid_toml_is_an_error() -> None:
	with pytest.raises(logind_idle_control.UserError, match='Invalid configuration file'):
		config.parse('disable_on_lock = \n')


def test_load_first_existing_file(monkeypatch, tmp_path) -> None:
	home = tmp_path / 'home'
	system = tmp_path / 'etc'
	(system / 'logind-idle-control').mkdir(parents=True)
	(system / 'logind-idle-control' / 'config.toml').write_text('disable_on_lock = false\n')
	monkeypatch.setenv('XDG_CONFIG_HOME', str(home))
	monkeypatch.setenv('XDG_CONFIG_DIRS', str(system))

	assert config.config_path() == str(home / 'logind-idle-control' / 'config.toml')
	assert config.load().disable_on_lock is False

	(home / 'logind-idle-control').mkdir(parents=True)
	(home / 'logind-idle-control' / 'config.toml').write_text('log_level = "trace"\n')
	assert config.load() == config.defaults._replace(log_level='trace')


def test_load_without_files(monkeypatch, tmp_path) -> None:
	monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'home'))
	monkeypatch.setenv('XDG_CONFIG_DIRS', str(tmp_path / 'etc'))
	assert config.load() == config.defaults
