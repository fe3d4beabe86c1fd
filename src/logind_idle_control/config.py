# logind_idle_control.config - loads the user's configuration

import collections
import os
import tomllib

import logind_idle_control
from logind_idle_control.logging import log

Config = collections.namedtuple('Config', [
	# Accepted for compatibility; the daemon always starts from the
	# state file (disabled if there is none).
	'state_on_start',

	# Disable the inhibitor when the session is locked.
	'disable_on_lock',

	# Daemon log level (trace, debug, info, warning, error).
	'log_level',
])

defaults = Config(
	state_on_start=False,
	disable_on_lock=True,
	log_level='info',
)

def config_files():
	config_dirs = os.getenv('XDG_CONFIG_DIRS', '/etc').split(':')
	config_dirs = [os.getenv('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))] + config_dirs
	return [d + '/logind-idle-control/config.toml' for d in config_dirs if d]

# The file the user should edit.
def config_path():
	return config_files()[0]

def parse(text, origin='<string>'):
	try:
		values = tomllib.loads(text)
	except tomllib.TOMLDecodeError as e:
		raise logind_idle_control.UserError('Invalid configuration file %r: %s' % (origin, e)) from e

	settings = {}
	for key, value in values.items():
		if key not in Config._fields:
			log.warning('Ignoring unknown configuration setting %r in %r.', key, origin)
			continue
		expected = type(getattr(defaults, key))
		if type(value) is not expected:
			raise logind_idle_control.UserError('Configuration setting %r in %r must be a %s, not %r' % (
				key, origin, expected.__name__, value))
		settings[key] = value
	return defaults._replace(**settings)

def load():
	for config_file in config_files():
		if os.path.exists(config_file):
			log.debug('Loading configuration from %r.', config_file)
			with open(config_file, encoding='utf-8') as f:
				return parse(f.read(), config_file)

	log.debug('No configuration file found, using defaults.')
	return defaults
