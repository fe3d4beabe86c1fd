# logind_idle_control.__init__ - core definitions and command line
# Toggles a logind idle inhibitor for the current graphical session,
# either directly (enable / disable / toggle) or through the daemon.

import os
import sys

# -----------------------------------------------------------------------------
# External globals

# This session's runtime directory.  The state file lives here.
run_dir = os.getenv(
	'LOGIND_IDLE_CONTROL_RUN_DIR',
	os.getenv(
		'XDG_RUNTIME_DIR',
		'/tmp/' + str(os.getuid())
	)
)

# -----------------------------------------------------------------------------
# Exceptions

# Represents an expected failure mode, which is unlikely to be due to
# a bug in logind-idle-control.  In this case, we do not need to print
# an exception stack trace; just print the error message and quit.
class UserError(Exception):
	pass

# A D-Bus connection could not be made, was lost, or a call failed.
class BusError(UserError):
	pass

# The state file could not be written.  The in-memory state is still
# authoritative.
class StateSaveError(UserError):
	pass

# -----------------------------------------------------------------------------
# Imports
# Placed after the declarations above, so that they can be used by the
# imported modules.

import logind_idle_control.bus
import logind_idle_control.config
import logind_idle_control.session
import logind_idle_control.state
from logind_idle_control.logging import log

# -----------------------------------------------------------------------------
# Commands

def emit_control(gateway, member):
	'''Ask the daemon of the current session to Enable / Disable / Toggle.'''
	session = logind_idle_control.session.get_current_session(gateway)
	gateway.emit(
		logind_idle_control.bus.SESSION,
		logind_idle_control.bus.object_path_for_session(session),
		logind_idle_control.bus.CONTROL_INTERFACE,
		member,
	)

def monitor(gateway, out):
	'''Print the committed state every time the daemon announces a change.'''
	session = logind_idle_control.session.get_current_session(gateway)
	subscription = gateway.subscribe(
		logind_idle_control.bus.SESSION,
		logind_idle_control.bus.object_path_for_session(session),
		logind_idle_control.bus.CONTROL_INTERFACE,
		'StateChanged',
		decode=logind_idle_control.bus.decode_boolean,
	)
	log.debug('Monitoring state changes for session %s.', session.id)
	for event in subscription:
		out.write('%s\n' % logind_idle_control.state.State.from_bool(event.payload))
		out.flush()

def run_daemon(gateway):
	from logind_idle_control import daemon

	config = logind_idle_control.config.load()
	logind_idle_control.logging.set_level(config.log_level)

	session = logind_idle_control.session.get_current_session(gateway)
	log.info('Starting logind-idle-control daemon for session %s (%s)',
			 session.id, session.path)

	store = logind_idle_control.state.StateStore.for_session(session)
	daemon.Daemon(gateway, session, store, config).run()

# -----------------------------------------------------------------------------
# Entry point

def main():
	args = sys.argv[1:]

	help_text = '''
Usage: logind-idle-control COMMAND

Commands:
  help         Print this message.
  enable       Enable the idle inhibitor.
  disable      Disable the idle inhibitor.
  toggle       Toggle the idle inhibitor.
  status       Print the current state (1 = enabled, 0 = disabled).
  monitor      Print the state every time it changes.
  daemon       Run the daemon for the current session.
  config       Print the path of the configuration file.
  state-path   Print the path of the state file.
'''

	if not args:
		sys.stderr.write(help_text)
		return 2

	# help and config work without libdbus and GLib.
	def open_gateway():
		from logind_idle_control.gateway import Gateway
		return Gateway()

	try:
		match args[0]:
			case 'help':
				sys.stdout.write(help_text)

			case 'enable' | 'disable' | 'toggle':
				with open_gateway() as gateway:
					emit_control(gateway, args[0].capitalize())
				print('Idle inhibitor %s' % {
					'enable': 'enabled',
					'disable': 'disabled',
					'toggle': 'toggled',
				}[args[0]])

			case 'status':
				with open_gateway() as gateway:
					session = logind_idle_control.session.get_current_session(gateway)
				print(logind_idle_control.state.StateStore.for_session(session).load())

			case 'monitor':
				with open_gateway() as gateway:
					try:
						monitor(gateway, sys.stdout)
					except KeyboardInterrupt:
						pass

			case 'daemon':
				with open_gateway() as gateway:
					run_daemon(gateway)

			case 'config':
				print(logind_idle_control.config.config_path())

			case 'state-path':
				with open_gateway() as gateway:
					session = logind_idle_control.session.get_current_session(gateway)
				print(logind_idle_control.state.StateStore.for_session(session).path)

			case _:
				log.critical('Unknown command: %r', args[0])
				return 1

		return 0

	except UserError as e:
		log.critical('Fatal error: %s', e)
		return 1
