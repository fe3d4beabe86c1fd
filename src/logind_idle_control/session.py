# logind_idle_control.session - finding our logind session

import collections
import os

import logind_idle_control
from logind_idle_control import bus
from logind_idle_control.logging import log

log = log.getChild('session')

# The logind session we are running in.  path is its logind object path.
SessionInfo = collections.namedtuple('SessionInfo', ['id', 'path'])

# Session types which have a display that can go idle.
GRAPHICAL_TYPES = ('x11', 'wayland')

def get_session_path(gateway):
	try:
		return gateway.call(
			bus.SYSTEM,
			bus.LOGIND_SERVICE,
			bus.LOGIND_PATH,
			bus.LOGIND_MANAGER_INTERFACE,
			'GetSessionByPID',
			os.getpid(),
			signature='u',
		)
	except logind_idle_control.BusError as e:
		# Processes started by the user service manager (e.g. the
		# daemon, as a systemd user unit) do not belong to a session.
		session_id = os.getenv('XDG_SESSION_ID')
		if not session_id:
			raise
		log.debug('Process is not in a session (%s), using XDG_SESSION_ID=%s.', e, session_id)
		return gateway.call(
			bus.SYSTEM,
			bus.LOGIND_SERVICE,
			bus.LOGIND_PATH,
			bus.LOGIND_MANAGER_INTERFACE,
			'GetSession',
			session_id,
			signature='s',
		)

def get_current_session(gateway):
	'''Resolve the graphical logind session of this process.

	Raises UserError if there is none.'''
	try:
		path = str(get_session_path(gateway))
		session_id = str(gateway.get_property(
			bus.SYSTEM, bus.LOGIND_SERVICE, path, bus.LOGIND_SESSION_INTERFACE, 'Id'))
		session_type = str(gateway.get_property(
			bus.SYSTEM, bus.LOGIND_SERVICE, path, bus.LOGIND_SESSION_INTERFACE, 'Type'))
	except logind_idle_control.BusError as e:
		raise logind_idle_control.UserError('Failed to find the current logind session: %s' % (e,)) from e

	if session_type not in GRAPHICAL_TYPES:
		raise logind_idle_control.UserError('Not a graphical session (type: %s)' % (session_type,))

	log.debug('Detected graphical session: id=%s, type=%s, path=%s', session_id, session_type, path)
	return SessionInfo(session_id, path)
