# logind_idle_control.bus - message bus names, events and subscriptions
# Transport-independent half of the bus gateway.  The dbus-python
# implementation lives in logind_idle_control.gateway and feeds the
# Subscription objects defined here.

import collections
import queue

import logind_idle_control
from logind_idle_control.logging import log

log = log.getChild('bus')

# -----------------------------------------------------------------------------
# Names

# Bus scopes.
SYSTEM = 'system'
SESSION = 'session'

LOGIND_SERVICE = 'org.freedesktop.login1'
LOGIND_PATH = '/org/freedesktop/login1'
LOGIND_MANAGER_INTERFACE = 'org.freedesktop.login1.Manager'
LOGIND_SESSION_INTERFACE = 'org.freedesktop.login1.Session'
PROPERTIES_INTERFACE = 'org.freedesktop.DBus.Properties'

# Our private interface, on the session bus.
CONTROL_INTERFACE = 'com.logind.IdleControl'
CONTROL_PATH_PREFIX = '/com/logind/IdleControl/session_'

def object_path_for_session(session):
	# Object path elements may not contain dashes.
	return CONTROL_PATH_PREFIX + session.id.replace('-', '_')

# -----------------------------------------------------------------------------
# Events

# A received signal.  payload is the decoded signal body, or None if
# the subscription has no decoder.
Event = collections.namedtuple('Event', ['member', 'payload'])

def decode_boolean(args):
	'''Decoder for signals carrying a single boolean argument.'''
	if len(args) != 1 or not isinstance(args[0], int) or args[0] not in (0, 1):
		raise TypeError('Expected a single boolean, got %r' % (args,))
	return bool(args[0])

# Queue markers.
_CLOSED = object()

class Subscription:
	'''A lazy, unbounded sequence of signals matching a filter.

	Iterating blocks until the next matching signal arrives.  The
	sequence ends when close() is called, and raises BusError if the
	underlying connection is lost.  It cannot be restarted.'''

	def __init__(self, scope, path, interface, member=None, decode=None):
		self.scope = scope
		self.path = path
		self.interface = interface
		self.member = member
		self.decode = decode

		# Called on close() to remove the match from the transport.
		self.remove = None

		self.queue = queue.Queue()
		self.closed = False
		self.finished = False

	def __repr__(self):
		return '<Subscription %s %s %s.%s>' % (
			self.scope, self.path, self.interface, self.member or '*')

	def matches(self, path, interface, member):
		return path == self.path and \
			interface == self.interface and \
			(self.member is None or member == self.member)

	# Called by the transport for every received signal.
	def deliver(self, path, interface, member, args=()):
		if self.closed or not self.matches(path, interface, member):
			return
		payload = None
		if self.decode is not None:
			try:
				payload = self.decode(args)
			except (TypeError, ValueError) as e:
				log.debug('Dropping undecodable %s signal: %s', member, e)
				return
		log.trace('%r: received %s', self, member)
		self.queue.put(Event(member, payload))

	# Called by the transport when the connection is gone.
	def fail(self, error):
		if not self.closed:
			self.queue.put(error)

	def close(self):
		if self.closed:
			return
		self.closed = True
		if self.remove is not None:
			self.remove()
			self.remove = None
		self.queue.put(_CLOSED)

	def __iter__(self):
		return self

	def __next__(self):
		if self.finished:
			raise StopIteration
		item = self.queue.get()
		if item is _CLOSED:
			self.finished = True
			raise StopIteration
		if isinstance(item, logind_idle_control.BusError):
			self.finished = True
			raise item
		return item
