# logind_idle_control.daemon - the daemon's state machine and lifecycle
#
# Listener threads consume D-Bus signal subscriptions and turn signals
# into transitions.  Each transition runs in its own short-lived
# handler thread, and all handlers are serialized by a single lock,
# which guards both the state and the inhibitor lock.

import enum
import signal
import threading

import logind_idle_control
from logind_idle_control import bus
from logind_idle_control.inhibitor import InhibitorLock
from logind_idle_control.logging import log
from logind_idle_control.state import State

log = log.getChild('daemon')

class Transition(enum.Enum):
	ENABLE = 'Enable'
	DISABLE = 'Disable'
	TOGGLE = 'Toggle'

	def apply(self, state):
		match self:
			case Transition.ENABLE:
				return State.ENABLED
			case Transition.DISABLE:
				return State.DISABLED
			case Transition.TOGGLE:
				return state.toggle()

def transition_for_member(member):
	'''Map a control signal name to a transition, or None if it is not one.'''
	try:
		return Transition(member)
	except ValueError:
		return None


class Listener:
	'''One signal subscription, and how its signals map to transitions.'''

	def __init__(self, name, scope, path, interface, member, transition, detected=None):
		self.name = name
		self.scope = scope
		self.path = path
		self.interface = interface
		self.member = member

		# Called with each received Event; returns a Transition or None.
		self.transition = transition

		# Logged (at info level) for every received signal.
		self.detected = detected

	def __repr__(self):
		return '<Listener %s>' % self.name


class Daemon:
	def __init__(self, gateway, session, store, config):
		self.gateway = gateway
		self.session = session
		self.store = store
		self.config = config

		# Guards state and inhibitor_lock.
		self.lock = threading.Lock()
		self.state = State.DISABLED
		self.inhibitor_lock = None

		# Set when the daemon should stop.
		self.stopping = threading.Event()

		self.subscriptions = []
		self.listener_threads = []

		# In-flight handler threads.
		self.handlers_lock = threading.Lock()
		self.handler_threads = set()

	def listeners(self):
		listeners = [
			Listener(
				'control',
				bus.SESSION,
				bus.object_path_for_session(self.session),
				bus.CONTROL_INTERFACE,
				None,
				lambda event: transition_for_member(event.member),
			),
		]

		if self.config.disable_on_lock:
			listeners.append(Listener(
				'lock',
				bus.SYSTEM,
				self.session.path,
				bus.LOGIND_SESSION_INTERFACE,
				'Lock',
				lambda event: Transition.DISABLE,
				detected='Lock detected, disabling idle inhibitor',
			))
		else:
			log.info('Disable on lock is disabled in config')

		# Unlocking does not restore the inhibitor.
		listeners.append(Listener(
			'unlock',
			bus.SYSTEM,
			self.session.path,
			bus.LOGIND_SESSION_INTERFACE,
			'Unlock',
			lambda event: None,
			detected='Unlock detected',
		))
		return listeners

	# -------------------------------------------------------------------------
	# Lifecycle

	def start(self):
		state = self.store.load()

		with self.lock:
			self.state = state
			# Also rewrites an unrecognized state file as "0".
			try:
				self.store.save(state)
			except OSError as e:
				raise logind_idle_control.StateSaveError(
					'Failed to write state file %r: %s' % (self.store.path, e)) from e
			log.info('Initial state: %s (state file: %r)', state, self.store.path)
			# Not a transition: take the inhibitor lock a restored
			# Enabled state implies, without announcing anything.
			self.reconcile()

		for listener in self.listeners():
			try:
				subscription = self.gateway.subscribe(
					listener.scope,
					listener.path,
					listener.interface,
					listener.member,
				)
			except logind_idle_control.BusError as e:
				self.listener_exited(listener, e)
				continue
			self.subscriptions.append(subscription)
			thread = threading.Thread(
				target=self.listen,
				args=(listener, subscription),
				name='listener-' + listener.name,
			)
			self.listener_threads.append(thread)
			thread.start()
			log.info('Listening for %s signals on %s (session %s)',
					 listener.name, listener.path, self.session.id)

	# Stop gracefully: let in-flight transitions finish, then release
	# the inhibitor lock.
	def shutdown(self):
		log.debug('Shutting down.')
		self.stopping.set()

		for subscription in self.subscriptions:
			subscription.close()
		for thread in self.listener_threads:
			thread.join()
		self.subscriptions = []
		self.listener_threads = []

		self.join_handlers()

		with self.lock:
			self.release()
		log.debug('Shutdown complete.')

	def signal_stop(self, signalnum, _frame):
		log.info('Got signal %r - stopping.', signal.strsignal(signalnum))
		self.stopping.set()

	def run(self):
		# Stop gracefully when receiving a SIGINT/SIGTERM.
		signal.signal(signal.SIGINT, self.signal_stop)
		signal.signal(signal.SIGTERM, self.signal_stop)

		try:
			self.start()
			self.stopping.wait()
			log.info('Received shutdown signal')
		finally:
			self.shutdown()

	# -------------------------------------------------------------------------
	# Listeners and handlers

	# Runs on the listener's own thread
	def listen(self, listener, subscription):
		try:
			for event in subscription:
				if self.stopping.is_set():
					break
				if listener.detected is not None:
					log.info('%s', listener.detected)
				transition = listener.transition(event)
				if transition is None:
					continue
				log.info('Received D-Bus signal: %s', event.member)
				self.dispatch(transition)
		except logind_idle_control.BusError as e:
			self.listener_exited(listener, e)
			return
		log.debug('%s signal listener stopped.', listener.name.capitalize())

	# Listeners are not restarted.  Without the control listener, the
	# daemon is deaf to commands.
	def listener_exited(self, listener, error):
		if listener.name == 'control':
			log.error('Control signal listener exited: %s', error)
		else:
			log.warning('%s signal listener exited: %s', listener.name.capitalize(), error)

	def dispatch(self, transition):
		'''Apply a transition in a new handler thread.'''
		if self.stopping.is_set():
			log.debug('Ignoring %s during shutdown.', transition.value)
			return None
		thread = threading.Thread(
			target=self.handle,
			args=(transition,),
			name='handler-' + transition.value,
			daemon=True,
		)
		with self.handlers_lock:
			self.handler_threads.add(thread)
		thread.start()
		return thread

	# Runs on a handler thread
	def handle(self, transition):
		try:
			self.apply(transition)
		except logind_idle_control.UserError as e:
			log.error('Error handling signal %s: %s', transition.value, e)
		finally:
			with self.handlers_lock:
				self.handler_threads.discard(threading.current_thread())

	def join_handlers(self):
		while True:
			with self.handlers_lock:
				threads = list(self.handler_threads)
			if not threads:
				return
			for thread in threads:
				thread.join()
				with self.handlers_lock:
					self.handler_threads.discard(thread)

	# -------------------------------------------------------------------------
	# Transitions

	def apply(self, transition):
		'''Commit a transition, persist it, bring the inhibitor lock in
		line with it, and announce it.  Returns the new state.

		A failure to write the state file is raised as StateSaveError
		only after all of that is done; the new state stays in effect.'''

		save_error = None
		with self.lock:
			state = transition.apply(self.state)
			self.state = state
			try:
				self.store.save(state)
			except OSError as e:
				save_error = e
			log.info('State changed to: %s', state)
			self.reconcile()

		# Not under the lock, so that a slow bus does not hold up
		# other transitions.
		self.notify(state)

		if save_error is not None:
			raise logind_idle_control.StateSaveError(
				'Failed to write state file %r: %s' % (self.store.path, save_error)) from save_error
		return state

	# Must hold self.lock.
	def reconcile(self):
		if self.state.is_enabled:
			if self.inhibitor_lock is None:
				try:
					self.inhibitor_lock = InhibitorLock.acquire(self.gateway)
				except logind_idle_control.BusError as e:
					# Stay enabled without a lock; the next Enable retries.
					log.error('Failed to acquire inhibitor lock: %s', e)
		else:
			self.release()

	# Must hold self.lock.
	def release(self):
		if self.inhibitor_lock is not None:
			self.inhibitor_lock.release()
			self.inhibitor_lock = None

	def notify(self, state):
		path = bus.object_path_for_session(self.session)
		try:
			self.gateway.emit(
				bus.SESSION,
				path,
				bus.CONTROL_INTERFACE,
				'StateChanged',
				state.is_enabled,
				signature='b',
			)
		except logind_idle_control.BusError as e:
			log.error('Failed to emit StateChanged signal: %s', e)
			return
		log.debug('Emitted StateChanged(%s) on %s', state.is_enabled, path)
