# logind_idle_control.gateway - D-Bus interop
# Subscribing to signals, emitting signals and calling methods on the
# system and session buses, using dbus-python on a GLib main loop.

import dbus
import dbus.lowlevel
from dbus.mainloop.glib import DBusGMainLoop

import logind_idle_control
from logind_idle_control.bus import SESSION, SYSTEM, PROPERTIES_INTERFACE, Subscription
from logind_idle_control.glib import MainLoopThread
from logind_idle_control.logging import log

class Gateway:
	def __init__(self):
		self.log = log.getChild('gateway')
		self.glib = MainLoopThread()
		self.dbus_mainloop = None

		# Open connections, by scope.  Only touched on the GLib thread.
		self.buses = {}

		# Live subscriptions.  Only touched on the GLib thread.
		self.subscriptions = []

	def __enter__(self):
		self.start()
		return self

	def __exit__(self, *_exc_info):
		self.stop()

	def start(self):
		self.dbus_mainloop = DBusGMainLoop()
		self.glib.start()

	def stop(self):
		for subscription in self.glib.run_sync(lambda: list(self.subscriptions)):
			subscription.close()

		def teardown():
			for bus in self.buses.values():
				bus.close()
			self.buses = {}
		self.glib.run_sync(teardown)
		self.glib.stop()
		self.dbus_mainloop = None

	# Runs in the GLib main loop thread:
	def get_bus(self, scope):
		bus = self.buses.get(scope)
		if bus is not None:
			return bus

		try:
			if scope == SYSTEM:
				bus = dbus.SystemBus(mainloop=self.dbus_mainloop, private=True)
			elif scope == SESSION:
				bus = dbus.SessionBus(mainloop=self.dbus_mainloop, private=True)
			else:
				raise ValueError('Unknown bus scope: %r' % (scope,))
		except dbus.DBusException as e:
			raise logind_idle_control.BusError('Failed to connect to %s D-Bus: %s' % (scope, e)) from e

		bus.set_exit_on_disconnect(False)
		bus.call_on_disconnection(lambda _connection: self.handle_disconnect(scope))
		self.log.debug('Connected to %s bus as %s.', scope, bus.get_unique_name())
		self.buses[scope] = bus
		return bus

	# Runs in the GLib main loop thread:
	def handle_disconnect(self, scope):
		self.log.warning('Lost connection to %s D-Bus.', scope)
		self.buses.pop(scope, None)
		for subscription in [s for s in self.subscriptions if s.scope == scope]:
			self.subscriptions.remove(subscription)
			subscription.fail(logind_idle_control.BusError(
				'Connection to %s D-Bus was lost' % (scope,)))

	def subscribe(self, scope, path, interface, member=None, decode=None):
		'''Subscribe to a signal.

		The match rule is registered with the bus before this returns,
		so no matching signal sent after this call is missed.  If member
		is None, all signals of the interface on the path are received.'''

		subscription = Subscription(scope, path, interface, member, decode)

		def receive(*args, **kwargs):
			subscription.deliver(kwargs['path'], kwargs['interface'], kwargs['member'], args)

		def setup():
			bus = self.get_bus(scope)
			try:
				signal_match = bus.add_signal_receiver(
					receive,
					signal_name=member,
					dbus_interface=interface,
					path=path,
					path_keyword='path',
					interface_keyword='interface',
					member_keyword='member',
				)
			except dbus.DBusException as e:
				raise logind_idle_control.BusError('Failed to subscribe to %r: %s' % (subscription, e)) from e
			self.subscriptions.append(subscription)
			return signal_match

		signal_match = self.glib.run_sync(setup)
		subscription.remove = lambda: self.unsubscribe(subscription, signal_match)
		self.log.debug('Subscribed: %r', subscription)
		return subscription

	def unsubscribe(self, subscription, signal_match):
		def teardown():
			if subscription in self.subscriptions:
				self.subscriptions.remove(subscription)
			try:
				signal_match.remove()
			except dbus.DBusException as e:
				# The connection may already be gone.
				self.log.debug('Failed to remove match for %r: %s', subscription, e)
		self.glib.run_sync(teardown)

	def emit(self, scope, path, interface, member, *args, signature=None):
		'''Broadcast a signal.'''
		def send():
			bus = self.get_bus(scope)
			message = dbus.lowlevel.SignalMessage(path, interface, member)
			if args:
				message.append(*args, signature=signature)
			bus.send_message(message)
			bus.flush()

		try:
			self.glib.run_sync(send)
		except dbus.DBusException as e:
			raise logind_idle_control.BusError('Failed to emit %s signal: %s' % (member, e)) from e
		self.log.trace('Emitted %s.%s%r on %s', interface, member, args, path)

	def call(self, scope, service, path, interface, method, *args, signature=None):
		'''Call a method and return its result.'''
		def invoke():
			bus = self.get_bus(scope)
			obj = bus.get_object(service, path, introspect=False)
			return obj.get_dbus_method(method, interface)(*args, signature=signature)

		try:
			return self.glib.run_sync(invoke)
		except dbus.DBusException as e:
			raise logind_idle_control.BusError('%s.%s failed: %s' % (interface, method, e)) from e

	def get_property(self, scope, service, path, interface, name):
		return self.call(scope, service, path, PROPERTIES_INTERFACE, 'Get', interface, name)
