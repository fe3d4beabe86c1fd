from __future__ import annotations

import os
import threading
import time

import pytest

import logind_idle_control
from logind_idle_control import bus, config
from logind_idle_control.bus import Subscription
from logind_idle_control.session import SessionInfo
from logind_idle_control.state import StateStore

SESSION_PATH = '/org/freedesktop/login1/session/c2_2d1'


class FakeUnixFd:
	'''Stands in for dbus.types.UnixFd: take() hands over a real fd.'''

	def __init__(self) -> None:
		self.read_fd, write_fd = os.pipe()
		os.close(write_fd)

	def take(self) -> int:
		return self.read_fd


class FakeGateway:
	'''In-memory bus: signals sent with send() reach matching subscriptions.'''

	def __init__(self) -> None:
		self.lock = threading.Lock()
		self.subscriptions: list[Subscription] = []
		self.emitted: list[tuple] = []
		self.calls: list[tuple] = []
		self.fail_inhibit = False
		self.fail_emit = False
		self.fail_subscribe: set[str | None] = set()
		self.session_path = SESSION_PATH
		self.properties = {
			(SESSION_PATH, 'Id'): 'c2-1',
			(SESSION_PATH, 'Type'): 'wayland',
		}
		self.session_by_pid_error: Exception | None = None
		# When set, Inhibit blocks until the event is set.
		self.inhibit_gate: threading.Event | None = None
		self.inhibit_started = threading.Event()
		self.fds: list[FakeUnixFd] = []

	def subscribe(self, scope, path, interface, member=None, decode=None):
		if member in self.fail_subscribe:
			raise logind_idle_control.BusError('Failed to connect to %s D-Bus' % scope)
		subscription = Subscription(scope, path, interface, member, decode)

		def remove() -> None:
			with self.lock:
				self.subscriptions.remove(subscription)

		subscription.remove = remove
		with self.lock:
			self.subscriptions.append(subscription)
		return subscription

	def send(self, scope, path, interface, member, *args) -> None:
		with self.lock:
			subscriptions = [s for s in self.subscriptions if s.scope == scope]
		for subscription in subscriptions:
			subscription.deliver(path, interface, member, args)

	def disconnect(self, scope) -> None:
		with self.lock:
			subscriptions = [s for s in self.subscriptions if s.scope == scope]
		for subscription in subscriptions:
			subscription.fail(logind_idle_control.BusError('Connection to %s D-Bus was lost' % scope))

	def emit(self, scope, path, interface, member, *args, signature=None) -> None:
		if self.fail_emit:
			raise logind_idle_control.BusError('Failed to emit %s signal' % member)
		with self.lock:
			self.emitted.append((scope, path, interface, member, args))

	def call(self, scope, service, path, interface, method, *args, signature=None):
		with self.lock:
			self.calls.append((scope, service, path, interface, method, args))
		match method:
			case 'Inhibit':
				if self.fail_inhibit:
					raise logind_idle_control.BusError('Permission denied')
				if self.inhibit_gate is not None:
					self.inhibit_started.set()
					self.inhibit_gate.wait()
				unix_fd = FakeUnixFd()
				with self.lock:
					self.fds.append(unix_fd)
				return unix_fd
			case 'GetSessionByPID':
				if self.session_by_pid_error is not None:
					raise self.session_by_pid_error
				return self.session_path
			case 'GetSession':
				return self.session_path
			case 'Get':
				return self.properties[(path, args[1])]
		raise AssertionError('Unexpected call %s.%s' % (interface, method))

	def get_property(self, scope, service, path, interface, name):
		return self.call(scope, service, path, bus.PROPERTIES_INTERFACE, 'Get', interface, name)

	def inhibit_calls(self) -> int:
		with self.lock:
			return sum(1 for c in self.calls if c[4] == 'Inhibit')

	def state_changes(self) -> list[bool]:
		with self.lock:
			return [e[4][0] for e in self.emitted if e[3] == 'StateChanged']


def wait_for(predicate, timeout: float = 5.0) -> None:
	deadline = time.monotonic() + timeout
	while not predicate():
		if time.monotonic() > deadline:
			raise AssertionError('Timed out waiting for condition')
		time.sleep(0.005)


@pytest.fixture
def gateway() -> FakeGateway:
	return FakeGateway()


@pytest.fixture
def session() -> SessionInfo:
	return SessionInfo('c2-1', SESSION_PATH)


@pytest.fixture
def store(tmp_path) -> StateStore:
	return StateStore(str(tmp_path / 'run' / 'logind-idle-control-session-c2-1.state'))


@pytest.fixture
def make_daemon(gateway, session, store):
	from logind_idle_control.daemon import Daemon

	daemons = []

	def make(**settings):
		daemon = Daemon(gateway, session, store, config.defaults._replace(**settings))
		daemons.append(daemon)
		return daemon

	yield make

	for daemon in daemons:
		daemon.shutdown()
