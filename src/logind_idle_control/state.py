# logind_idle_control.state - the idle inhibition flag and its state file

import enum
import os

import logind_idle_control
from logind_idle_control.logging import log

class State(enum.Enum):
	ENABLED = '1'
	DISABLED = '0'

	def __str__(self):
		return self.value

	@property
	def is_enabled(self):
		return self is State.ENABLED

	def toggle(self):
		return State.DISABLED if self.is_enabled else State.ENABLED

	@classmethod
	def from_bool(cls, enabled):
		return cls.ENABLED if enabled else cls.DISABLED


class StateStore:
	'''Persists the state of one session as a single "1" / "0" token.

	There is no locking between processes: two daemons for the same
	session race on the file.'''

	def __init__(self, path):
		self.path = path

	@classmethod
	def for_session(cls, session):
		return cls(os.path.join(
			logind_idle_control.run_dir,
			'logind-idle-control-session-%s.state' % session.id,
		))

	# Never fails: anything other than "1" reads as disabled.
	def load(self):
		try:
			with open(self.path, 'rb') as f:
				content = f.read()
		except FileNotFoundError:
			return State.DISABLED
		except OSError as e:
			log.warning('Failed to read state file %r: %s', self.path, e)
			return State.DISABLED

		if content.strip() == b'1':
			return State.ENABLED
		return State.DISABLED

	# Raises OSError on failure.
	def save(self, state):
		parent = os.path.dirname(self.path)
		if parent:
			os.makedirs(parent, exist_ok=True)
		with open(self.path, 'w', encoding='ascii') as f:
			f.write(str(state))
