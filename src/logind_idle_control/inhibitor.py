# logind_idle_control.inhibitor - systemd-logind idle inhibitor lock
# logind keeps the inhibition in place for as long as we hold the file
# descriptor returned by Inhibit(); closing it releases the inhibition.

import os

from logind_idle_control import bus
from logind_idle_control.logging import log

log = log.getChild('inhibitor')

class InhibitorLock:
	WHAT = 'idle'
	WHO = 'logind-idle-control'
	WHY = 'User requested idle inhibition'
	MODE = 'block'

	def __init__(self, fd):
		self.fd = fd

	@classmethod
	def acquire(cls, gateway):
		'''Ask logind for an idle inhibitor lock.

		Raises BusError if logind cannot be reached or refuses.'''
		unix_fd = gateway.call(
			bus.SYSTEM,
			bus.LOGIND_SERVICE,
			bus.LOGIND_PATH,
			bus.LOGIND_MANAGER_INTERFACE,
			'Inhibit',
			cls.WHAT,
			cls.WHO,
			cls.WHY,
			cls.MODE,
		)
		lock = cls(unix_fd.take())
		log.info('Acquired idle inhibitor lock.')
		return lock

	@property
	def held(self):
		return self.fd is not None

	# Safe to call more than once.
	def release(self):
		if self.fd is None:
			return
		fd, self.fd = self.fd, None
		os.close(fd)
		log.info('Released idle inhibitor lock.')

	def __enter__(self):
		return self

	def __exit__(self, *_exc_info):
		self.release()

	def __del__(self):
		self.release()
