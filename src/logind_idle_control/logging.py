# logind_idle_control.logging - logging implementation

import logging
import os

# Extra severity level, used for per-message D-Bus chatter
TRACE = logging.DEBUG - 5

logging.addLevelName(TRACE, 'TRACE')

# Define a class which implements the severity level as a method
class Logger(logging.getLoggerClass()):
	def trace(self, *args, **kwargs):
		self.log(TRACE, *args, **kwargs)

logging.setLoggerClass(Logger)

logging.basicConfig(
	format=os.getenv('LOGIND_IDLE_CONTROL_LOG_FORMAT', '%(name)s: %(message)s'),
	level=[
		logging.CRITICAL,
		logging.ERROR,
		logging.WARNING,
		logging.INFO,
		logging.DEBUG,
		TRACE,
	][3 + int(os.getenv('LOGIND_IDLE_CONTROL_VERBOSE', '0'))]
)
log = logging.getLogger('logind_idle_control')

# Names accepted by the log_level configuration setting.
levels = {
	'trace': TRACE,
	'debug': logging.DEBUG,
	'info': logging.INFO,
	'warn': logging.WARNING,
	'warning': logging.WARNING,
	'error': logging.ERROR,
	'critical': logging.CRITICAL,
}

def set_level(name):
	'''Apply the configured log level to all of our loggers.'''
	level = levels.get(name.strip().lower())
	if level is None:
		log.warning('Unknown log level %r, keeping %s.',
					name, logging.getLevelName(log.getEffectiveLevel()))
		return
	log.setLevel(level)
