# logind_idle_control.glib - GLib main loop
# Runs a GLib MainLoop in a thread.
# D-Bus signals are dispatched, and D-Bus calls are made, on this thread.

import threading

from gi.repository import GLib

from logind_idle_control.logging import log

class MainLoopThread:
	def __init__(self):
		self.log = log.getChild('glib')
		self.mainloop = None
		self.glib_thread = None

	def start(self):
		self.mainloop = GLib.MainLoop()
		self.glib_thread = threading.Thread(target=self.glib_thread_func, name='glib', daemon=True)
		self.glib_thread.start()

	def stop(self):
		self.run_async(self.mainloop.quit)
		self.glib_thread.join()
		self.mainloop = None
		self.glib_thread = None

	def is_glib_thread(self):
		return threading.current_thread() is self.glib_thread

	# Run a function on the GLib main loop thread.
	# The function is run asynchronously, discarding the return value.
	def run_async(self, func):
		# Note: this works (without an explicit reference to the main
		# loop) because the main loop is attached to the default GLib
		# context, and there is only one MainLoopThread per process.
		def run():
			func()
			return GLib.SOURCE_REMOVE
		GLib.idle_add(run)

	# Run a function on the GLib main loop thread.
	# The function is run synchronously, propagating any return value or exception.
	def run_sync(self, func):
		if self.is_glib_thread():
			return func()

		event = threading.Event()
		result_getter = []
		def run():
			try:
				value = func()
				result_getter.append(lambda: value)
			except Exception as e:
				# Re-throw in the calling thread
				def make_raiser(ex):
					# Double-nested closure to avoid "NameError: free
					# variable 'e' referenced before assignment in
					# enclosing scope"
					def raiser():
						raise ex
					return raiser
				result_getter.append(make_raiser(e))
			event.set()
			return GLib.SOURCE_REMOVE

		GLib.idle_add(run)
		event.wait()
		assert len(result_getter) == 1
		return result_getter[0]()

	def glib_thread_func(self):
		self.log.debug('Starting GLib main loop.')
		self.mainloop.run()
		self.log.debug('GLib main loop exited.')
