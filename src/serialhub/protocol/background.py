"""
Periodic work on a daemon thread.

A PeriodicWorker calls work() once per interval until stop() is called. stop() wakes the
thread from its wait, so a long interval does not delay shutdown.
"""
import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """
    Runs work() every interval seconds on a background thread.
    An exception raised by work() is logged and the worker carries on with the next interval.

    :param interval: seconds to wait before each call to work()
    :param name: the name given to the thread
    """

    def __init__(self, interval, name=None, log=logger):
        self.interval = interval
        self.name = name
        self.logger = log
        self.wakeup = threading.Event()
        self.thread = None
        self.failures = 0

    def work(self):
        raise NotImplementedError

    def on_failure(self, e):
        self.failures += 1
        self.logger.exception("%s failed: %s", self.name or type(self).__name__, e)

    @property
    def alive(self):
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        """ starts the thread, unless it is already started. """
        if self.thread is not None:
            return
        self.wakeup.clear()
        self.thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self.thread.start()

    def run(self):
        """ the body of the thread. Returns once stop() is called. """
        self.logger.debug("%s started", self.name)
        while self.wait():
            try:
                self.work()
            except Exception as e:
                self.on_failure(e)
        self.logger.debug("%s stopped", self.name)

    def wait(self):
        """ waits one interval. :return: True when the worker should carry on """
        return not self.wakeup.wait(self.interval)

    def stop(self, timeout=None):
        """ asks the thread to stop, and waits for its current call to work() to return. """
        self.wakeup.set()
        thread, self.thread = self.thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
