import time

from serialhub.support.mixins import ValueEqualityMixin


class PeriodicInterval(ValueEqualityMixin):
    """
    Tracks when a periodic action is next due.

    Calling the interval with the current time returns how long until the action
    is due. A result <= 0 means the action is due now, and the interval restarts
    from the given time.
    """

    def __init__(self, period, last_run=None):
        """
        :param period: The period, in the same unit as the times passed in.
        :param last_run: When the action last ran. None means the action is due immediately.
        """
        self.period = period
        self.last_run = last_run

    def __call__(self, current_time=None, dry_run=False):
        """ returns the time until the action is due.
            :param dry_run: when True, the interval is not restarted
        """
        if current_time is None:
            current_time = time.monotonic()
        result = self._time_remaining(current_time)
        if not dry_run and result <= 0:
            self.last_run = current_time
        return result

    def restart(self, current_time):
        """ marks the action as having run at the given time. """
        self.last_run = current_time

    def _time_remaining(self, current_time):
        return 0 if self.last_run is None else self.period - (current_time - self.last_run)
