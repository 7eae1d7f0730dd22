"""Failure classes and the release-action stack for test procedures."""

from contextlib import ExitStack
from logging import getLogger


log = getLogger('coreos-install-tests')


class ExpectedError(Exception):
    """An error which is reported to the user without a traceback."""


class AssertionFailed(ExpectedError):
    """A fatal check failure; aborts the running test procedure."""


class Cleanups:
    """A stack of release actions.

    Actions are run in the reverse order they were pushed, when the stack is
    closed or its context exits for any reason.  A failing action does not
    stop the remaining ones; the failure is logged and remembered in
    `.errors` instead.
    """

    def __init__(self):
        self.errors = []
        # Manage all resources so they get cleaned up whenever the test
        # procedure exits for any reason.
        self.resources = ExitStack()

    def push(self, function, *args, **kws):
        self.resources.callback(self._release, function, *args, **kws)

    def _release(self, function, *args, **kws):
        name = getattr(function, '__name__', repr(function))
        log.debug('<- {}{}'.format(name, args))
        try:
            function(*args, **kws)
        except (ExpectedError, OSError) as error:
            message = 'cleanup {} failed: {}'.format(name, error)
            log.error(message)
            self.errors.append(message)

    def close(self):
        # Transfer all resources to a new ExitStack, and release them from
        # there.  That way, if .close() gets called more than once, only the
        # first call will release the resources, while subsequent ones will
        # no-op.
        self.resources.pop_all().close()

    def __enter__(self):
        return self

    def __exit__(self, *exception):
        self.close()
        # Don't suppress any exceptions.
        return False
