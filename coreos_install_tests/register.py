"""Registering installer tests and running them."""

import os
import re
import attr
import logging

from contextlib import ExitStack
from coreos_install_tests.harness import Harness
from coreos_install_tests.helpers import envar, remove_all
from coreos_install_tests.state import AssertionFailed
from tempfile import mkdtemp


__all__ = [
    'Outcome',
    'RegisteredTest',
    'Registry',
    'Runner',
    ]


_logger = logging.getLogger('coreos-install-tests')


@attr.s(frozen=True)
class RegisteredTest:
    """A named test procedure taking a `Harness`."""
    name = attr.ib()
    func = attr.ib()


@attr.s
class Outcome:
    name = attr.ib()
    failure = attr.ib(default=None)
    errors = attr.ib(default=attr.Factory(list))

    @property
    def passed(self):
        return self.failure is None and len(self.errors) == 0


class Registry:
    """The tests to run, in registration order."""

    def __init__(self, tests=()):
        self._tests = []
        for test in tests:
            self.register(test)

    def register(self, test):
        self._tests.append(test)
        return test

    def select(self, patterns):
        """Yield the tests whose names match any of the regex patterns.

        With no patterns, every test is selected.
        """
        for test in self._tests:
            if len(patterns) == 0 or any(
                    re.search(pattern, test.name) for pattern in patterns):
                yield test

    def __iter__(self):
        return iter(list(self._tests))

    def __len__(self):
        return len(self._tests)


class Runner:
    def __init__(self, workdir_parent='/var/tmp'):
        self.workdir_parent = workdir_parent

    def _isolate(self, resources, outcome):
        # Give the test its own TMPDIR unless the caller picked one.
        if os.environ.get('TMPDIR'):
            return
        tmpdir = mkdtemp(dir=self.workdir_parent)
        resources.callback(self._remove_workdir, tmpdir, outcome)
        resources.enter_context(envar('TMPDIR', tmpdir))
        _logger.debug('TMPDIR=%s', tmpdir)

    def _remove_workdir(self, tmpdir, outcome):
        try:
            remove_all(tmpdir)
        except OSError as error:
            message = "couldn't remove {}: {}".format(tmpdir, error)
            _logger.error(message)
            outcome.errors.append(message)

    def run(self, test):
        """Run one test procedure to completion.

        :return: The test's outcome.
        :rtype: Outcome
        """
        outcome = Outcome(test.name)
        _logger.info('=== RUN   %s', test.name)
        try:
            with ExitStack() as resources:
                self._isolate(resources, outcome)
                harness = Harness(test)
                try:
                    test.func(harness)
                finally:
                    harness.close()
                    outcome.errors.extend(harness.errors)
        except AssertionFailed as error:
            _logger.error('%s: %s', test.name, error)
            outcome.failure = str(error)
        except Exception as error:
            _logger.exception('Crash in test %s', test.name)
            outcome.failure = 'crashed: {!r}'.format(error)
        _logger.info('--- %s  %s', 'PASS' if outcome.passed else 'FAIL',
                     test.name)
        return outcome

    def run_all(self, tests):
        return [self.run(test) for test in tests]
