"""Test the release-action stack."""

import logging

from contextlib import suppress
from coreos_install_tests.state import AssertionFailed, Cleanups
from coreos_install_tests.testing.helpers import LogCapture
from unittest import TestCase


class TestCleanups(TestCase):
    def test_reverse_order(self):
        order = []
        with Cleanups() as cleanups:
            cleanups.push(order.append, 'disk')
            cleanups.push(order.append, 'mappers')
            cleanups.push(order.append, 'mount')
        self.assertEqual(order, ['mount', 'mappers', 'disk'])

    def test_runs_on_failure(self):
        order = []
        with suppress(AssertionFailed):
            with Cleanups() as cleanups:
                cleanups.push(order.append, 'disk')
                raise AssertionFailed('label mismatch')
        self.assertEqual(order, ['disk'])

    def test_failing_action_does_not_stop_the_rest(self):
        order = []

        def unmount(path):
            raise AssertionFailed('umount {} failed'.format(path))

        with LogCapture() as log:
            with Cleanups() as cleanups:
                cleanups.push(order.append, 'disk')
                cleanups.push(unmount, '/mnt')
                cleanups.push(order.append, 'mount dir')
        self.assertEqual(order, ['mount dir', 'disk'])
        self.assertEqual(cleanups.errors,
                         ['cleanup unmount failed: umount /mnt failed'])
        self.assertIn(
            (logging.ERROR, 'cleanup unmount failed: umount /mnt failed'),
            log.logs)

    def test_os_errors_are_recorded(self):
        def remove(path):
            raise PermissionError(13, 'Permission denied', path)

        with Cleanups() as cleanups:
            cleanups.push(remove, '/var/tmp/x')
        self.assertEqual(len(cleanups.errors), 1)
        self.assertIn('Permission denied', cleanups.errors[0])

    def test_other_errors_propagate(self):
        cleanups = Cleanups()
        cleanups.push(int, 'not a number')
        self.assertRaises(ValueError, cleanups.close)

    def test_close_twice(self):
        order = []
        cleanups = Cleanups()
        cleanups.push(order.append, 1)
        cleanups.close()
        cleanups.close()
        self.assertEqual(order, [1])
