"""Allows the package to be run with `python3 -m coreos_install_tests`."""

import sys
import logging
import argparse

from coreos_install_tests import __version__, positive
from coreos_install_tests.helpers import (
    DependencyError, PrivilegeError, check_dependencies,
    check_root_privilege)
from coreos_install_tests.installer import installer_command
from coreos_install_tests.register import Registry, Runner


_logger = logging.getLogger('coreos-install-tests')


PROGRAM = 'coreos-install-tests'
REQUIRED_COMMANDS = ['sgdisk', 'losetup', 'kpartx', 'mount', 'umount']


def parseargs(argv=None):
    parser = argparse.ArgumentParser(
        prog=PROGRAM,
        description='Run coreos-install against loop devices and check '
                    'the installed disks.')
    parser.add_argument(
        '--version', action='version',
        version='{} {}'.format(PROGRAM, __version__))
    parser.add_argument(
        '-d', '--debug',
        default=False, action='store_true',
        help='Enable debugging output')
    parser.add_argument(
        '-P', '--pattern',
        default=[], action='append', metavar='REGEX',
        help="""Only run the tests whose name matches REGEX.  May be given
        more than once, in which case a test matching any of them runs.""")
    parser.add_argument(
        '-l', '--list',
        default=False, action='store_true',
        help='List the selected tests instead of running them')
    parser.add_argument(
        '--workdir-parent',
        default='/var/tmp', metavar='DIRECTORY',
        help="""Directory in which each test's temporary working directory
        is created when TMPDIR is not set.""")
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(levelname)s: %(message)s')
    return args


def main(argv=None, registry=None):
    if argv is None:
        argv = sys.argv[1:]
    args = parseargs(argv)
    if registry is None:
        registry = Registry(positive.tests())
    tests = list(registry.select(args.pattern))
    if args.list:
        for test in tests:
            print(test.name)
        return 0
    try:
        check_root_privilege()
        check_dependencies(REQUIRED_COMMANDS + [installer_command()])
    except PrivilegeError as error:
        _logger.error('Current user({}) does not have root privilege to set '
                      'up loop devices. Please run {} as root.'.format(
                          error.user_name, PROGRAM))
        return 1
    except DependencyError as error:
        _logger.error('Required dependency {} seems to be missing. {}'.format(
            error.name, error.additional_info))
        return 1
    outcomes = Runner(args.workdir_parent).run_all(tests)
    for outcome in outcomes:
        print('{}  {}'.format('PASS' if outcome.passed else 'FAIL',
                              outcome.name))
        if outcome.failure is not None:
            print('    {}'.format(outcome.failure))
        for error in outcome.errors:
            print('    {}'.format(error))
    if all(outcome.passed for outcome in outcomes):
        return 0
    return 1


if __name__ == '__main__':                          # pragma: nocover
    sys.exit(main())
