"""Useful helper functions."""

import os
import re
import pwd
import shutil
import logging

from contextlib import contextmanager
from coreos_install_tests.state import AssertionFailed, ExpectedError
from subprocess import PIPE, STDOUT, run as subprocess_run
from tempfile import NamedTemporaryFile, gettempdir


__all__ = [
    'GiB',
    'SPACE',
    'contains',
    'envar',
    'must_run',
    'remove_all',
    'run',
    'search',
    'search_all',
    'try_run',
    'try_search',
    'write_file',
    ]


SPACE = ' '
_logger = logging.getLogger('coreos-install-tests')


def GiB(count):
    return count * 2**30


def run(command, *args):
    """Run an external command to completion.

    :param command: The executable to run.
    :param args: Its arguments.
    :return: A 2-tuple of the combined stdout and stderr as bytes, and
        whether the command exited with status zero.
    """
    try:
        proc = subprocess_run([command] + list(args),
                              stdout=PIPE, stderr=STDOUT)
    except OSError as error:
        # The command couldn't even be started, e.g. it isn't installed.
        return str(error).encode('utf-8'), False
    return proc.stdout, proc.returncode == 0


def must_run(command, *args):
    output, ok = run(command, *args)
    if not ok:
        cmd = SPACE.join([command] + list(args))
        _logger.error('COMMAND FAILED: %s', cmd)
        if output:
            _logger.error(output.decode('utf-8', errors='replace'))
        raise AssertionFailed('{} failed'.format(cmd))
    return output


def try_run(command, *args):
    return run(command, *args)[1]


def _compile(pattern, data):
    if isinstance(data, bytes):
        return re.compile(pattern.encode('utf-8'))
    return re.compile(pattern)


def _text(value):
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value


def try_search(item_name, pattern, data):
    """Return the first capture group of `pattern` in `data`, or None."""
    mo = _compile(pattern, data).search(data)
    if mo is None or mo.lastindex is None:
        _logger.debug("didn't find %s", item_name)
        return None
    return _text(mo.group(1))


def search(item_name, pattern, data):
    """Like `try_search()` but a missing match fails the test."""
    value = try_search(item_name, pattern, data)
    if value is None:
        raise AssertionFailed("couldn't find {}".format(item_name))
    return value


def search_all(item_name, pattern, data):
    """Return the first capture group of every match, in order.

    Zero matches fails the test.
    """
    matches = [_text(mo.group(1))
               for mo in _compile(pattern, data).finditer(data)]
    if len(matches) == 0:
        raise AssertionFailed("couldn't find {}".format(item_name))
    return matches


def contains(pattern, data):
    return _compile(pattern, data).search(data) is not None


def temp_root():
    # tempfile caches its idea of the temporary directory the first time it
    # is asked, but TMPDIR is changed per test by the runner.
    return os.environ.get('TMPDIR') or gettempdir()


def write_file(data, prefix='coreos-install-file'):
    with NamedTemporaryFile('w', encoding='utf-8', prefix=prefix,
                            dir=temp_root(), delete=False) as fp:
        fp.write(data)
    return fp.name


def remove_all(path):
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


@contextmanager
def envar(key, value):
    missing = object()
    # Temporarily set an environment variable.
    old_value = os.environ.get(key, missing)
    os.environ[key] = value
    try:
        yield
    finally:
        if old_value is missing:
            del os.environ[key]
        else:
            os.environ[key] = old_value


def check_root_privilege():
    if os.geteuid() != 0:
        current_user = pwd.getpwuid(os.geteuid())[0]
        raise PrivilegeError(current_user)


def check_dependencies(commands):
    for command in commands:
        if shutil.which(command) is None:
            raise DependencyError(command)


class PrivilegeError(ExpectedError):
    """Exception raised whenever this tool has not granted root permission."""

    def __init__(self, user_name):
        self.user_name = user_name


class DependencyError(ExpectedError):
    """A required external command is missing."""

    def __init__(self, name, additional_info=''):
        self.name = name
        self.additional_info = additional_info
