"""The installer under test, driven as an opaque external command."""

import os
import shutil

from coreos_install_tests.helpers import must_run


def installer_command():
    return os.environ.get('COREOS_INSTALL_CMD', 'coreos-install')


def which_coreos_install():
    """Return the directory holding the installer, or '' if not found."""
    path = shutil.which(installer_command())
    if path is None:
        return ''
    return os.path.dirname(path)


def run_coreos_install(*opts):
    return must_run(installer_command(), *opts)
