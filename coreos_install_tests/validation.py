"""Checks against the artifacts an installer run leaves on the disk."""

import os
import re
import logging

from coreos_install_tests.helpers import contains, must_run, search
from coreos_install_tests.state import AssertionFailed


__all__ = [
    'default_checks',
    'release_exists',
    'validate_cloudinit',
    'validate_default_root_partition',
    'validate_default_usra_partition',
    'validate_ignition',
    'validate_partition_label',
    ]


IGNITION_FILE = 'coreos-install.json'
GRUB_FILE = 'grub.cfg'
IGNITION_URL_ARG = 'coreos.config.url=oem:///coreos-install.json'
CLOUDINIT_FILE = os.path.join('var', 'lib', 'coreos-install', 'user_data')
RELEASE_FILE = os.path.join('lib', 'os-release')

_logger = logging.getLogger('coreos-install-tests')


def _read(path, description):
    try:
        with open(path, 'rb') as fp:
            return fp.read()
    except OSError as error:
        raise AssertionFailed("couldn't read {}: {}".format(
            description, error)) from error


def _as_bytes(config):
    return config if isinstance(config, bytes) else config.encode('utf-8')


def release_exists(mount_paths):
    """Search for /usr/lib/os-release on all the mounted partitions."""
    for path in mount_paths:
        if os.path.exists(os.path.join(path, RELEASE_FILE)):
            return
    raise AssertionFailed('/usr/lib/os-release not found on any partitions')


def validate_partition_label(disk_file, expected_label, partition_index):
    disk_info = must_run('sgdisk', '-i', str(partition_index), disk_file)
    actual_label = search(
        'partition name', r"Partition name: '(?P<name>[\d\w\-_]+)'",
        disk_info)
    if actual_label != expected_label:
        raise AssertionFailed(
            'label on partition {} did not match. '
            'expected {}, received {}'.format(
                partition_index, expected_label, actual_label))


def validate_default_root_partition(disk_file):
    validate_partition_label(disk_file, 'ROOT', 9)


def validate_default_usra_partition(disk_file):
    validate_partition_label(disk_file, 'USR-A', 3)


def default_checks(mount_paths, disk_file):
    """The checks every installed disk has to pass."""
    release_exists(mount_paths)
    validate_default_root_partition(disk_file)
    validate_default_usra_partition(disk_file)


def validate_ignition(mount_paths, config):
    """Check the Ignition config and its boot loader hookup.

    Every ``coreos-install.json`` found at the root of a mounted partition
    must match `config` byte for byte, and at least one must be found.
    Some partition must also carry a ``grub.cfg`` pointing the kernel at
    that config file.
    """
    expected = _as_bytes(config)
    ignition_found = False
    grub_found = False
    for path in mount_paths:
        ignition_path = os.path.join(path, IGNITION_FILE)
        if os.path.exists(ignition_path):
            ignition_found = True
            data = _read(ignition_path, IGNITION_FILE)
            if data != expected:
                raise AssertionFailed(
                    "{} doesn't match: expected {!r}, received {!r}".format(
                        IGNITION_FILE, expected, data))
        grub_path = os.path.join(path, GRUB_FILE)
        if os.path.exists(grub_path):
            data = _read(grub_path, GRUB_FILE)
            if contains(re.escape(IGNITION_URL_ARG), data):
                grub_found = True
            else:
                _logger.debug('%s does not reference %s',
                              grub_path, IGNITION_FILE)
    if not ignition_found:
        raise AssertionFailed("couldn't find {}".format(IGNITION_FILE))
    if not grub_found:
        raise AssertionFailed("couldn't find {} containing {}".format(
            GRUB_FILE, IGNITION_URL_ARG))


def validate_cloudinit(mount_paths, config):
    expected = _as_bytes(config)
    cloudinit_found = False
    for path in mount_paths:
        cloudinit_path = os.path.join(path, CLOUDINIT_FILE)
        if os.path.exists(cloudinit_path):
            cloudinit_found = True
            data = _read(cloudinit_path, 'coreos-install/user_data')
            if data != expected:
                raise AssertionFailed(
                    "coreos-install/user_data doesn't match: "
                    'expected {!r}, received {!r}'.format(expected, data))
    if not cloudinit_found:
        raise AssertionFailed("couldn't find coreos-install/user_data")
