"""Loop-backed disks, their partition mappers, and mount points."""

import os
import logging

from contextlib import ExitStack
from coreos_install_tests.helpers import (
    GiB, must_run, remove_all, search_all, temp_root, try_run)
from coreos_install_tests.state import AssertionFailed
from tempfile import NamedTemporaryFile, mkdtemp


__all__ = [
    'DISK_SIZE',
    'cleanup_disk',
    'create_device',
    'create_device_mappers',
    'has_gpt_signature',
    'mount_device_mapper',
    'remove_device_mappers',
    'unmount_path',
    ]


# Large enough for every partition the installer lays down.
DISK_SIZE = GiB(10)
GPT_SIGNATURE = b'EFI PART'
MAPPER_DIR = '/dev/mapper'

_logger = logging.getLogger('coreos-install-tests')


def has_gpt_signature(disk_file, sector_size=512):
    """Is there a GPT header at LBA 1 of the disk file?"""
    with open(disk_file, 'rb') as fp:
        fp.seek(sector_size)
        return fp.read(len(GPT_SIGNATURE)) == GPT_SIGNATURE


def create_device():
    """Create a fresh disk file and back a loop device with it.

    The disk file is a sparse file of exactly `DISK_SIZE` bytes carrying an
    empty GPT partition table.  The loop device is attached with partition
    scanning enabled.

    :return: A 2-tuple of the disk file path and the loop device path.
    :rtype: tuple
    """
    try:
        with NamedTemporaryFile(prefix='coreos-install-disk',
                                dir=temp_root(), delete=False) as fp:
            disk_file = fp.name
    except OSError as error:
        raise AssertionFailed(
            'failed to create disk file: {}'.format(error)) from error
    with ExitStack() as resources:
        # The file is only handed to the caller once the loop device is
        # attached; until then it is ours to remove.
        resources.callback(remove_all, disk_file)
        try:
            # Truncate to zero, so that extending the size in the next call
            # will cause all the bytes to read as zero.
            os.truncate(disk_file, 0)
            os.truncate(disk_file, DISK_SIZE)
        except OSError as error:
            raise AssertionFailed(
                'failed to truncate disk file: {}'.format(error)) from error
        must_run('sgdisk', disk_file)
        if not has_gpt_signature(disk_file):
            raise AssertionFailed(
                'no GPT header on {} after sgdisk'.format(disk_file))
        output = must_run('losetup', '-P', '-f', disk_file, '--show')
        resources.pop_all()
    loop_device = output.decode('utf-8').strip()
    _logger.debug('attached %s to %s', disk_file, loop_device)
    return disk_file, loop_device


def cleanup_disk(disk_file, loop_device):
    must_run('losetup', '-d', loop_device)
    remove_all(disk_file)


def create_device_mappers(loop_device):
    """Create a device mapper node for each partition of the loop device.

    :return: The /dev/mapper paths, in partition order.
    :rtype: list
    """
    output = must_run('kpartx', '-avs', loop_device)
    _logger.debug('kpartx out: %s', output.decode('utf-8', errors='replace'))
    devices = search_all('loop device', r'map (?P<device>[\w\d]+)', output)
    return [os.path.join(MAPPER_DIR, device) for device in devices]


def remove_device_mappers(loop_device):
    must_run('kpartx', '-d', loop_device)


def mount_device_mapper(device):
    """Mount the device read-only on a fresh temporary directory.

    A partition without a file system can't be mounted; that's not an
    error, there's just nothing to validate on it.

    :return: The mount point, or the empty string if the mount failed.
        In that case the (unused) directory is left behind.
    :rtype: str
    """
    try:
        mount_point = mkdtemp(prefix='coreos-install-mount-point',
                              dir=temp_root())
    except OSError as error:
        raise AssertionFailed(
            "couldn't create mount point directory: {}".format(
                error)) from error
    if not try_run('mount', device, mount_point, '-o', 'ro'):
        _logger.debug('%s has no mountable file system', device)
        return ''
    return mount_point


def unmount_path(path):
    must_run('umount', path)
