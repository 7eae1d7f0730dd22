"""Testing helpers."""

import os
import logging
import requests

from contextlib import ExitStack
from coreos_install_tests.helpers import remove_all
from types import SimpleNamespace
from unittest.mock import patch


IGNITION_GRUB_CFG = (
    b'# Installed by coreos-install\n'
    b'set linux_append="coreos.config.url=oem:///coreos-install.json"\n')

DEFAULT_LABELS = {
    1: 'EFI-SYSTEM',
    2: 'BIOS-BOOT',
    3: 'USR-A',
    4: 'USR-B',
    6: 'OEM',
    7: 'OEM-CONFIG',
    9: 'ROOT',
    }


class LogCapture:
    def __init__(self):
        self.logs = []
        self._resources = ExitStack()

    def capture(self, *args, **kws):
        level, fmt, fmt_args = args
        self.logs.append((level, fmt % fmt_args))
        # Was .exception() called?
        exc_info = kws.pop('exc_info', None)
        # Newer Pythons pass stacklevel through as well.
        kws.pop('stacklevel', None)
        kws.pop('extra', None)
        kws.pop('stack_info', None)
        assert len(kws) == 0, kws
        if exc_info:
            self.logs.append('IMAGINE THE TRACEBACK HERE')

    def __enter__(self):
        log = logging.getLogger('coreos-install-tests')
        self._resources.enter_context(patch.object(log, '_log', self.capture))
        return self

    def __exit__(self, *exception):
        self._resources.close()
        # Don't suppress any exceptions.
        return False


class CommandMocker:
    """Pretend to be the disk tools and the installer.

    Patch this object's `run()` in place of
    ``coreos_install_tests.helpers.subprocess_run``.  Loop devices, device
    mappers and mounts are tracked in memory; mounting copies the files of
    the pretend file system into the mount point.  A successful installer
    run lays down the partitions and files of a default install, with the
    given Ignition or cloud-config in place.

    :param fail: Commands (by name) which exit non-zero.
    :param labels: Partition index to name map reported by ``sgdisk -i``.
    """

    loop_device = '/dev/loop0'

    def __init__(self, fail=(), labels=None, installer='coreos-install'):
        self.calls = []
        self.fail = set(fail)
        self.labels = dict(DEFAULT_LABELS if labels is None else labels)
        self.installer = installer
        self.attached = {}
        self.mapped = set()
        self.mounted = set()
        self.mount_points = []
        self.fetched = []
        self.partitions = []
        self.filesystems = {}

    def __enter__(self):
        self._patcher = patch(
            'coreos_install_tests.helpers.subprocess_run', self.run)
        self._patcher.start()
        return self

    def __exit__(self, *exception):
        self._patcher.stop()
        return False

    def _result(self, stdout=b'', returncode=0):
        return SimpleNamespace(stdout=stdout, returncode=returncode)

    def run(self, command, *args, **kws):
        self.calls.append(list(command))
        name, args = command[0], list(command[1:])
        if name in self.fail:
            return self._result(
                '{}: failed on purpose\n'.format(name).encode(), 1)
        handler = {
            'sgdisk': self._sgdisk,
            'losetup': self._losetup,
            'kpartx': self._kpartx,
            'mount': self._mount,
            'umount': self._umount,
            self.installer: self._install,
            }.get(name)
        if handler is None:
            raise FileNotFoundError(
                2, 'No such file or directory', name)
        return handler(args)

    def _sgdisk(self, args):
        if args[0] == '-i':
            index = int(args[1])
            label = self.labels.get(index)
            if label is None:
                return self._result(
                    'Partition #{} does not exist.\n'.format(index).encode())
            return self._result((
                'Partition GUID code: 4F68BCE3-E8CD-4DB1-96E7-FBCAF984B709\n'
                "Partition name: '{}'\n").format(label).encode())
        # Write an empty GPT, or at least its signature.
        with open(args[0], 'r+b') as fp:
            fp.seek(512)
            fp.write(b'EFI PART')
        return self._result(b'Creating new GPT entries in memory.\n')

    def _losetup(self, args):
        if args[0] == '-d':
            if self.attached.pop(args[1], None) is None:
                return self._result(
                    'losetup: {}: detach failed\n'.format(args[1]).encode(), 1)
            return self._result()
        # losetup -P -f <file> --show
        self.attached[self.loop_device] = args[2]
        return self._result('{}\n'.format(self.loop_device).encode())

    def _mapper(self, index):
        return '{}p{}'.format(os.path.basename(self.loop_device), index)

    def _kpartx(self, args):
        option, loop_device = args
        if option == '-d':
            self.mapped.discard(loop_device)
            return self._result()
        self.mapped.add(loop_device)
        lines = [
            'add map {} (253:{}): 0 2048 linear 7:0 {}\n'.format(
                name, i, 4096 + i * 2048)
            for i, name in enumerate(self.partitions)]
        return self._result(''.join(lines).encode())

    def _mount(self, args):
        device, mount_point = args[0], args[1]
        name = os.path.basename(device)
        if name not in self.filesystems:
            return self._result(
                'mount: {}: wrong fs type, bad option, bad superblock\n'
                .format(mount_point).encode(), 32)
        for path, contents in self.filesystems[name].items():
            rooted_path = os.path.join(mount_point, path)
            os.makedirs(os.path.dirname(rooted_path), exist_ok=True)
            with open(rooted_path, 'wb') as fp:
                fp.write(contents)
        self.mounted.add(mount_point)
        self.mount_points.append(mount_point)
        return self._result()

    def _umount(self, args):
        mount_point = args[0]
        if mount_point not in self.mounted:
            return self._result(
                'umount: {}: not mounted.\n'.format(mount_point).encode(), 32)
        self.mounted.remove(mount_point)
        for entry in os.listdir(mount_point):
            remove_all(os.path.join(mount_point, entry))
        return self._result()

    def _install(self, args):
        options = dict(zip(args[::2], args[1::2]))
        if '-b' in options:
            # Make sure the image mirror answers like the release server.
            url = '{}/current/version.txt'.format(options['-b'])
            response = requests.get(url)
            if response.status_code != 200:
                return self._result(
                    'Failed to fetch {}\n'.format(url).encode(), 1)
            self.fetched.append(response.content)
        self.partitions = [self._mapper(i) for i in range(1, 10)]
        oem = {}
        root = {}
        if '-i' in options:
            with open(options['-i'], 'rb') as fp:
                oem['coreos-install.json'] = fp.read()
            oem['grub.cfg'] = IGNITION_GRUB_CFG
        if '-c' in options:
            with open(options['-c'], 'rb') as fp:
                root['var/lib/coreos-install/user_data'] = fp.read()
        self.filesystems = {
            self._mapper(1): {'EFI/boot/grub.cfg': b'# boot loader\n'},
            self._mapper(3): {'lib/os-release': b'ID=coreos\n'},
            self._mapper(6): oem,
            self._mapper(9): root,
            }
        return self._result(b'Success! CoreOS Container Linux is installed\n')
