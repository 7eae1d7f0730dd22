"""A default install with a cloud-config."""

from coreos_install_tests.positive.mounts import mount_partitions
from coreos_install_tests.register import RegisteredTest


CLOUD_CONFIG = """\
#cloud-config
hostname: coreos-install-test
"""


def cloudinit_test(test):
    disk_file, loop_device = test.create_device()
    test.defer(test.cleanup_disk, disk_file, loop_device)

    cloud_config = test.write_file(CLOUD_CONFIG)
    test.defer(test.remove_all, cloud_config)

    test.run_coreos_install('-d', loop_device, '-c', cloud_config)

    mount_paths = mount_partitions(test, loop_device)
    test.default_checks(mount_paths, disk_file)
    test.validate_cloudinit(mount_paths, CLOUD_CONFIG)


TEST = RegisteredTest('Install with a cloud-config', cloudinit_test)
