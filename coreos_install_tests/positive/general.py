"""A default install with an Ignition config."""

from coreos_install_tests.positive.mounts import mount_partitions
from coreos_install_tests.register import RegisteredTest


IGNITION_CONFIG = '{"ignition":{"version":"2.1.0"}}'


def base_test(test):
    disk_file, loop_device = test.create_device()
    test.defer(test.cleanup_disk, disk_file, loop_device)

    ignition = test.write_file(IGNITION_CONFIG)
    test.defer(test.remove_all, ignition)

    test.run_coreos_install('-d', loop_device, '-i', ignition)

    mount_paths = mount_partitions(test, loop_device)
    test.default_checks(mount_paths, disk_file)
    test.validate_ignition(mount_paths, IGNITION_CONFIG)


TEST = RegisteredTest('Does this thing work?', base_test)
