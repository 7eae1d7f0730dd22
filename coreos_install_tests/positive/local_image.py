"""Installing from a locally served image instead of the release server."""

from coreos_install_tests.positive.mounts import mount_partitions
from coreos_install_tests.register import RegisteredTest


def local_image_test(test):
    image_dir = test.fetch_local_image()
    test.defer(test.remove_all, image_dir)
    # The server keeps running until the process exits.
    address = test.serve_image(image_dir)

    disk_file, loop_device = test.create_device()
    test.defer(test.cleanup_disk, disk_file, loop_device)

    test.run_coreos_install(
        '-d', loop_device, '-b', 'http://{}'.format(address))

    mount_paths = mount_partitions(test, loop_device)
    test.default_checks(mount_paths, disk_file)


TEST = RegisteredTest('Install from a local image server', local_image_test)
