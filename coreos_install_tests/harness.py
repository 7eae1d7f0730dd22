"""The handle test procedures use to reach the harness operations."""

from coreos_install_tests import device, installer, remote, validation
from coreos_install_tests.helpers import remove_all, write_file
from coreos_install_tests.state import Cleanups


class Harness(Cleanups):
    """Everything a registered test procedure may do.

    Each resource a procedure acquires should be paired with a release
    action pushed through `defer()`.  The runner closes the harness when the
    procedure returns or fails, running those actions newest first.
    """

    def __init__(self, test):
        super().__init__()
        self.test = test

    def defer(self, function, *args, **kws):
        self.push(function, *args, **kws)

    # Files.
    write_file = staticmethod(write_file)
    remove_all = staticmethod(remove_all)

    # Devices.
    create_device = staticmethod(device.create_device)
    cleanup_disk = staticmethod(device.cleanup_disk)
    create_device_mappers = staticmethod(device.create_device_mappers)
    remove_device_mappers = staticmethod(device.remove_device_mappers)
    mount_device_mapper = staticmethod(device.mount_device_mapper)
    unmount_path = staticmethod(device.unmount_path)

    # The installer.
    run_coreos_install = staticmethod(installer.run_coreos_install)
    which_coreos_install = staticmethod(installer.which_coreos_install)

    # Validation.
    release_exists = staticmethod(validation.release_exists)
    validate_partition_label = staticmethod(
        validation.validate_partition_label)
    validate_default_root_partition = staticmethod(
        validation.validate_default_root_partition)
    validate_default_usra_partition = staticmethod(
        validation.validate_default_usra_partition)
    default_checks = staticmethod(validation.default_checks)
    validate_ignition = staticmethod(validation.validate_ignition)
    validate_cloudinit = staticmethod(validation.validate_cloudinit)

    # Release images.
    get_default_channel_board_version = staticmethod(
        remote.get_default_channel_board_version)
    download_file = staticmethod(remote.download_file)
    fetch_local_image = staticmethod(remote.fetch_local_image)

    def serve_image(self, file_dir):
        """Serve a fetched image triad for the rest of the process.

        :return: The ``host:port`` address of the server.
        """
        return remote.ImageServer(file_dir).start()
