"""Exposing an installed disk's partitions to the checks."""


def mount_partitions(test, loop_device):
    """Map and mount every partition of the loop device.

    Partitions without a file system are skipped.  Release actions for the
    mappers and every successful mount are pushed onto the harness.

    :return: The mount points.
    :rtype: list
    """
    devices = test.create_device_mappers(loop_device)
    test.defer(test.remove_device_mappers, loop_device)
    mount_paths = []
    for device in devices:
        path = test.mount_device_mapper(device)
        if path != '':
            mount_paths.append(path)
            test.defer(test.remove_all, path)
            test.defer(test.unmount_path, path)
    return mount_paths
