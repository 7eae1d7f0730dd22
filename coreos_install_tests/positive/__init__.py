"""Installs expected to succeed."""

from coreos_install_tests.positive import cloudinit, general, local_image


def tests():
    return [
        general.TEST,
        cloudinit.TEST,
        local_image.TEST,
        ]
