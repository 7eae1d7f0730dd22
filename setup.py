#!/usr/bin/env python3

import sys

from debian.changelog import Changelog
from setuptools import find_packages, setup


def require_python(minimum):
    """Require at least a minimum Python version.

    The version number is expressed in terms of `sys.hexversion`.  E.g. to
    require a minimum of Python 2.6, use::

    >>> require_python(0x206000f0)

    :param minimum: Minimum Python version supported.
    :type minimum: integer
    """
    if sys.hexversion < minimum:
        hversion = hex(minimum)[2:]
        if len(hversion) % 2 != 0:
            hversion = '0' + hversion
        split = list(hversion)
        parts = []
        while split:
            parts.append(int(''.join((split.pop(0), split.pop(0))), 16))
        major, minor, micro, release = parts
        if release == 0xf0:
            print('Python {}.{}.{} or better is required'.format(
                major, minor, micro))
        else:
            print('Python {}.{}.{} ({}) or better is required'.format(
                major, minor, micro, hex(release)[2:]))
        sys.exit(1)

require_python(0x30900f0)


with open('debian/changelog', encoding='utf-8') as infp:
    __version__ = str(Changelog(infp).get_version())
    # Write the version out to the package directory so
    # `coreos-install-tests --version` can display it.
    with open('coreos_install_tests/version.txt', 'w',
              encoding='utf-8') as outfp:
        print(__version__, file=outfp)


setup(
    name='coreos-install-tests',
    version=__version__,
    description='Validate coreos-install against loop-backed disk images',
    url='https://github.com/coreos/init',
    packages=find_packages(),
    include_package_data=True,
    install_requires=[
        'attrs',
        'requests',
        ],
    extras_require={
        'test': ['nose2'],
        },
    entry_points={
        'console_scripts': [
            'coreos-install-tests = coreos_install_tests.__main__:main',
            ],
        },
    license='Apache-2.0',
    classifiers=(
        'Development Status :: 3 - Alpha',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Natural Language :: English',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development :: Testing',
        'Topic :: System :: Installation/Setup',
        ),
    )
