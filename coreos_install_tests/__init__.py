import os

from importlib.resources import files


# Try to get the version number, which setup.py writes out from the debian
# changelog.  Running straight from a source checkout there may be no
# version.txt yet.
__version__ = os.environ.get('COREOS_INSTALL_TESTS_VERSION')
if __version__ is None:                                      # pragma: nocover
    try:
        __version__ = files('coreos_install_tests').joinpath(
            'version.txt').read_text(encoding='utf-8').strip()
    except FileNotFoundError:
        # Probably, setup.py hasn't been run yet to generate the version.txt.
        __version__ = 'dev'
