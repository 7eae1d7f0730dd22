"""Fetching release images, and serving them to the installer locally."""

import os
import shutil
import logging
import requests

from coreos_install_tests.helpers import remove_all, search, try_search
from coreos_install_tests.state import AssertionFailed
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from tempfile import mkdtemp
from threading import Thread
from urllib.parse import urlsplit


__all__ = [
    'IMAGE',
    'ImageServer',
    'SIGNATURE',
    'VERSION',
    'download_file',
    'fetch_local_image',
    'get_default_channel_board_version',
    'release_url',
    ]


IMAGE = 'coreos_production_image.bin.bz2'
SIGNATURE = 'coreos_production_image.bin.bz2.sig'
VERSION = 'version.txt'
DEFAULTS = ('stable', 'amd64-usr', 'current')
RELEASE_DOMAIN = 'release.core-os.net'
CHUNK_SIZE = 1024 * 1024

# Matches both quoted and unquoted KEY=value lines.
FIELD = "{}=['\"]?([A-Za-z0-9 \\._\\-]*)['\"]?"

_logger = logging.getLogger('coreos-install-tests')


def get_default_channel_board_version(
        os_release='/usr/lib/os-release',
        update_conf='/etc/coreos/update.conf'):
    """Return the channel, board and version to fetch images for.

    When running on Container Linux these describe the host itself,
    otherwise they default to stable, amd64-usr and current.
    """
    try:
        with open(os_release, 'rb') as fp:
            data = fp.read()
    except OSError:
        return DEFAULTS
    # Anchor on line starts so VERSION_ID doesn't also match e.g. BUILD_ID.
    os_id = try_search('id', '(?m)^' + FIELD.format('ID'), data)
    if os_id != 'coreos':
        return DEFAULTS
    version = search('version', '(?m)^' + FIELD.format('VERSION_ID'), data)
    board = search('board', '(?m)^' + FIELD.format('COREOS_BOARD'), data)
    try:
        with open(update_conf, 'rb') as fp:
            data = fp.read()
    except OSError as error:
        raise AssertionFailed('reading {}: {}'.format(
            update_conf, error)) from error
    channel = search('channel', '(?m)^' + FIELD.format('GROUP'), data)
    return channel, board, version


def release_url(channel, board, version, name):
    domain = os.environ.get('COREOS_RELEASE_DOMAIN', RELEASE_DOMAIN)
    return 'https://{}.{}/{}/{}/{}'.format(
        channel, domain, board, version, name)


def download_file(dest_dir, name, channel=None, board=None, version=None):
    """Download one release file into `dest_dir`.

    Any of channel, board and version not given are filled in from
    `get_default_channel_board_version()`.

    :return: The path of the downloaded file.
    """
    if None in (channel, board, version):
        defaults = get_default_channel_board_version()
        channel, board, version = (
            given if given is not None else default
            for given, default in zip((channel, board, version), defaults))
    url = release_url(channel, board, version, name)
    path = os.path.join(dest_dir, name)
    _logger.info('Downloading %s', url)
    try:
        with requests.get(url, stream=True) as response:
            response.raise_for_status()
            with open(path, 'wb') as fp:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    fp.write(chunk)
    except (requests.RequestException, OSError) as error:
        raise AssertionFailed('failed to download {}: {}'.format(
            url, error)) from error
    return path


def fetch_local_image():
    """Download the image, its signature and version.txt.

    All three land in a new temporary directory, which the caller owns.
    If any download fails the directory is removed before failing.
    """
    tmp_path = os.environ.get('TMPDIR') or '/var/tmp'
    try:
        tmp_dir = mkdtemp(dir=tmp_path)
    except OSError as error:
        raise AssertionFailed(
            'failed creating temp dir: {}'.format(error)) from error
    for name, what in ((IMAGE, 'image'),
                       (SIGNATURE, 'signature'),
                       (VERSION, 'version')):
        try:
            download_file(tmp_dir, name)
        except AssertionFailed as error:
            try:
                remove_all(tmp_dir)
            except OSError as cleanup_error:
                _logger.error("couldn't remove {}: {}".format(
                    tmp_dir, cleanup_error))
            raise AssertionFailed(
                'failed downloading {}: {}'.format(what, error)) from error
    return tmp_dir


class _ImageRequestHandler(BaseHTTPRequestHandler):
    # Filled in per server by ImageServer.start().
    file_dir = None
    routes = {}

    def do_GET(self):
        # Only the path selects a file; any query string is ignored.
        name = self.routes.get(urlsplit(self.path).path)
        if name is None:
            self.send_error(404)
            return
        path = os.path.join(self.file_dir, name)
        try:
            fp = open(path, 'rb')
        except OSError:
            self.send_error(404)
            return
        with fp:
            self.send_response(200)
            self.send_header('Content-Type', 'application/octet-stream')
            self.send_header(
                'Content-Length', str(os.fstat(fp.fileno()).st_size))
            self.end_headers()
            shutil.copyfileobj(fp, self.wfile)

    def log_message(self, format, *args):
        _logger.debug('%s - %s', self.address_string(), format % args)


class ImageServer:
    """Serve a downloaded image triad the way the release server does."""

    def __init__(self, file_dir):
        self.file_dir = file_dir
        self._httpd = None

    def start(self):
        """Start serving on an ephemeral local port.

        The server runs on a daemon thread for the rest of the process.

        :return: The ``host:port`` address being served.
        """
        try:
            with open(os.path.join(self.file_dir, VERSION), 'rb') as fp:
                data = fp.read()
        except OSError as error:
            raise AssertionFailed("Couldn't read {}".format(VERSION)) from error
        version = search('version', 'COREOS_VERSION=(.*)', data).strip()
        routes = {
            '/current/{}'.format(VERSION): VERSION,
            '/{}/{}'.format(version, IMAGE): IMAGE,
            '/{}/{}'.format(version, SIGNATURE): SIGNATURE,
            }
        handler = type('ImageRequestHandler', (_ImageRequestHandler,), dict(
            file_dir=self.file_dir, routes=routes))
        try:
            self._httpd = ThreadingHTTPServer(('127.0.0.1', 0), handler)
        except OSError as error:
            raise AssertionFailed(
                'creating listener: {}'.format(error)) from error
        self._httpd.daemon_threads = True
        thread = Thread(target=self._httpd.serve_forever, daemon=True)
        thread.start()
        host, port = self._httpd.server_address[:2]
        address = '{}:{}'.format(host, port)
        _logger.info('Serving %s on %s', self.file_dir, address)
        return address

    def stop(self):
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
