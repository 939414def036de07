"""
Development server and watch loop.

``serve`` publishes the build directory over HTTP. ``run_dev`` builds once,
then rebuilds whenever a project source changes, coalescing bursts of file
events into one build and never running two builds at a time.
"""

import functools
import http.server
import logging
import os
import threading
import time

from watchdog.events import (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED,
                             EVENT_TYPE_MOVED, FileSystemEventHandler)
from watchdog.observers import Observer

logger = logging.getLogger('Sitewright.server')

DEFAULT_PORT = 3000
DEBOUNCE_DELAY = 0.1
NOT_FOUND_PAGE = b'<h1>404 Not Found</h1>'
WATCHED_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}


class SiteRequestHandler(http.server.SimpleHTTPRequestHandler):
    """Serves the build directory; ``/about`` falls back to ``about.html``."""

    def translate_path(self, path):
        translated = super().translate_path(path)
        if (not os.path.splitext(translated)[1]
                and not os.path.isdir(translated)
                and os.path.isfile(translated + '.html')):
            return translated + '.html'
        return translated

    def send_error(self, code, message=None, explain=None):
        if code != 404:
            super().send_error(code, message, explain)
            return
        self.send_response(404)
        self.send_header('Content-Type', 'text/html')
        self.send_header('Content-Length', str(len(NOT_FOUND_PAGE)))
        self.end_headers()
        if self.command != 'HEAD':
            self.wfile.write(NOT_FOUND_PAGE)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def create_server(output_dir, port=DEFAULT_PORT, host='127.0.0.1'):
    handler = functools.partial(SiteRequestHandler, directory=output_dir)
    return http.server.ThreadingHTTPServer((host, port), handler)


def serve(output_dir, port=DEFAULT_PORT, host='127.0.0.1'):
    """Serve ``output_dir`` until interrupted."""
    with create_server(output_dir, port, host) as httpd:
        logger.info(f"Server running at http://localhost:{port}/")
        logger.info(f"Serving files from: {output_dir}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("\n👋 Shutting down...")


def is_ignored(path):
    """Editor swap files, backups and hidden files never trigger a rebuild."""
    name = os.path.basename(path)
    return (name.startswith('.')
            or name.endswith('~')
            or name.endswith('.swp')
            or '.tmp' in name)


class Rebuilder:
    """
    Coalesces change notifications into builds.

    Notifications arriving within ``delay`` seconds of each other cause one
    build. A change noticed while a build runs sets ``needs_rebuild``, so at
    most one more build follows the current one.
    """

    def __init__(self, build, delay=DEBOUNCE_DELAY):
        self._build = build
        self.delay = delay
        self._lock = threading.Lock()
        self._timer = None
        self.building = False
        self.needs_rebuild = False

    def notify(self, path):
        """Schedule a rebuild for a changed ``path``. Returns False if the path is ignored."""
        if is_ignored(path):
            return False
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self.trigger, args=(path,))
            self._timer.daemon = True
            self._timer.start()
        return True

    def trigger(self, path=None):
        """Build now, or flag a rebuild if a build is already running."""
        with self._lock:
            if self.building:
                self.needs_rebuild = True
                return
            self.building = True

        if path:
            logger.info(f"📝 Changed: {path}")

        finished = False
        try:
            while True:
                logger.info("\n🔄 Rebuilding...")
                result = self._build()
                if result.succeeded:
                    logger.info("✅ Ready")
                with self._lock:
                    if not self.needs_rebuild:
                        self.building = False
                        finished = True
                        return
                    self.needs_rebuild = False
        finally:
            if not finished:
                with self._lock:
                    self.building = False

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class ChangeHandler(FileSystemEventHandler):
    def __init__(self, rebuilder):
        super().__init__()
        self.rebuilder = rebuilder

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in WATCHED_EVENTS:
            return
        self.rebuilder.notify(event.src_path)


def run_dev(builder, watch_dirs, port=DEFAULT_PORT, host='127.0.0.1'):
    """Build, then watch ``watch_dirs`` and serve the output until interrupted."""
    rebuilder = Rebuilder(builder.build)
    rebuilder.trigger()

    observer = Observer()
    handler = ChangeHandler(rebuilder)
    for directory in watch_dirs:
        if os.path.isdir(directory):
            observer.schedule(handler, directory, recursive=True)
            logger.info(f"👀 Watching: {directory}")
    observer.start()

    logger.info("🚀 Starting server...")
    os.makedirs(builder.output_dir, exist_ok=True)
    server = create_server(builder.output_dir, port, host)
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()
    logger.info(f"Server running at http://localhost:{port}/")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("\n👋 Shutting down...")
    finally:
        rebuilder.cancel()
        observer.stop()
        observer.join()
        server.shutdown()
        server.server_close()
