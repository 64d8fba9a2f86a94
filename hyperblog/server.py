"""Development server for hyperblog.

Serves the output directory over HTTP, watches the source directories and
rebuilds the whole site when anything in them changes. Open pages reload
through a small websocket client injected into every HTML response.

There is no incremental mode: a change anywhere triggers the same full
purge-and-rebuild that ``hyperblog build`` performs, so the served tree is
always exactly what a deploy would publish.

Key names:
- DevServer: Wires the HTTP server, the file watcher and the reload channel.
- ReloadChannel: Websocket endpoint that tells open pages to reload.
- inject_reload_script: Adds the reload client to an HTML document.
- source_signature: Fingerprint of the watched files.
"""

from __future__ import annotations

import asyncio
import functools
import json
import threading
import time
from collections.abc import Iterable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_site
from .config import SiteConfig

RELOAD_SNIPPET = """<script>
(function () {{
  var socket = new WebSocket("ws://" + location.hostname + ":{port}");
  socket.addEventListener("message", function (event) {{
    if (JSON.parse(event.data).type === "reload") {{ location.reload(); }}
  }});
}})();
</script>
"""

RELOAD_MESSAGE = json.dumps({"type": "reload"})

# Watchdog reports reads as well as writes on some platforms
_READ_EVENTS = ("opened", "closed_no_write")


def inject_reload_script(html: str, ws_port: int) -> str:
    """Insert the reload client before the last ``</body>``, or append it."""
    snippet = RELOAD_SNIPPET.format(port=ws_port)
    head, marker, tail = html.rpartition("</body>")
    if not marker:
        return html + snippet
    return f"{head}{snippet}{marker}{tail}"


def source_signature(directories: Iterable[Path]) -> tuple | None:
    """Fingerprint every file below ``directories`` by path, mtime and size.

    Returns:
        A tuple that changes whenever a file is added, removed or
        modified, or None if there are no files at all.
    """
    entries: list[tuple[str, int, int]] = []
    for directory in directories:
        if not directory.is_dir():
            continue
        for path in sorted(p for p in directory.rglob("*") if p.is_file()):
            try:
                info = path.stat()
            except OSError:
                continue
            entries.append((str(path), info.st_mtime_ns, info.st_size))
    return tuple(entries) or None


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the output tree uncached; HTML pages get the reload client."""

    ws_port = 3001

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def list_directory(self, path):
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            self.send_error(404, "File not found")
            return None
        if target.suffix != ".html":
            return super().send_head()

        html = inject_reload_script(target.read_text(encoding="utf-8"), self.ws_port)
        body = html.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)
        return None


class ReloadChannel:
    """Websocket endpoint broadcasting reload messages to open pages.

    The websocket server runs on its own event loop in a background thread.
    ``notify`` is safe to call from any other thread.

    Attributes:
        port: Port the websocket server binds to.
        clients: Currently connected sockets.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._serve())
        except OSError as exc:
            print(f"Live reload unavailable, could not bind port {self.port}: {exc}")

    async def _serve(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self.register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def register(self, websocket) -> None:
        """Track a connected page until its socket closes."""
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    async def broadcast(self, message: str) -> None:
        for websocket in list(self.clients):
            try:
                await websocket.send(message)
            except websockets.ConnectionClosed:
                self.clients.discard(websocket)

    def notify(self) -> None:
        asyncio.run_coroutine_threadsafe(self.broadcast(RELOAD_MESSAGE), self.loop)

    def close(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Development server with rebuild-on-change and live reload.

    Attributes:
        config: Site configuration.
        http_port: Port for the HTTP server.
        ws_port: Port for the reload websocket. Defaults to the configured
            ``ws_port``, or ``http_port + 1`` when the HTTP port was
            overridden.
        channel: Reload channel notified after each successful rebuild.
    """

    debounce_seconds = 0.05

    def __init__(self, config: SiteConfig, http_port: int | None = None, ws_port: int | None = None):
        self.config = config
        self.http_port = int(http_port or config.port)
        if ws_port is None:
            if http_port is None and config.ws_port is not None:
                ws_port = config.ws_port
            else:
                ws_port = self.http_port + 1
        self.ws_port = int(ws_port)
        self.channel = ReloadChannel(self.ws_port)
        self._observer: Observer | None = None
        self._busy = threading.Lock()
        self._last_run = float("-inf")
        self._signature: tuple | None = None

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    @property
    def watched_dirs(self) -> list[Path]:
        return [self.config.content_dir, self.config.templates_dir, self.config.assets_dir]

    def start(self) -> None:  # pragma: no cover - integration path
        self.build()
        self._signature = source_signature(self.watched_dirs)
        threading.Thread(target=self.serve_http, daemon=True).start()
        threading.Thread(target=self.channel.run, daemon=True).start()
        self.watch()
        print("Watching content, templates and assets for changes (Ctrl+C to stop)")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self.channel.close()

    def build(self) -> bool:
        """Run a full build and print a summary.

        Returns:
            True if the build succeeded.
        """
        try:
            result = build_site(self.config)
        except BuildError as exc:
            print(f"Build failed: {exc}")
            return False
        for failure in result.failures:
            print(f"Skipped {failure.source_path.name}: {failure.message}")
        print(f"Built {len(result.documents)} posts into {result.output_dir}")
        return True

    def serve_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type("_PortReloadHandler", (_ReloadHandler,), {"ws_port": self.ws_port})
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def watch(self) -> None:
        """Start watching the source directories that exist."""
        observer = Observer()
        handler = _ChangeHandler(self)
        for directory in self.watched_dirs:
            if directory.is_dir():
                observer.schedule(handler, str(directory), recursive=True)
        observer.start()
        self._observer = observer

    def rebuild(self) -> bool:
        """Rebuild if the sources changed since the last successful build.

        Bursts of events are debounced, and only one rebuild runs at a time.

        Returns:
            True if a rebuild ran and succeeded.
        """
        if time.monotonic() - self._last_run < self.debounce_seconds:
            return False
        if not self._busy.acquire(blocking=False):
            return False
        try:
            signature = source_signature(self.watched_dirs)
            if signature is not None and signature == self._signature:
                return False
            print("Change detected, rebuilding")
            if not self.build():
                return False
            self._signature = signature
            self.channel.notify()
            return True
        finally:
            self._last_run = time.monotonic()
            self._busy.release()


class _ChangeHandler(FileSystemEventHandler):
    """Triggers a rebuild for file changes outside the output tree."""

    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory or event.event_type in _READ_EVENTS:
            return
        path = Path(event.src_path)
        if path.name.startswith(".") or self.server.output_dir in path.parents:
            return
        self.server.rebuild()
