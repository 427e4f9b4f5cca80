"""Development server for inkpot.

The ``jekyll serve`` replacement:
- Builds into a staging directory and swaps it into place atomically, so a
  browser never sees a half-written site.
- Serves the destination with a live reload snippet added to every HTML page.
- Answers 404 for missing paths and bare directories (serving 404.html when present).
- Strips the configured ``baseurl`` from request paths.
- Watches the source tree and rebuilds plus reloads clients on change.

Key classes:
- DevServer: Builds, serves, watches and notifies browsers.
- _ReloadHandler: HTTP request handler for the built site.
- _ChangeHandler: watchdog handler triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import urlsplit

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_site
from .config import load_config

IGNORED_PARTS = {".git", "node_modules", "__pycache__", ".jekyll-cache", ".sass-cache"}

# Reconnects so pages keep reloading across server restarts.
LIVERELOAD_SNIPPET = """
<script>
(function connect() {{
  var socket = new WebSocket('ws://' + location.hostname + ':{port}');
  socket.onmessage = function (event) {{
    var data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
  socket.onclose = function () {{ setTimeout(connect, 1000); }};
}})();
</script>
"""


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the built site, adding the live reload snippet to HTML."""

    snippet = LIVERELOAD_SNIPPET.format(port=35729)
    baseurl = ""

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_message(self, format, *args):  # pragma: no cover - console noise
        pass

    def list_directory(self, path):  # pragma: no cover - send_head answers first
        return self._not_found()

    def _with_snippet(self, page: Path) -> bytes:
        html = page.read_text(encoding="utf-8")
        head, marker, tail = html.rpartition("</body>")
        if marker:
            html = f"{head}{self.snippet}{marker}{tail}"
        else:
            html += self.snippet
        return html.encode("utf-8")

    def _write_html(self, status: int, page: Path) -> None:
        body = self._with_snippet(page)
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._write_html(404, page)
        else:
            self.send_error(404, "File not found")
        return None

    def _site_path(self) -> str | None:
        """Request path with ``baseurl`` removed, or None outside of it."""
        path = urlsplit(self.path).path
        if not self.baseurl:
            return path
        if path == self.baseurl or path.startswith(f"{self.baseurl}/"):
            return path[len(self.baseurl) :] or "/"
        return None

    def send_head(self):
        request_path = self._site_path()
        if request_path is None:
            return self._not_found()
        target = Path(self.translate_path(request_path))
        if target.is_dir():
            if not (target / "index.html").is_file():
                return self._not_found()
            if not request_path.endswith("/"):
                self.send_response(301)
                self.send_header("Location", f"{self.baseurl}{request_path}/")
                self.end_headers()
                return None
            target = target / "index.html"
        elif not target.exists():
            # Extension-less URLs such as /about resolve to about.html.
            target = target.with_name(target.name + ".html")
            if not target.is_file():
                return self._not_found()
        if target.suffix == ".html":
            self._write_html(200, target)
            return None
        self.path = request_path
        return super().send_head()


class DevServer:
    """Development server with live reload.

    Attributes:
        project_root: Site root.
        config: Site configuration.
        output_dir: Directory being served.
        host: Interface to bind.
        http_port: HTTP port.
        ws_port: Live reload WebSocket port.
        include_future: Render future-dated posts (None follows config).
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        host: str | None = None,
        include_future: bool | None = None,
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.host = host or str(self.config.get("host", "127.0.0.1"))
        self.http_port = int(http_port or self.config.get("port", 4000))
        self.ws_port = int(ws_port or self.config.get("livereload_port", 35729))
        self.include_future = include_future
        self.baseurl = ("/" + str(self.config.get("baseurl") or "").strip("/")).rstrip("/")

        self.output_dir = project_root / str(self.config.get("destination", "_site"))
        self._staging_dir = self.output_dir.with_name(self.output_dir.name + ".staging")
        self._previous_dir = self.output_dir.with_name(self.output_dir.name + ".old")
        self._snippet = LIVERELOAD_SNIPPET.format(port=self.ws_port)
        # Like `jekyll serve`, site.url points at the local server.
        self._root_url = f"http://{self._display_host}:{self.http_port}"

        self._observer: Observer | None = None
        self._loop = asyncio.new_event_loop()
        self._ws_clients: set = set()
        self._rebuild_lock = threading.Lock()
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    @property
    def _display_host(self) -> str:
        return "localhost" if self.host in ("", "0.0.0.0", "127.0.0.1") else self.host

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        self._build(include_drafts)
        self._last_signature = self._compute_signature()
        for target in (self._start_http, self._start_ws):
            threading.Thread(target=target, daemon=True).start()
        self._start_watcher(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _build(self, include_drafts: bool):
        staging = self._prepare_staging_dir()
        result = build_site(
            self.project_root,
            include_drafts=include_drafts,
            include_future=self.include_future,
            root_url=self._root_url,
            clean_output=True,
            output_dir_override=staging,
        )
        self._activate_staging(staging)
        for warning in getattr(result, "warnings", None) or []:
            print(f"Warning: {warning}")
        return result

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_SiteHandler",
            (_ReloadHandler,),
            {"snippet": self._snippet, "baseurl": self.baseurl},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer((self.host, self.http_port), handler)
        print(f"Serving {self.output_dir} at {self._root_url}{self.baseurl}/")
        httpd.serve_forever()

    def _start_ws(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            print(f"LiveReload server failed to start (port {self.ws_port}): {exc}")

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, self.host, self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        clients = list(self._ws_clients)
        results = await asyncio.gather(
            *(ws.send(message) for ws in clients), return_exceptions=True
        )
        for ws, result in zip(clients, results):
            if isinstance(result, websockets.ConnectionClosed):
                self._ws_clients.discard(ws)
            elif isinstance(result, Exception):
                raise result

    def _start_watcher(self, include_drafts: bool) -> None:
        observer = Observer()
        observer.schedule(_ChangeHandler(self, include_drafts), str(self.project_root), recursive=True)
        observer.start()
        self._observer = observer

    def rebuild(self, include_drafts: bool) -> None:
        """Rebuild and reload browsers if the source tree really changed.

        Events arriving while a rebuild runs, or within the debounce window
        after one, are dropped. A failed build leaves the last good site in
        place and is retried on the next change.
        """
        if time.time() - self._last_rebuild_at < self._debounce_seconds:
            return
        if not self._rebuild_lock.acquire(blocking=False):
            return
        try:
            signature = self._compute_signature()
            if signature is not None and signature == self._last_signature:
                return
            print("Change detected; regenerating...")
            try:
                self._build(include_drafts)
            except BuildError as exc:
                print(f"Build failed: {exc.source_path}: {exc.message}")
                return
            self._last_signature = signature
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self._broadcast_reload()
        finally:
            self._last_rebuild_at = time.time()
            self._rebuild_lock.release()

    def is_ignored(self, path: Path) -> bool:
        """True for paths whose changes must not trigger a rebuild."""
        for generated in (self.output_dir, self._staging_dir, self._previous_dir):
            if path == generated or generated in path.parents:
                return True
        return any(part in IGNORED_PARTS for part in path.parts)

    def _compute_signature(self) -> tuple | None:
        """Snapshot (path, mtime, size) of every watched file, None if empty."""
        entries: list[tuple[str, int, int]] = []
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not self.is_ignored(current / d))
            for name in sorted(filenames):
                path = current / name
                if self.is_ignored(path):
                    continue
                try:
                    stat = path.stat()
                except OSError:
                    continue
                rel = path.relative_to(self.project_root).as_posix()
                entries.append((rel, stat.st_mtime_ns, stat.st_size))
        return tuple(entries) or None

    def _prepare_staging_dir(self) -> Path:
        if self._staging_dir.exists():
            shutil.rmtree(self._staging_dir)
        self._staging_dir.mkdir(parents=True)
        return self._staging_dir

    def _activate_staging(self, staging: Path) -> None:
        if self._previous_dir.exists():
            shutil.rmtree(self._previous_dir)
        if self.output_dir.exists():
            os.replace(self.output_dir, self._previous_dir)
        os.replace(staging, self.output_dir)
        if self._previous_dir.exists():
            shutil.rmtree(self._previous_dir)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory or self.server.is_ignored(Path(event.src_path)):
            return
        self.server.rebuild(self.include_drafts)
