"""HTTP listener for the caching proxy.

Exposes one route per configured API, ``GET /<api>?word=<term>``. Routes are
plain ``def`` endpoints, so FastAPI runs each request in its threadpool and a
throttled request never holds up the others.
"""

import threading
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI, Query
from fastapi.responses import PlainTextResponse, Response

from sonacards.common.cache import FileCacheStore
from sonacards.common.config import ProxyConfig
from sonacards.common.logging import log, set_thread_log_context
from sonacards.proxy.apis import (
    ERROR_HEADER,
    SEARCH_TERM_PARAM,
    STORAGE_ERROR_MARKER,
    ExternalApi,
    url_builder_for,
)
from sonacards.proxy.resolver import (
    CachingFetchProxy,
    ResolveResult,
    ResolveStatus,
    UpstreamClient,
)

DEFAULT_HOST = "127.0.0.1"


def build_proxy(config: ProxyConfig) -> CachingFetchProxy:
    """Create a proxy backed by the on-disk cache described by config."""
    store = FileCacheStore(config.cache_path)
    for api in config.apis:
        store.ensure_api_dir(api.value)
    return CachingFetchProxy(
        store=store,
        url_builders={api: url_builder_for(api, config.api_urls) for api in config.apis},
        throttle_delay_s=config.throttle_delay_s,
        upstream=UpstreamClient(timeout=config.upstream_timeout_s),
        verbose=config.verbose,
    )


def to_response(result: ResolveResult) -> Response:
    """Map a resolve outcome to its HTTP response."""
    if result.status is ResolveStatus.OK:
        return Response(content=result.body, media_type="application/json")
    if result.status is ResolveStatus.BAD_REQUEST:
        return PlainTextResponse(result.detail, status_code=400)
    if result.status is ResolveStatus.NOT_FOUND:
        return PlainTextResponse(result.detail, status_code=404)
    if result.status is ResolveStatus.UPSTREAM_ERROR:
        status = result.upstream_status if result.upstream_status and result.upstream_status >= 400 else 502
        return PlainTextResponse(result.detail, status_code=status)
    return PlainTextResponse(
        result.detail,
        status_code=500,
        headers={ERROR_HEADER: STORAGE_ERROR_MARKER},
    )


def _lookup_endpoint(proxy: CachingFetchProxy, api: ExternalApi):
    def lookup(word: Optional[str] = Query(None, alias=SEARCH_TERM_PARAM)) -> Response:
        set_thread_log_context(word or "")
        try:
            return to_response(proxy.resolve(api, word))
        finally:
            set_thread_log_context("")

    lookup.__name__ = f"lookup_{api.value}"
    return lookup


def create_app(proxy: CachingFetchProxy) -> FastAPI:
    app = FastAPI(title="sonacards caching proxy", version="1.0.0")

    @app.get("/health")
    def health():
        return {"ok": True, "apis": [api.value for api in proxy.apis]}

    for api in proxy.apis:
        app.add_api_route(f"/{api.value}", _lookup_endpoint(proxy, api), methods=["GET"])

    return app


class ProxyServer:
    """Run the listener with uvicorn in a background thread."""

    def __init__(self, app: FastAPI, port: int, host: str = DEFAULT_HOST, verbose: bool = False) -> None:
        self.host = host
        self.verbose = verbose
        config = uvicorn.Config(app, host=host, port=port, log_level="warning", access_log=False)
        self.server = uvicorn.Server(config)
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        # Port 0 asks the OS for a free port; report the bound one
        if self.server.started and self.server.servers:
            return self.server.servers[0].sockets[0].getsockname()[1]
        return self.server.config.port

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self, timeout: float = 10.0) -> "ProxyServer":
        self._thread = threading.Thread(target=self.server.run, name="proxy-server", daemon=True)
        self._thread.start()
        deadline = time.monotonic() + timeout
        while not self.server.started:
            if not self._thread.is_alive():
                raise RuntimeError(f"Proxy server failed to start on {self.host}:{self.server.config.port}")
            if time.monotonic() > deadline:
                self.stop()
                raise RuntimeError("Timed out waiting for proxy server to start")
            time.sleep(0.05)
        log("proxy", "start", f"Listening on {self.base_url}", self.verbose)
        return self

    def stop(self, timeout: float = 10.0) -> None:
        self.server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> "ProxyServer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def serve_forever(config: ProxyConfig, host: str = DEFAULT_HOST) -> None:
    """Run the listener in the foreground until interrupted."""
    app = create_app(build_proxy(config))
    log("proxy", "start", f"Serving {', '.join(a.value for a in config.apis)} on http://{host}:{config.port}")
    uvicorn.run(app, host=host, port=config.port, log_level="warning")
