# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Client address resolution.

``X-Forwarded-For`` is honoured only for the configured number of trusted
proxy hops, through werkzeug's ``ProxyFix``. Everything downstream reads
``request.remote_addr`` via :func:`client_address`.
"""

from __future__ import annotations

from flask import Flask, Request, request
from werkzeug.middleware.proxy_fix import ProxyFix

from authcore.shared.logging import logger


def configure_proxy(app: Flask, *, trusted_hops: int = 0) -> None:
    if trusted_hops <= 0:
        return
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=trusted_hops, x_proto=trusted_hops)
    logger.info(f"proxy: trusting {trusted_hops} forwarding hop(s)")


def client_address(req: Request | None = None) -> str:
    req = req if req is not None else request
    return req.remote_addr or "unknown"


__all__ = ["client_address", "configure_proxy"]
