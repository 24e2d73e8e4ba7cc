# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from flask import Flask, Response
from flask_cors import CORS
from sqlalchemy.engine import Engine

from authcore.infrastructure.container import Container
from authcore.infrastructure.db import init_db
from authcore.infrastructure.observability import metrics_view
from authcore.shared.config import AppConfig, load_config
from authcore.shared.logging import logger, setup_logging
from authcore.shared.middleware.error_handler import configure_error_handling
from authcore.shared.middleware.proxy import configure_proxy
from authcore.shared.middleware.request_logger import configure_request_logging


def _configure_cors(app: Flask, config: AppConfig) -> None:
    origins = config.security.allowed_origins
    cors_kwargs: dict[str, object] = {
        "resources": {r"/api/*": {"origins": origins}},
        "expose_headers": ["X-Refresh-Token", "X-Request-ID", "Retry-After"],
    }
    if any(o != "*" for o in origins):
        cors_kwargs["supports_credentials"] = True
    CORS(app, **cors_kwargs)


def create_app(config: AppConfig | None = None, *, engine: Engine | None = None) -> Flask:
    config = config or load_config()
    setup_logging(debug_mode=config.debug_logging)

    container = Container(config, engine=engine)
    init_db(container.engine)

    app = Flask(__name__)
    app.extensions["authcore.container"] = container
    configure_proxy(app, trusted_hops=config.security.trusted_proxy_hops)

    configure_error_handling(app, debug_mode=config.debug_logging)
    configure_request_logging(
        app,
        debug_mode=config.debug_logging,
        metrics_enabled=config.observability.metrics_enabled,
    )
    _configure_cors(app, config)

    app.register_blueprint(container.auth_controller.as_blueprint())
    if config.observability.metrics_enabled:
        app.add_url_rule("/metrics", view_func=metrics_view, methods=["GET"])

    @app.after_request
    def _add_security_headers(resp: Response) -> Response:
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Cache-Control", "no-store")

        resp.headers.setdefault("Cross-Origin-Resource-Policy", "same-origin")
        resp.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")

        resp.headers.setdefault(
            "Permissions-Policy",
            "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
        )

        if config.security.enable_hsts:
            resp.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )

        return resp

    logger.info(f"Flask app initialized: service={config.service_name} env={config.app_env}")
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000)
