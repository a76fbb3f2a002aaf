import logging
import signal
import sys

from werkzeug.serving import make_server

from hello_service.config import settings as default_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# =======================================================
# Bind and serve
# =======================================================
def create_server(settings=None, app=None):
    """Bind the configured port and return a ready-to-serve WSGI server.

    If the port is taken, Werkzeug prints the OS error to stderr and exits
    with status 1; nothing is logged as ready in that case.
    """
    settings = settings or default_settings
    if app is None:
        from hello_service.app import create_app
        app = create_app(settings)

    server = make_server(settings.host, settings.port, app, threaded=True)
    logger.info(f"Hello service is ready, listening on {settings.host}:{server.server_port}")
    return server


def _stop(signum, frame):
    raise SystemExit(0)


def run(settings=None):
    server = create_server(settings)
    # ECS stops tasks with SIGTERM
    signal.signal(signal.SIGTERM, _stop)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        logger.info("Hello service stopped")


# =======================================================
# Console entry point (hello-service, python -m hello_service)
# =======================================================
def main():
    logging.basicConfig(
        stream=sys.stdout,
        level=getattr(logging, default_settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
    run()


if __name__ == '__main__':
    main()
