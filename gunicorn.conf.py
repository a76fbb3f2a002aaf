# =======================================================
# gunicorn settings for the container (Dockerfile CMD)
# =======================================================
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get('WEB_CONCURRENCY', 2))
accesslog = '-'
# '-' would be stderr; the ready line belongs on stdout
errorlog = '/dev/stdout'
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()


def when_ready(server):
    server.log.info(f"Hello service is ready, listening on {bind}")
