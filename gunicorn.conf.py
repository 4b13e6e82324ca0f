"""
Gunicorn configuration for the bujo journal server.

The store is one embedded SQLite file, so a single worker owns it.
Env vars that override defaults:
  PORT     TCP port to bind (default 8000)
  HOST     interface to bind (default 127.0.0.1, the server is local-only)
"""
import os

wsgi_app = "bujo.main:app"

bind = f"{os.environ.get('HOST', '127.0.0.1')}:{os.environ.get('PORT', '8000')}"

# One process; SQLite serialises writers anyway.
workers = 1

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

timeout = 60

# stdout only.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sus'

# Shutdown waits at most 5 s for in-flight requests.
graceful_timeout = 5
