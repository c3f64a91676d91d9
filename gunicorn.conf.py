"""
Gunicorn configuration for the GreenLoop API.

Env vars that override defaults:
  PORT      TCP port to bind
  WORKERS   number of worker processes (default: 2)

Run with:  gunicorn -c gunicorn.conf.py greenloop.main:app
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# The action-log rate limiter lives in process memory, so each worker
# enforces its own window.
workers = int(os.environ.get("WORKERS", "2"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 120

# Logs go to stdout only.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
