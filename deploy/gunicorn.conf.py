"""
Gunicorn configuration for the festival results board.

    gunicorn festboard.main:app -c deploy/gunicorn.conf.py

The live stream bus is held in process memory, so exactly one worker
serves the app; every display and every submitter must reach the same
process.
"""
import os

# Server socket
bind = f"{os.environ.get('HOST', '0.0.0.0')}:{os.environ.get('PORT', '8000')}"
backlog = 2048

# Worker processes
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Display streams stay open for the whole festival day
timeout = 0
graceful_timeout = 30
keepalive = 75

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

# Process naming
proc_name = "festboard"

# Server mechanics
daemon = False
pidfile = "/tmp/festboard-gunicorn.pid"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Results board ready on %s", bind)


def worker_int(worker):
    """Called when a worker receives SIGINT or SIGQUIT."""
    worker.log.info("Worker interrupted; open display streams will reconnect")
