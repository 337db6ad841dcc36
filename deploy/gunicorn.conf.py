"""
Gunicorn configuration for running the Venue Booking API.

Usage: gunicorn -c deploy/gunicorn.conf.py venue_booking.wsgi:application
"""

import multiprocessing
import os

wsgi_app = 'venue_booking.wsgi:application'

# Server socket
bind = f"127.0.0.1:{os.environ.get('GUNICORN_PORT', '8000')}"
backlog = 2048

# Worker processes; schedule locks are per process, the database row locks
# serialise writers across workers.
workers = int(os.environ.get('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))
worker_class = "gthread"
threads = int(os.environ.get('GUNICORN_THREADS', '4'))
timeout = 30
graceful_timeout = 30
keepalive = 2

# Restart workers after this many requests
max_requests = 1000
max_requests_jitter = 100

preload_app = True

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')
loglevel = os.environ.get('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = 'venue-booking'

daemon = False
pidfile = os.environ.get('GUNICORN_PID_FILE')
umask = 0o077

# SSL (if using HTTPS directly with Gunicorn)
keyfile = os.environ.get('SSL_KEYFILE')
certfile = os.environ.get('SSL_CERTFILE')

# Disable access log if behind reverse proxy
if os.environ.get('DISABLE_ACCESS_LOG', 'False').lower() == 'true':
    accesslog = None

# Development mode override
if os.environ.get('DJANGO_DEBUG', 'False').lower() == 'true':
    reload = True
    loglevel = 'debug'
    workers = 1


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Venue Booking server is ready. Server: %s", server.address)


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.info("Worker spawned (pid: %s)", worker.pid)
