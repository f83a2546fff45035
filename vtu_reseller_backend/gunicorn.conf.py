# Gunicorn configuration for VTU Reseller Backend
# The catalog and token cache live in process memory, so concurrency comes
# from threads inside a single worker rather than from extra workers.

import os

# Server socket - must bind to 0.0.0.0 on Render
port = os.environ.get('PORT', '5000')
bind = f"0.0.0.0:{port}"
backlog = 2048

print(f"🚀 Gunicorn binding to: {bind}")

# Worker processes
workers = int(os.environ.get('WEB_CONCURRENCY', '1'))
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', '8'))
max_requests = 0  # restarting a worker would drop the resolved operator ids

if workers > 1:
    print(f"⚠️  WEB_CONCURRENCY={workers}: each worker keeps its own catalog and token cache")

# Timeouts - settlement makes up to three sequential vendor calls
timeout = 120
keepalive = 30
graceful_timeout = 60

# Startup warm-up runs once in the master
preload_app = True

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'vtu-reseller-backend'

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

def when_ready(server):
    server.log.info("🚀 VTU Reseller Backend server is ready. Listening on %s", server.address)

def worker_int(worker):
    worker.log.info("Worker received INT or QUIT signal")

def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)
