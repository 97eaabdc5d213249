# gunicorn.conf.py
import os

wsgi_app = "hearth.wsgi:application"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Default sync workers. Every request is a short JSON call or one upload;
# nothing is held open between client polls.
workers = int(os.getenv("GUNICORN_WORKERS", 2))

# Must cover one video upload (MAX_VIDEO_UPLOAD_SIZE) on a slow link
timeout = int(os.getenv("GUNICORN_TIMEOUT", 60))

# Clients poll /api/conversations/ every few seconds; reuse their connection
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", 5))

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# X-Forwarded-Proto from the proxy feeds SECURE_PROXY_SSL_HEADER
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")
