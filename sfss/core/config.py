# sfss/core/config.py
from __future__ import annotations

import os

# ----------------------------------------------------
# Base directories & packaged resources
# ----------------------------------------------------

# This file is sfss/core/config.py → BASE_DIR = sfss/
BASE_DIR = os.path.dirname(os.path.dirname(__file__))

RESOURCES_DIR = os.path.join(BASE_DIR, "resources")
TEMPLATES_DIR = os.path.join(BASE_DIR, "share", "templates")

STYLESHEET_PATH = os.path.join(RESOURCES_DIR, "style.css")
LANGUAGES_PATH = os.path.join(RESOURCES_DIR, "languages.json")

# ----------------------------------------------------
# Defaults (ENV FIRST, SAFE DEFAULTS)
# ----------------------------------------------------

DEFAULT_TITLE = "SFSS"
DEFAULT_LABEL = "Simple File Sharing Service"
DEFAULT_WEBROOT = "/"
DEFAULT_URL = "http://localhost:8000"
DEFAULT_HLJS_URL = "https://cdnjs.cloudflare.com/ajax/libs/highlight.js/11.9.0/highlight.min.js"

# 10 MiB; uploads are buffered once in memory, so this is also the per-request memory bound.
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

DEFAULT_LOCAL_STORAGE_DIR = "./data"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
