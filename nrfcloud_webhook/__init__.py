"""nRF Cloud webhook receiver package exports the ASGI `app` for convenience.

This lets you run: `uvicorn nrfcloud_webhook:app`
"""
from nrfcloud_webhook.main import app

__all__ = ["app"]
