"""
Monitoring surface for the sync engine.

The Flask status app lives in ``web_status`` and is imported on demand
so the core package does not require Flask (``pip install .[web]``).
"""
