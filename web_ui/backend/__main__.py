"""Entry point for running the web UI backend as a module.

Usage: python -m web_ui.backend
"""
import logging

from knx_semantics.config import config

from .app import app, cfg

if __name__ == "__main__":
    logging.basicConfig(level=config['logging']['level'], format=config['logging']['format'])
    host = cfg.get("bind_host", "0.0.0.0")
    port = cfg.get("port", 5000)
    print(f"Starting Flask server on {host}:{port}...")
    app.run(host=host, port=port, debug=False)
