"""Entry points: command line and HTTP API."""
