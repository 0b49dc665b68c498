"""Roadmap admin client: hierarchy editing against the roadmap REST API."""

__version__ = "0.1.0"
