"""REST API surface."""

from aiopsanalyzer.api.app import create_app

__all__ = ["create_app"]
