from .logging import configure_json_logging

__all__ = ["configure_json_logging"]
