from geoattend.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
