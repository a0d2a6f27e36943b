from .get_log import GetLog

__all__ = ["GetLog"]
