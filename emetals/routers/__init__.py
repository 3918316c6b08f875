from . import account, flows, health, pages

__all__ = ["account", "flows", "health", "pages"]
