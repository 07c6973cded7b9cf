from .pool import Registration, Subscription, WatchPool

__all__ = ["Registration", "Subscription", "WatchPool"]
