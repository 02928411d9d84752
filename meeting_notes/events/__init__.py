from .broadcaster import EventBroadcaster, EventKind, SessionEvent, Subscription, GLOBAL_CHANNEL

__all__ = ["EventBroadcaster", "EventKind", "SessionEvent", "Subscription", "GLOBAL_CHANNEL"]
