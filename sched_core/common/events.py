# sched_core/common/events.py
from collections import defaultdict
from typing import Callable, Dict, List, Any

Handler = Callable[[Dict[str, Any]], None]

_registry: Dict[str, List[Handler]] = defaultdict(list)

RULESET_FORKED = "ruleset.forked"
RULESET_SAVED = "ruleset.saved"
RULESET_ACTIVATED = "ruleset.activated"
RULESET_DISCARDED = "ruleset.discarded"


def subscribe(event_name: str):
    """
    Decorator to register an event handler.
    Usage:
        @subscribe(RULESET_FORKED)
        def handler(payload): ...
    """
    def _decorator(fn: Handler) -> Handler:
        _registry[event_name].append(fn)
        return fn
    return _decorator


def unsubscribe(event_name: str, fn: Handler) -> None:
    handlers = _registry.get(event_name, [])
    if fn in handlers:
        handlers.remove(fn)


def publish(event_name: str, payload: Dict[str, Any]) -> None:
    """
    Publish an event to in-process subscribers.
    Payloads carry ids as strings so subscribers never import store models.
    """
    for handler in list(_registry.get(event_name, [])):
        handler(payload)
