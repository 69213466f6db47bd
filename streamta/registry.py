"""
Name-based indicator registry and declarative configuration.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from .errors import InvalidParameter

logger = logging.getLogger(__name__)

# Global indicator registry
_INDICATOR_REGISTRY: Dict[str, type] = {}


def register_indicator(name: str):
    """
    Decorator to register a batch indicator class under a name.

    Usage:
        @register_indicator("sma")
        class SMA(Indicator):
            ...
    """
    def decorator(cls):
        _INDICATOR_REGISTRY[name] = cls
        cls.name = name
        return cls
    return decorator


def get_registered_indicators() -> Dict[str, type]:
    """Get all registered indicator classes."""
    return _INDICATOR_REGISTRY.copy()


def create_indicator(name: str, **params):
    """Construct a registered batch indicator by name."""
    try:
        cls = _INDICATOR_REGISTRY[name.lower()]
    except KeyError:
        raise InvalidParameter(
            f"unknown indicator {name!r}; registered: {sorted(_INDICATOR_REGISTRY)}"
        ) from None
    logger.debug("Creating indicator %s with params %s", name, params)
    return cls(**params)


def create_stream(name: str, **params):
    """Construct a fresh streaming indicator by name."""
    return create_indicator(name, **params).stream()


@dataclass
class IndicatorSpec:
    """Configuration for a single indicator instance."""

    name: str
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "IndicatorSpec":
        """
        Build from a mapping such as ``{"name": "rsi", "period": 14}``.

        Parameters may also be nested under a ``params`` key.
        """
        if "name" not in config:
            raise InvalidParameter("indicator config requires a 'name'")
        params = dict(config.get("params", {}))
        params.update({k: v for k, v in config.items() if k not in ("name", "params")})
        return cls(name=config["name"], params=params)

    def build(self):
        return create_indicator(self.name, **self.params)

    def build_stream(self):
        return create_stream(self.name, **self.params)
