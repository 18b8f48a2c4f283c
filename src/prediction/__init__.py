"""Market signal providers and factory."""

from typing import Any, Dict, Optional

from .base import BaseSignalProvider
from .models import MarketSignal, SignalAnalysis
from .momentum import MomentumConfig, MomentumSignalProvider
from .remote import RemoteSignalProvider
from .static import StaticSignalProvider


def get_signal_provider(
    name: str,
    settings: Optional[Dict[str, Any]] = None,
    api_key: Optional[str] = None,
) -> BaseSignalProvider:
    """Get signal provider by canonical name: "remote", "momentum" or "static"."""
    settings = settings or {}
    if name == "remote":
        return RemoteSignalProvider(
            base_url=settings.get("base_url", "http://localhost:8080"),
            timeout=float(settings.get("timeout", 10)),
            api_key=api_key or "",
        )
    if name == "momentum":
        return MomentumSignalProvider(MomentumConfig.from_dict(settings))
    if name == "static":
        return StaticSignalProvider(settings.get("signals") or {})
    raise ValueError(f"Unknown signal provider: {name}")


__all__ = [
    "BaseSignalProvider",
    "MarketSignal",
    "SignalAnalysis",
    "MomentumConfig",
    "MomentumSignalProvider",
    "RemoteSignalProvider",
    "StaticSignalProvider",
    "get_signal_provider",
]
