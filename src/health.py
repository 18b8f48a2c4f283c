"""System health checks for the analysis engine and its adapters."""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import asyncio
from src.cache import cache
from src.data_collection.providers.base import BaseRateOracle
from src.prediction.base import BaseSignalProvider
from src.utils.decorators import timeout
from src.utils.logging import get_logger

logger = get_logger(__name__)

ADAPTER_CHECK_TIMEOUT = 10.0


class HealthStatus:
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


async def check_cache() -> Dict[str, Any]:
    """Check cache functionality."""
    try:
        test_key = "_health_check_test"
        test_value = "test"

        cache.set(test_key, test_value, ttl_seconds=5)
        retrieved = cache.get(test_key)
        cache.delete(test_key)

        if retrieved == test_value:
            return {"status": HealthStatus.HEALTHY, "message": "Cache working correctly"}
        return {"status": HealthStatus.DEGRADED, "message": "Cache read/write issue"}
    except Exception as e:
        logger.error(f"Cache health check failed: {e}")
        return {"status": HealthStatus.UNHEALTHY, "message": f"Cache error: {str(e)}"}


async def check_config() -> Dict[str, Any]:
    """Check configuration loading."""
    try:
        from src.config import load_config
        config = load_config()
        for key in ("analysis.reference_currency", "providers.rate_oracle", "providers.signal_provider"):
            if config.get(key) is None:
                return {"status": HealthStatus.DEGRADED, "message": f"Missing config field: {key}"}
        return {"status": HealthStatus.HEALTHY, "message": "Configuration loaded"}
    except Exception as e:
        logger.error(f"Config health check failed: {e}")
        return {"status": HealthStatus.UNHEALTHY, "message": f"Config error: {str(e)}"}


@timeout(ADAPTER_CHECK_TIMEOUT)
async def _probe(adapter) -> bool:
    return await adapter.health_check()


async def check_rate_oracle(oracle: BaseRateOracle) -> Dict[str, Any]:
    """The rate oracle is mandatory: a failing one makes the engine unhealthy."""
    try:
        ok = await _probe(oracle)
    except Exception as e:
        logger.error(f"Rate oracle health check failed: {e}")
        ok = False
    if ok:
        return {"status": HealthStatus.HEALTHY, "message": f"{oracle.NAME} reachable"}
    return {"status": HealthStatus.UNHEALTHY, "message": f"{oracle.NAME} unreachable"}


async def check_signal_provider(provider: BaseSignalProvider) -> Dict[str, Any]:
    """Without a signal the engine still runs degraded."""
    try:
        ok = await _probe(provider)
    except Exception as e:
        logger.error(f"Signal provider health check failed: {e}")
        ok = False
    if ok:
        return {"status": HealthStatus.HEALTHY, "message": f"{provider.NAME} reachable"}
    return {"status": HealthStatus.DEGRADED, "message": f"{provider.NAME} unreachable, analyses will be degraded"}


async def get_health_status(
    rate_oracle: Optional[BaseRateOracle] = None,
    signal_provider: Optional[BaseSignalProvider] = None,
) -> Dict[str, Any]:
    """
    Get overall system health status.

    Returns:
        Dict containing overall status and component statuses
    """
    checks = {"cache": check_cache(), "config": check_config()}
    if rate_oracle is not None:
        checks["rate_oracle"] = check_rate_oracle(rate_oracle)
    if signal_provider is not None:
        checks["signal_provider"] = check_signal_provider(signal_provider)

    results = await asyncio.gather(*checks.values(), return_exceptions=True)

    components: Dict[str, Dict[str, Any]] = {}
    for name, outcome in zip(checks.keys(), results):
        if isinstance(outcome, dict):
            components[name] = outcome
        else:
            components[name] = {"status": HealthStatus.UNHEALTHY, "message": str(outcome)}

    statuses = [c["status"] for c in components.values()]
    if all(s == HealthStatus.HEALTHY for s in statuses):
        overall_status = HealthStatus.HEALTHY
    elif any(s == HealthStatus.UNHEALTHY for s in statuses):
        overall_status = HealthStatus.UNHEALTHY
    else:
        overall_status = HealthStatus.DEGRADED

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": components,
    }
