"""
Inventory Service Health Check Utilities
"""

import time
from typing import Any, Awaitable, Callable, Dict

HealthCheck = Callable[[], Awaitable[Dict[str, Any]]]


class InventoryServiceHealthChecker:
    """Runs named component checks and aggregates their status"""

    def __init__(self, service_name: str = "inventory_service") -> None:
        self.service_name = service_name
        self.checks: Dict[str, HealthCheck] = {}

    def add_check(self, name: str, check_func: HealthCheck) -> None:
        self.checks[name] = check_func

    async def run_checks(self) -> Dict[str, Any]:
        results: Dict[str, Dict[str, Any]] = {}
        check_start_time = time.time()

        for name, check_func in self.checks.items():
            individual_start = time.time()
            try:
                result = await check_func()
            except Exception as e:
                result = {"status": "unhealthy", "error": str(e)}
            result["duration_ms"] = round((time.time() - individual_start) * 1000, 2)
            results[name] = result

        healthy = all(r.get("status") != "unhealthy" for r in results.values())
        return {
            "service": self.service_name,
            "status": "healthy" if healthy else "unhealthy",
            "checks": results,
            "total_duration_ms": round((time.time() - check_start_time) * 1000, 2),
            "timestamp": time.time(),
        }
