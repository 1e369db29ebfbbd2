"""Simulated API errors returned by the request pipeline.

Each error knows its HTTP status and the JSON envelope a client of the real
API would receive. They are raised inside the pipeline and converted into
ordinary results by :class:`simulator.orchestrator.Simulator`.
"""

from __future__ import annotations

from typing import Any, Dict


class SimulationError(Exception):
    """Base class for every locally produced error response."""

    status_code: int = 500
    error_type: str = "api_error"

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def body(self) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }


class QuotaExceeded(SimulationError):
    status_code = 429
    error_type = "rate_limit_error"

    _MESSAGES = {
        "requests": "Too many requests",
        "tokens": "You have exceeded your token quota.",
    }

    def __init__(self, axis: str) -> None:
        super().__init__(self._MESSAGES.get(axis, "Too many requests"), "rate_limit_exceeded")
        self.axis = axis


class SimulatedFault(SimulationError):
    error_type = "api_error"

    def __init__(self, status: int) -> None:
        super().__init__(f"Simulated error with code {status}", str(status))
        # 1xx cannot be a final response
        self.status_code = status if 200 <= status <= 599 else 500


class EmptyContent(SimulationError):
    status_code = 204

    def __init__(self) -> None:
        super().__init__("No content", "no_content")

    def body(self) -> Dict[str, Any]:
        return {}


__all__ = ["SimulationError", "QuotaExceeded", "SimulatedFault", "EmptyContent"]
