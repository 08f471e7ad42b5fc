"""Application services."""

from smartfx.services.swap_orchestrator import (
    SignResult,
    SwapOrchestrator,
    SwapResult,
    build_orchestrator,
    get_orchestrator,
    reset_orchestrator,
)

__all__ = [
    "SignResult",
    "SwapOrchestrator",
    "SwapResult",
    "build_orchestrator",
    "get_orchestrator",
    "reset_orchestrator",
]
