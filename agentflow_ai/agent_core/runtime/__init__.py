from .engine import RunEngine
from .models import CancellationToken, EngineDeps, RunResult

__all__ = ["CancellationToken", "EngineDeps", "RunEngine", "RunResult"]
