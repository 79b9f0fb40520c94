"""Search services"""

from .debouncer import Debouncer
from .executor import SearchExecutor
from .orchestrator import SearchOrchestrator, POPULAR_SEARCHES

__all__ = ["Debouncer", "SearchExecutor", "SearchOrchestrator", "POPULAR_SEARCHES"]
