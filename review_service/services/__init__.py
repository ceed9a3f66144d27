from .store import ReviewStore
from .lifecycle import ReviewLifecycleManager
from .assignment import BalancedAssignmentEngine

__all__ = ["ReviewStore", "ReviewLifecycleManager", "BalancedAssignmentEngine"]
