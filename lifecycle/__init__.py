from .startup_restore import LifecycleReconciler, SHOW_SESSION_RESTORE

__all__ = ["LifecycleReconciler", "SHOW_SESSION_RESTORE"]
