from .reconciler import Reconciler, ReconcileResult

__all__ = ["Reconciler", "ReconcileResult"]
