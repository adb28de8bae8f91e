"""GrammarGuard - grammar checks, style rewrites and dictionary lookups with local history"""

from __future__ import annotations

__version__ = "1.0.3"


# Lazy imports so `import grammarguard` does not pull in the Gemini SDK
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name in ("StateStore", "HistoryEntry", "UserStats"):
        from grammarguard.storage import models, state_store

        if name == "StateStore":
            return state_store.StateStore
        if name == "HistoryEntry":
            return models.HistoryEntry
        if name == "UserStats":
            return models.UserStats

    if name in ("RequestCoordinator", "RetryPolicy"):
        from grammarguard.infrastructure import coordinator, retry

        if name == "RequestCoordinator":
            return coordinator.RequestCoordinator
        if name == "RetryPolicy":
            return retry.RetryPolicy

    if name == "EditorSession":
        from grammarguard.app.session import EditorSession

        return EditorSession

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "EditorSession",
    "HistoryEntry",
    "RequestCoordinator",
    "RetryPolicy",
    "StateStore",
    "UserStats",
]
