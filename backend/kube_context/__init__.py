def __getattr__(name):
    if name == "ContextEngine":
        from .engine import ContextEngine
        return ContextEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ['ContextEngine']
