# focusfive/__init__.py
# FocusFive core package initializer

# Submodules are imported on demand; keep this light.
__all__ = [
    "api", "atomic", "cli", "config", "errors", "locks", "markdown",
    "metrics", "model", "observations", "reconcile", "schema", "stats",
    "store", "utils",
]

__version__ = "0.1.0"
