from __future__ import annotations


class RetrievalError(RuntimeError):
    """Storage failed while resolving a search; no partial results exist."""


class ProductValidationError(ValueError):
    pass
