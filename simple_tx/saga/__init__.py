from .named_saga import NamedSaga, run_saga

__all__ = ["NamedSaga", "run_saga"]
