import signal
from typing import Iterable, List


class RuntimeInfo:
    """Platform checks used when binding signal handlers."""

    @classmethod
    def has_signal(cls, name: str) -> bool:
        return isinstance(getattr(signal, name, None), signal.Signals)

    @classmethod
    def available_signals(cls, names: Iterable[str]) -> List[signal.Signals]:
        """Resolve signal names, skipping the ones this platform lacks."""
        return [getattr(signal, n) for n in names if cls.has_signal(n)]
