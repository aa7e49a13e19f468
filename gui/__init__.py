__all__ = ["ScopeSignals", "connect_scope_signals"]

from .scope_adapter import ScopeSignals, connect_scope_signals
