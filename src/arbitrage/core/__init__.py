"""
Arbitrage Core
==============
Rate graph, opportunity detection, risk gate, execution and the
orchestrator that ties them together.

Submodules are imported directly (arbitrage.core.graph, ...) so that
the config layer can depend on arbitrage.core.errors without cycles.
"""
