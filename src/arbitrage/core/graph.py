"""
Rate Graph
==========
Directed multigraph of tokens and per-venue exchange rates.

Nodes are mint addresses. Each node owns a list of outgoing edges plus
an index (destination, dex) → slot so that upserts stay O(1). Rates are
"output units per input unit", so chaining along a path is
multiplicative.

Cycle search is exhaustive (O(E³) bounded by the branching factor per
node). Keep the monitored token set small.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from arbitrage.config.settings import TOKENS
from arbitrage.feeds.price_source import Quote


@dataclass(frozen=True)
class GraphEdge:
    """One directed rate: source → destination on a single venue."""

    source: str
    destination: str
    dex: str
    rate: float
    quote: Optional[Quote] = None


CyclePath = Tuple[GraphEdge, GraphEdge, GraphEdge]


class RateGraph:
    """
    Adjacency-list rate graph with triangular cycle search.

    Staleness is the caller's problem: edges are never expired, only
    replaced by a newer upsert for the same (source, destination, dex).
    """

    def __init__(self, seed_tokens: Optional[Iterable[str]] = None):
        self._edges: Dict[str, List[GraphEdge]] = {}
        self._index: Dict[str, Dict[Tuple[str, str], int]] = {}

        for token in seed_tokens if seed_tokens is not None else TOKENS.values():
            self._ensure_node(token)

    def _ensure_node(self, token: str) -> None:
        if token not in self._edges:
            self._edges[token] = []
            self._index[token] = {}

    def upsert_edge(
        self,
        source: str,
        destination: str,
        dex: str,
        rate: float,
        quote: Optional[Quote] = None,
    ) -> GraphEdge:
        """Insert or replace the edge keyed by (source, destination, dex)."""
        self._ensure_node(source)
        edge = GraphEdge(source, destination, dex, rate, quote)

        slot = self._index[source].get((destination, dex))
        if slot is None:
            self._index[source][(destination, dex)] = len(self._edges[source])
            self._edges[source].append(edge)
        else:
            self._edges[source][slot] = edge
        return edge

    def upsert_quote(self, quote: Quote) -> GraphEdge:
        return self.upsert_edge(quote.input_mint, quote.output_mint, quote.dex, quote.price, quote)

    def neighbors(self, token: str) -> List[GraphEdge]:
        """Outgoing edges of token; empty list for unknown tokens."""
        return list(self._edges.get(token, ()))

    def find_cycles(self, start: str, length: int = 3) -> List[Tuple[CyclePath, float]]:
        """
        Find profitable start → A → B → start cycles.

        A path is reported iff rate₁·rate₂·rate₃ > 1.0, together with
        its profit in bps ((composite − 1) × 10 000). Paths come back in
        discovery order.
        """
        if length != 3:
            raise ValueError("Only 3-edge cycles are supported")

        found: List[Tuple[CyclePath, float]] = []
        for e1 in self._edges.get(start, ()):
            for e2 in self._edges.get(e1.destination, ()):
                # start → A → start is a round trip, not a triangle
                if e2.destination == start:
                    continue
                for e3 in self._edges.get(e2.destination, ()):
                    if e3.destination != start:
                        continue
                    composite = e1.rate * e2.rate * e3.rate
                    if composite > 1.0:
                        found.append(((e1, e2, e3), (composite - 1.0) * 10_000))
        return found

    @property
    def node_count(self) -> int:
        return len(self._edges)

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._edges.values())

    def clear(self) -> None:
        """Drop all edges, keeping known nodes."""
        for token in self._edges:
            self._edges[token] = []
            self._index[token] = {}
