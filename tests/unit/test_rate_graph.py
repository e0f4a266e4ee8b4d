"""
RateGraph Unit Tests
====================
Edge upsert semantics and triangular cycle search.
"""

import pytest

from arbitrage.core.graph import RateGraph


S, A, B = "SOL", "TOKEN_A", "TOKEN_B"


@pytest.fixture
def graph():
    return RateGraph(seed_tokens=[])


class TestEdgeUpsert:
    """Keyed by (source, destination, dex)."""

    def test_upsert_replaces_same_key(self, graph):
        graph.upsert_edge(S, A, "jupiter", 1.0)
        graph.upsert_edge(S, A, "jupiter", 1.5)

        edges = graph.neighbors(S)
        assert len(edges) == 1
        assert edges[0].rate == 1.5

    def test_different_dex_is_a_separate_edge(self, graph):
        graph.upsert_edge(S, A, "jupiter", 1.0)
        graph.upsert_edge(S, A, "orca", 1.1)

        assert {e.dex for e in graph.neighbors(S)} == {"jupiter", "orca"}
        assert graph.edge_count == 2

    def test_upsert_is_idempotent(self, graph):
        for _ in range(3):
            graph.upsert_edge(S, A, "jupiter", 2.0)
        assert graph.edge_count == 1

    def test_replacement_keeps_slot_order(self, graph):
        graph.upsert_edge(S, A, "jupiter", 1.0)
        graph.upsert_edge(S, B, "jupiter", 1.0)
        graph.upsert_edge(S, A, "jupiter", 3.0)

        assert [e.destination for e in graph.neighbors(S)] == [A, B]

    def test_upsert_quote_uses_quote_price(self, graph, make_quote):
        quote = make_quote("raydium", 42.0, input_mint=S, output_mint=A)
        edge = graph.upsert_quote(quote)

        assert edge.rate == 42.0
        assert edge.quote is quote

    def test_neighbors_of_unknown_token_is_empty(self, graph):
        assert graph.neighbors("nowhere") == []

    def test_default_graph_is_seeded_with_known_tokens(self):
        assert RateGraph().node_count >= 7

    def test_clear_drops_edges(self, graph):
        graph.upsert_edge(S, A, "jupiter", 1.0)
        graph.clear()
        assert graph.edge_count == 0
        assert graph.neighbors(S) == []


class TestCycleSearch:
    """start → A → B → start, reported iff the composite rate > 1."""

    def test_profitable_triangle(self, graph):
        graph.upsert_edge(S, A, "jupiter", 1.01)
        graph.upsert_edge(A, B, "orca", 1.02)
        graph.upsert_edge(B, S, "raydium", 1.00)

        cycles = graph.find_cycles(S)

        assert len(cycles) == 1
        path, profit_bps = cycles[0]
        assert [e.dex for e in path] == ["jupiter", "orca", "raydium"]
        assert profit_bps == pytest.approx(302.0, abs=0.01)

    def test_break_even_triangle_is_not_reported(self, graph):
        graph.upsert_edge(S, A, "jupiter", 2.0)
        graph.upsert_edge(A, B, "orca", 0.5)
        graph.upsert_edge(B, S, "raydium", 1.0)

        assert graph.find_cycles(S) == []

    def test_losing_triangle_is_not_reported(self, graph):
        graph.upsert_edge(S, A, "jupiter", 0.99)
        graph.upsert_edge(A, B, "orca", 1.0)
        graph.upsert_edge(B, S, "raydium", 1.0)

        assert graph.find_cycles(S) == []

    def test_round_trip_is_not_a_triangle(self, graph):
        graph.upsert_edge(S, A, "jupiter", 2.0)
        graph.upsert_edge(A, S, "orca", 2.0)

        assert graph.find_cycles(S) == []

    def test_every_venue_combination_is_searched(self, graph):
        graph.upsert_edge(S, A, "jupiter", 1.01)
        graph.upsert_edge(S, A, "orca", 1.02)
        graph.upsert_edge(A, B, "orca", 1.0)
        graph.upsert_edge(B, S, "raydium", 1.0)

        cycles = graph.find_cycles(S)

        assert len(cycles) == 2
        # discovery order follows insertion order
        assert cycles[0][0][0].dex == "jupiter"
        assert cycles[1][0][0].dex == "orca"

    def test_unknown_start_has_no_cycles(self, graph):
        assert graph.find_cycles("nowhere") == []

    def test_only_three_edge_cycles_supported(self, graph):
        with pytest.raises(ValueError):
            graph.find_cycles(S, length=4)
