#!/usr/bin/env python3
"""Draw the pairing history as a graph of who worked with whom."""
from __future__ import annotations

import argparse
from itertools import combinations
from pathlib import Path
from typing import Dict, Iterable, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import networkx as nx

from pair_students import load_history

LAYOUT_CHOICES = ("spring", "circular")


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Visualize pairing history")
    ap.add_argument("--history", default="pair_history.json", type=Path)
    ap.add_argument("--out", default=Path("pairing_graphs") / "pair_history.png", type=Path,
                    help="Output image path")
    ap.add_argument("--layout", choices=LAYOUT_CHOICES, default="circular")
    ap.add_argument("--last", type=int, default=0,
                    help="Only draw the most recent N briefs (0 = all)")
    ap.add_argument("--dpi", type=int, default=200, help="Output DPI")
    return ap.parse_args()


def build_history_graph(entries: Iterable[Dict[str, object]]) -> nx.Graph:
    graph = nx.Graph()
    for entry in entries:
        brief_id = int(entry["brief_id"])
        for group in entry["groups"]:
            graph.add_nodes_from(group)
            for a, b in combinations(group, 2):
                if graph.has_edge(a, b):
                    graph[a][b]["weight"] += 1
                    graph[a][b]["briefs"].append(brief_id)
                else:
                    graph.add_edge(a, b, weight=1, briefs=[brief_id])
    return graph


def _layout(graph: nx.Graph, layout: str) -> Dict[str, Tuple[float, float]]:
    if len(graph.nodes) == 1:
        return {next(iter(graph.nodes)): (0.0, 0.0)}
    if layout == "spring":
        return nx.spring_layout(graph, seed=42, weight="weight")
    ordered = nx.Graph()
    ordered.add_nodes_from(sorted(graph.nodes))
    return nx.circular_layout(ordered)


def draw_history_graph(graph: nx.Graph, out_path: Path, *, layout: str = "circular", dpi: int = 200) -> Path:
    if not graph.nodes:
        raise RuntimeError("No pairs to visualize")
    if layout not in LAYOUT_CHOICES:
        raise ValueError(f"Unknown layout '{layout}'")

    pos = _layout(graph, layout)
    weights = [graph[u][v]["weight"] for u, v in graph.edges]
    top = max(weights, default=1)

    fig, ax = plt.subplots(figsize=(9, 9))
    nx.draw_networkx_nodes(graph, pos, ax=ax, node_color="#4c72b0", node_size=600, alpha=0.9)
    if weights:
        nx.draw_networkx_edges(
            graph,
            pos,
            ax=ax,
            width=[1.0 + 3.0 * w / top for w in weights],
            edge_color=weights,
            edge_cmap=plt.get_cmap("PuRd"),
            edge_vmin=0,
            edge_vmax=top,
        )
        repeated = {(u, v): graph[u][v]["weight"] for u, v in graph.edges if graph[u][v]["weight"] > 1}
        if repeated:
            nx.draw_networkx_edge_labels(graph, pos, edge_labels=repeated, ax=ax, font_size=8)
    nx.draw_networkx_labels(graph, pos, ax=ax, font_size=8, font_color="#1a1a1a")
    ax.set_title(f"Pairing history ({graph.number_of_nodes()} people, {graph.number_of_edges()} distinct pairs)")
    ax.axis("off")

    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=dpi)
    plt.close(fig)
    return out_path


def main() -> None:
    args = parse_args()
    entries = load_history(args.history)
    if args.last > 0:
        entries = entries[-args.last:]
    graph = build_history_graph(entries)
    path = draw_history_graph(graph, args.out, layout=args.layout, dpi=args.dpi)
    print(f"Wrote graph to {path}")


if __name__ == "__main__":
    main()
