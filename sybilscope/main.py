"""
SybilScope - Command Line Entry Point

Clusters a batch of wallets from a JSON file and reports the resulting
groups with their risk assessment:
1. Loads wallet records (a JSON list, or an object with a "wallets" list)
2. Extracts feature vectors
3. Optionally searches for the best cluster count (elbow method)
4. Clusters and renders a table, or dumps the result as JSON

Run with:
    python -m sybilscope.main wallets.json

Or for development:
    python -m sybilscope.main wallets.json --algorithm DBSCAN --debug
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .clustering import (
    ClusteringAlgorithm,
    ClusteringResult,
    DistanceMetric,
    OptimalKResult,
    WalletClusteringEngine,
    get_algorithm_description,
    get_cluster_quality_description,
    get_risk_level_color,
)
from .config import get_settings
from .exceptions import SybilScopeError
from .secure_logging import configure_logging, get_secure_logger

logger = get_secure_logger(__name__)
console = Console()


def load_wallets(path: Path) -> List[Dict[str, Any]]:
    """Read wallet records from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("wallets", [])
    if not isinstance(data, list):
        raise ValueError("Expected a JSON list of wallet records")

    return data


# =============================================================================
# Rendering
# =============================================================================

def create_cluster_table(result: ClusteringResult) -> Table:
    """Create a table of the clusters in a result."""
    table = Table(title=f"Wallet Clusters ({result.algorithm.value})")
    table.add_column("Cluster", style="cyan")
    table.add_column("Label")
    table.add_column("Wallets", justify="right")
    table.add_column("Avg Dist", justify="right")
    table.add_column("Risk")
    table.add_column("Score", justify="right")
    table.add_column("Indicators", style="dim")

    for cluster in result.clusters:
        color = get_risk_level_color(cluster.risk_level)
        table.add_row(
            cluster.cluster_id,
            cluster.label,
            str(cluster.member_count),
            f"{cluster.avg_distance_to_centroid:.3f}",
            f"[{color}]{cluster.risk_level.value}[/]",
            str(cluster.risk_score),
            "; ".join(cluster.risk_indicators) or "-",
        )

    return table


def create_optimal_k_table(search: OptimalKResult) -> Table:
    table = Table(title="Optimal K Search")
    table.add_column("K", justify="right", style="cyan")
    table.add_column("Inertia", justify="right")

    for k, inertia in zip(search.k_values, search.inertias):
        marker = " [bold green]<- elbow[/bold green]" if k == search.optimal_k else ""
        table.add_row(str(k), f"{inertia:.4f}{marker}")

    return table


def render_result(result: ClusteringResult) -> None:
    console.print(Panel.fit(
        f"[bold]{get_algorithm_description(result.algorithm)}[/bold]\n"
        f"Wallets: {len(result.memberships)}  Clusters: {result.num_clusters}\n"
        f"Silhouette: {result.silhouette_score:.3f} ({result.quality.value})\n"
        f"[dim]{get_cluster_quality_description(result.quality)}[/dim]\n"
        f"Iterations: {result.iterations}  Converged: {result.converged}  "
        f"Time: {result.processing_time_ms:.1f}ms",
        title="Clustering Result"
    ))
    console.print(create_cluster_table(result))

    if result.outlier_wallets:
        console.print(f"[yellow]{len(result.outlier_wallets)} wallets were density outliers "
                      f"before being folded into their nearest cluster[/yellow]")

    high_risk = result.high_risk_clusters()
    if high_risk:
        console.print(f"\n[bold red]{len(high_risk)} high-risk cluster(s) detected![/bold red]")
        for cluster in high_risk:
            console.print(f"  {cluster.cluster_id} ({cluster.label}): {', '.join(cluster.members)}")
    else:
        console.print("\n[dim]No high-risk clusters detected.[/dim]")


# =============================================================================
# Entry Point
# =============================================================================

def run(args) -> int:
    engine = WalletClusteringEngine(get_settings().clustering)

    overrides: Dict[str, Any] = {}
    if args.algorithm:
        overrides["algorithm"] = ClusteringAlgorithm(args.algorithm)
    if args.clusters is not None:
        overrides["num_clusters"] = args.clusters
    if args.metric:
        overrides["distance_metric"] = DistanceMetric(args.metric)
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if overrides:
        engine.update_config(**overrides)

    wallets = load_wallets(args.wallets)
    vectors = engine.extract_features_batch(wallets)

    search: Optional[OptimalKResult] = None
    if args.optimal_k:
        min_k, max_k = engine.config.k_range
        search = engine.find_optimal_k(vectors, (min_k, min(max_k, len(vectors))))
        engine.update_config(num_clusters=search.optimal_k)

    result = engine.cluster(vectors)

    if args.json:
        payload = result.summary()
        payload["memberships"] = {
            m.wallet_address: {"cluster_id": m.cluster_id, "confidence": m.confidence}
            for m in result.memberships
        }
        if search is not None:
            payload["optimal_k"] = {"optimal_k": search.optimal_k,
                                    "k_values": search.k_values,
                                    "inertias": search.inertias}
        print(json.dumps(payload, indent=2, default=str))
    else:
        if search is not None:
            console.print(create_optimal_k_table(search))
        render_result(result)

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with argument handling."""
    import argparse

    parser = argparse.ArgumentParser(
        description="SybilScope - Wallet Behavioral Clustering"
    )
    parser.add_argument(
        "wallets",
        type=Path,
        help="JSON file with wallet records"
    )
    parser.add_argument(
        "--algorithm", "-a",
        choices=[a.value for a in ClusteringAlgorithm],
        help="Clustering algorithm"
    )
    parser.add_argument(
        "--clusters", "-k",
        type=int,
        help="Number of clusters"
    )
    parser.add_argument(
        "--metric", "-m",
        choices=[m.value for m in DistanceMetric],
        help="Distance metric"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible runs"
    )
    parser.add_argument(
        "--optimal-k",
        action="store_true",
        help="Pick the cluster count with the elbow method first"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging("DEBUG" if args.debug else settings.log_level, settings.log_json_format)

    try:
        return run(args)
    except SybilScopeError as e:
        logger.error("clustering_run_failed", error=str(e))
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except (OSError, ValueError) as e:
        logger.error("wallet_file_unreadable", path=str(args.wallets), error=str(e))
        console.print(f"[red]Could not read wallets from {args.wallets}: {e}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
