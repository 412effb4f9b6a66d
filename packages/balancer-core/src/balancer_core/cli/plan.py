"""Plan and cost CLI commands.

This module provides CLI commands that run the balancer on a cluster-state
document:
- plan: Compute a move plan and print it as a table or JSON
- cost: Score the current assignment without searching

Both commands take an optional --config YAML file with BalancerConfig
fields; without it the defaults apply.
"""

import json
import random
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from balancer_core.balancer import BalanceResult, StochasticLoadBalancer
from balancer_core.config import BalancerConfig, load_balancer_config
from balancer_core.exceptions import BalancerError
from balancer_core.loader import ClusterState, load_cluster_state


def _load_inputs(cluster_file: Path, config_file: Path | None) -> tuple[ClusterState, BalancerConfig]:
    """Load both files, turning load errors into exit code 1."""
    try:
        config = load_balancer_config(config_file) if config_file else BalancerConfig()
        state = load_cluster_state(cluster_file)
    except (BalancerError, ValidationError) as e:
        Console().print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    return state, config


def _result_to_dict(result: BalanceResult) -> dict:
    data: dict = {"status": result.status.value, "moves": []}
    opt = result.optimization
    if opt is not None:
        data.update(
            {
                "initial_cost": opt.initial_cost,
                "best_cost": opt.best_cost,
                "steps": opt.steps,
                "accepted": opt.accepted,
                "max_steps": opt.max_steps,
                "termination": opt.termination.value,
                "repaired_moves": opt.repaired_moves,
                "elapsed_seconds": opt.elapsed_seconds,
            }
        )
    for round_index, round_plans in enumerate(result.rounds):
        for plan in round_plans:
            data["moves"].append(
                {
                    "round": round_index,
                    "region": plan.region.encoded_name,
                    "table": plan.region.table,
                    "source": str(plan.source),
                    "destination": str(plan.destination),
                }
            )
    data["region_counts"] = {str(server): len(regions) for server, regions in result.assignment.items()}
    return data


def plan_command(
    cluster_file: Path = typer.Argument(..., help="Cluster-state YAML or JSON file"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Balancer config YAML file"),
    seed: int = typer.Option(None, "--seed", help="Seed for a reproducible plan"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Compute a region move plan for a cluster."""
    state, config = _load_inputs(cluster_file, config_file)
    rng = random.Random(seed) if seed is not None else random.Random()
    balancer = StochasticLoadBalancer(config, rng=rng)
    try:
        result = balancer.balance_cluster(
            state.assignment,
            servers=state.servers,
            region_loads=state.region_loads,
            locality=state.locality,
        )
    except BalancerError as e:
        Console().print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(_result_to_dict(result), indent=2))
        return

    console = Console()
    console.print(f"[bold]Status:[/bold] {result.status.value}")
    opt = result.optimization
    if opt is not None:
        console.print(
            f"[bold]Cost:[/bold] {opt.initial_cost:.4f} -> {opt.best_cost:.4f} "
            f"({opt.steps} steps, {opt.termination.value})"
        )
    if not result.has_plan:
        console.print("No moves needed")
        return

    table = Table(title=f"Plan ({len(result.plans)} moves)")
    table.add_column("Round", justify="right", style="cyan")
    table.add_column("Region")
    table.add_column("Table", style="green")
    table.add_column("Source")
    table.add_column("Destination")
    for round_index, round_plans in enumerate(result.rounds):
        for plan in round_plans:
            table.add_row(
                str(round_index),
                plan.region.encoded_name[:8],
                plan.region.table,
                str(plan.source),
                str(plan.destination),
            )
    console.print(table)


def cost_command(
    cluster_file: Path = typer.Argument(..., help="Cluster-state YAML or JSON file"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Balancer config YAML file"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the cost of the current assignment."""
    state, config = _load_inputs(cluster_file, config_file)
    try:
        report = StochasticLoadBalancer(config).compute_cost(
            state.assignment,
            servers=state.servers,
            region_loads=state.region_loads,
            locality=state.locality,
        )
    except BalancerError as e:
        Console().print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if json_output:
        data = {"total": report.total, "breakdown": report.breakdown, "weights": report.weights}
        print(json.dumps(data, indent=2))
        return

    console = Console()
    table = Table(title="Cost")
    table.add_column("Function", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Weighted", justify="right")
    for name, score in report.breakdown.items():
        weight = report.weights[name]
        table.add_row(name, f"{weight:g}", f"{score:.4f}", f"{weight * score:.4f}")
    console.print(table)
    console.print(f"[bold]Total:[/bold] {report.total:.4f}")
