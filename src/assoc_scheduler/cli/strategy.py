"""
CLI: ``assoc-scheduler strategy`` - schedule strategy commands.
"""

from __future__ import annotations

import typer

from assoc_scheduler.cli.utils import handle_errors, open_runtime, output_item, output_items

app = typer.Typer(no_args_is_help=True)

STRATEGY_COLUMNS = ["id", "name", "schedule_type", "cron_expression", "time_zone"]


@app.command("list")
def list_strategies(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List schedule strategies with their derived cron expressions."""
    with handle_errors(), open_runtime(database) as runtime:
        output_items(
            runtime.strategies.list_strategies(),
            as_json=json_out,
            title="Strategies",
            columns=STRATEGY_COLUMNS,
        )


@app.command("show")
def show_strategy(
    strategy_id: int = typer.Argument(..., help="Strategy ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one strategy and its excluded dates."""
    with handle_errors(), open_runtime(database) as runtime:
        strategy = runtime.strategies.get_strategy(strategy_id)
        output_item(strategy, as_json=json_out, title=f"Strategy: {strategy.name}")
        if not json_out:
            output_items(
                runtime.strategies.list_excluded_dates(strategy_id),
                title="Excluded dates",
                columns=["excluded_date", "reason"],
            )
