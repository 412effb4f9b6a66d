"""Balancer CLI - compute region move plans for a cluster."""

import logging

import typer

from balancer_core.cli.plan import cost_command, plan_command

app = typer.Typer(
    name="balancer",
    help="Stochastic region balancer",
    no_args_is_help=True,
)


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log search progress"),
) -> None:
    """Stochastic region balancer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.command("plan")(plan_command)
app.command("cost")(cost_command)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
