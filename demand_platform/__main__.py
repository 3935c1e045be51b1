import click

from .cli import (
    info,
    manual,
    reconcile,
    scheduled,
    setup_database,
    stage_weights,
)


@click.group(invoke_without_command=True, context_settings=dict(help_option_names=["-h", "--help"]))
# The click group is setup to allow overriding `prog_name`
@click.pass_context
def cli(ctx: click.Context) -> None:  # noqa: D103  # Using a docstring would appear in the "--help" output.
    # Handle the case when the program is called without any parameters or commands.
    if ctx.invoked_subcommand is None:
        ctx.forward(info)


cli.add_command(info)
cli.add_command(manual)
cli.add_command(scheduled)
cli.add_command(reconcile)
cli.add_command(setup_database)
cli.add_command(stage_weights)

if __name__ == "__main__":
    cli(prog_name="demand_platform")
