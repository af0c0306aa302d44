"""Root CLI group for linkctl with global flags and command registration."""

from __future__ import annotations

import click

from linkctl import __version__
from linkctl.commands import register_commands
from linkctl.commands._base import LinkGroup
from linkctl.commands._context import AppContext
from linkctl.config.settings import LinkctlSettings

_ROOT_EXAMPLES = """\
  linkctl channel add "Warehouse East"
  linkctl link add CHN-0001
  linkctl filter add LNK-0001 status is_i pending
  linkctl record create --set order_number=A-1001 --set status=pending
  linkctl route REC-0001"""


@click.group(cls=LinkGroup, invoke_without_command=True, examples=_ROOT_EXAMPLES)
@click.version_option(version=__version__, prog_name="linkctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """linkctl — rule-based record dispatch over ordered links."""
    settings = LinkctlSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    ctx.call_on_close(ctx.obj.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
