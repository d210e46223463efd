"""CLI entry point for gitid.

Commands:
    gitid                    # Open the profile picker (same as manage)
    gitid manage             # Switch, delete, add or refresh profiles
    gitid configure          # Add a new profile and switch to it
    gitid status             # Show active identity and effective registry
    gitid list               # List saved profiles
    gitid use N              # Switch to saved profile N
    gitid remove N           # Delete saved profile N
    gitid settings show      # Show configuration
    gitid settings set K V   # Update configuration
"""

import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gitid import __version__
from gitid.actions import ProfileActions, UIUpdate, notify
from gitid.click_group import GitidGroup
from gitid.command_runner import run_command
from gitid.config_manager import ConfigError, ConfigManager, GitidConfig
from gitid.identity_sync import IdentitySynchronizer, StatusSummary, is_current
from gitid.interaction_handler import CLIInteractionHandler
from gitid.profile_store import ProfileStore, TomlStateFile

logger = logging.getLogger(__name__)
console = Console()


class Services:
    """Store, synchronizer and handlers built from one configuration."""

    def __init__(self, config: GitidConfig):
        self.config = config
        self.store = ProfileStore.init(TomlStateFile(ConfigManager.state_path(config)))
        self.sync = IdentitySynchronizer(self.store, config, runner=run_command)
        self.actions = ProfileActions(self.store, self.sync)


def _services(ctx: click.Context) -> Services:
    obj = ctx.ensure_object(dict)
    if "services" not in obj:
        config = ConfigManager.load_config(obj.get("config_path"))
        obj["services"] = Services(config)
    return obj["services"]


def _print_status(services: Services, summary: StatusSummary | None = None) -> None:
    if summary is None:
        summary = services.sync.status_summary()
    click.echo(f"Current: {summary.text}")


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _pick_profile(services: Services, number: int):
    profiles = services.store.profiles
    if not profiles:
        _fail("No saved profiles. Add one with: gitid configure")
    if not 1 <= number <= len(profiles):
        _fail(f"No profile #{number}. Choose 1-{len(profiles)} (see: gitid list)")
    return profiles[number - 1]


@click.group(
    cls=GitidGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--config", "config_path", help="Custom config file path")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """gitid - switch git identity and npm registry between saved profiles.

    Keeps the ten most recently used (name, email, registry) profiles and
    applies the chosen one to `git config --global` and to npm (a registry
    URL is set directly; any other value is passed to `nrm use`).

    \b
    EXAMPLES:
        # Open the picker
        $ gitid

        # Add a profile and switch to it
        $ gitid configure --name Alice --email alice@example.com \\
            --registry https://registry.npmmirror.com/

        # Show what is active
        $ gitid status

    \b
    CONFIGURATION:
        Config file: ~/.gitid/config.toml (override dir with GITID_HOME)
        Profiles:    ~/.gitid/state.toml
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand is None:
        ctx.invoke(manage)


@main.command(name="manage")
@click.pass_context
def manage(ctx: click.Context) -> None:
    """Open the profile picker.

    \b
    Picker keys:
        <n>    switch to profile n
        d<n>   delete profile n (not the current one)
        a      add a new profile
        r      refresh
        q      quit
    """
    try:
        services = _services(ctx)
        _print_status(services)

        update = services.actions.manage(CLIInteractionHandler(console))

        if update.status is not None:
            _print_status(services, update.status)
        elif update.changed:
            _print_status(services)

    except ConfigError as e:
        _fail(str(e))
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to manage profiles: {e}", exc_info=True)
        sys.exit(1)


@main.command(name="configure")
@click.option("--name", help="git user.name")
@click.option("--email", help="git user.email")
@click.option("--registry", help="npm registry URL or nrm alias")
@click.pass_context
def configure(
    ctx: click.Context, name: str | None, email: str | None, registry: str | None
) -> None:
    """Add a new profile and switch to it.

    Prompts for anything not given. Passing both --name and --email skips
    the prompts entirely.

    \b
    EXAMPLES:
        $ gitid configure
        $ gitid configure --name Bob --email bob@example.com --registry taobao
    """
    try:
        services = _services(ctx)
        handler = CLIInteractionHandler(console)

        if name and email:
            update = services.actions.add(name, email, registry)
            notify(handler, update)
        else:
            update = services.actions.add_flow(handler, name, email, registry)

        if update.changed:
            _print_status(services)

    except ConfigError as e:
        _fail(str(e))
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to configure profile: {e}", exc_info=True)
        sys.exit(1)


@main.command(name="status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the active git identity and effective npm registry."""
    try:
        _print_status(_services(ctx))
    except ConfigError as e:
        _fail(str(e))
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to show status: {e}", exc_info=True)
        sys.exit(1)


@main.command(name="list")
@click.pass_context
def list_profiles(ctx: click.Context) -> None:
    """List saved profiles, most recently used first.

    The current profile is marked with an asterisk (*).
    """
    try:
        services = _services(ctx)
        profiles = services.store.profiles

        if not profiles:
            console.print("[yellow]No profiles saved.[/yellow]")
            console.print("\nAdd one with:")
            console.print("  gitid configure")
            return

        active = services.sync.query_active()

        table = Table(title="gitid Profiles")
        table.add_column("Current", style="cyan", width=8)
        table.add_column("#", width=3)
        table.add_column("Name", style="green")
        table.add_column("Email", style="blue")
        table.add_column("Registry", style="yellow")

        for i, profile in enumerate(profiles, 1):
            table.add_row(
                "*" if is_current(profile, active) else "",
                str(i),
                escape(profile.name),
                escape(profile.email),
                escape(profile.registry or "-"),
            )

        console.print(table)

    except ConfigError as e:
        _fail(str(e))
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to list profiles: {e}", exc_info=True)
        sys.exit(1)


@main.command(name="use")
@click.argument("number", type=int)
@click.pass_context
def use_profile(ctx: click.Context, number: int) -> None:
    """Switch to saved profile NUMBER (as shown by `gitid list`)."""
    try:
        services = _services(ctx)
        profile = _pick_profile(services, number)

        update = services.actions.switch(profile)
        notify(CLIInteractionHandler(console), update)
        _print_status(services)

    except ConfigError as e:
        _fail(str(e))
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to switch profile: {e}", exc_info=True)
        sys.exit(1)


@main.command(name="remove")
@click.argument("number", type=int)
@click.pass_context
def remove_profile(ctx: click.Context, number: int) -> None:
    """Delete saved profile NUMBER. The current profile cannot be removed."""
    try:
        services = _services(ctx)
        profile = _pick_profile(services, number)
        active = services.sync.query_active()

        if is_current(profile, active):
            _fail(f"{profile.name} <{profile.email}> is the current identity; switch first")

        update: UIUpdate = services.actions.delete(profile, active)
        notify(CLIInteractionHandler(console), update)
        _print_status(services)

    except ConfigError as e:
        _fail(str(e))
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        logger.error(f"Failed to remove profile: {e}", exc_info=True)
        sys.exit(1)


@main.group(name="settings")
def settings_group():
    """View or change gitid configuration.

    \b
    KEYS:
        git_command       git binary (default: git)
        npm_command       npm binary (default: npm)
        nrm_command       nrm binary (default: nrm)
        command_timeout   seconds before a tool call counts as failed (default: none)
        state_file        profile state file (default: ~/.gitid/state.toml)
    """
    pass


@settings_group.command(name="show")
@click.pass_context
def settings_show(ctx: click.Context) -> None:
    """Show current configuration."""
    try:
        config_path = ctx.obj.get("config_path")
        config = ConfigManager.load_config(config_path)

        console.print(f"[green]Config file:[/green] {ConfigManager.get_config_path(config_path)}")
        for key, value in vars(config).items():
            console.print(f"  {key}: {value if value is not None else '-'}")
        console.print(f"  [dim]profiles: {ConfigManager.state_path(config)}[/dim]")

    except ConfigError as e:
        _fail(str(e))


@settings_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx: click.Context, key: str, value: str) -> None:
    """Set configuration KEY to VALUE ("none" clears optional keys)."""
    if key not in GitidConfig.__dataclass_fields__:
        _fail(f"Unknown config key: {key}")

    parsed: str | float | None = value
    if value.lower() == "none" and key in ("command_timeout", "state_file"):
        parsed = None
    elif key == "command_timeout":
        try:
            parsed = float(value)
        except ValueError:
            _fail(f"command_timeout must be a number, got: {value}")

    try:
        ConfigManager.update_config(ctx.obj.get("config_path"), **{key: parsed})
        console.print(f"[green]Set {key}[/green] = {parsed if parsed is not None else '-'}")
    except ConfigError as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
