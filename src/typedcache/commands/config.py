"""Config commands -- view and modify the user settings file.

Provides the ``typedcache config`` sub-command group for reading,
updating, and resetting the user's settings
(:class:`~typedcache.models.CacheSettings`). These settings select the
default cache file the other commands (and :func:`typedcache.create`)
operate on.
"""

from __future__ import annotations

import typer

from typedcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

_NULL_VALUES = ("", "none", "null")


@config_app.command("show")
def config_show() -> None:
    """Show current user settings.

    Prints the config directory path followed by the settings as
    formatted output.

    Example::

        typedcache config show
        typedcache config show --json
    """
    from typedcache.config import get_config_dir, load_settings

    settings = load_settings()
    info(f"Config directory: {get_config_dir()}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Settings key, e.g. 'location' or 'default_ttl_seconds'."),
    value: str = typer.Argument(help="Value to set. 'none' clears an optional key."),
) -> None:
    """Set a settings value.

    The value is coerced to match the existing field's type and the result
    is validated against :class:`~typedcache.models.CacheSettings` before
    saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value fails
            validation.

    Example::

        typedcache config set location cache
        typedcache config set subdir my_app
        typedcache config set default_ttl_seconds 600
    """
    from typedcache.config import load_settings, save_settings
    from typedcache.models import CacheSettings

    data = load_settings().model_dump(mode="json")
    if key not in data:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = data[key]
    nullable = CacheSettings.model_fields[key].default is None
    coerced: object
    if nullable and value.lower() in _NULL_VALUES:
        coerced = None
    elif isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes", "on")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value
    data[key] = coerced

    try:
        settings = CacheSettings.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset user settings to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        typedcache config reset
        typedcache --force config reset
    """
    from typedcache.config import save_settings
    from typedcache.models import CacheSettings

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(CacheSettings())
    success("Settings reset to defaults.")
