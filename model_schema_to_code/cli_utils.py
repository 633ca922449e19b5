"""
Helpers that describe a CLI invocation in the header of generated code.
"""

from pathlib import Path

import click

COMMAND_NAME = "model_schema_to_code"


def _display_value(value) -> str:
    # Existing files are shown by name only
    if isinstance(value, (str, Path)) and Path(value).exists():
        return Path(value).name
    return str(value)


def _shown_in_command_line(param: click.Parameter, value) -> bool:
    if value is None or value is False or value == "":
        return False
    if isinstance(param, click.Option):
        return not param.is_flag and value != param.default
    return True


def reconstruct_command_line(click_command: click.Command) -> str:
    """
    Rebuild the invoking command line from the active Click context.

    Positional arguments come first, then options that differ from their
    default. Flags are left out.

    Args:
        click_command: The command whose parameters are inspected

    Returns:
        The command line, or just the command name outside a Click context
    """
    ctx = click.get_current_context(silent=True)
    if ctx is None or not ctx.params:
        return COMMAND_NAME

    arguments: list[str] = []
    options: list[str] = []
    for param in click_command.params:
        value = ctx.params.get(param.name)
        if not _shown_in_command_line(param, value):
            continue
        if isinstance(param, click.Argument):
            arguments.append(_display_value(value))
        else:
            options += [param.opts[0], _display_value(value)]

    return " ".join([COMMAND_NAME, *arguments, *options])


def generation_comment(click_command: click.Command) -> str:
    """Header comment naming the command that produced the output."""
    return f"Code generated by {reconstruct_command_line(click_command)}. DO NOT EDIT."
