import json
import logging

import click

from .cli_utils import generation_comment
from .errors import CompilationError, SchemaError
from .pipeline import BACKENDS, CodeGeneratorConfig, PipelineGenerator


@click.command()
@click.option("--target", "-t", default="postgres", type=click.Choice(list(BACKENDS)))
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log every pipeline phase")
@click.argument("path", type=click.Path(exists=True, resolve_path=True))
def model_schema_to_code(target, config, verbose, path):
    """Generate TARGET code for the declaration set stored in PATH (JSON) and print it."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    with open(path) as f:
        schema = json.load(f)

    if config is not None:
        with open(config) as f:
            config_dict = json.load(f)
        config = CodeGeneratorConfig.from_dict(config_dict)
    else:
        config_dict = {}
        config = CodeGeneratorConfig()

    # Name the command in the header unless the config sets its own
    if config.add_generation_comment and "generation_comment" not in config_dict:
        config.generation_comment = generation_comment(model_schema_to_code)

    try:
        result = PipelineGenerator(schema, config).generate_target(target)
    except CompilationError as e:
        for diagnostic in e.diagnostics:
            click.echo(diagnostic.format(), err=True)
        raise click.ClickException(f"{len(e.diagnostics)} problem(s) found, nothing was generated") from None
    except SchemaError as e:
        raise click.ClickException(e.message) from None

    click.echo(result.content, nl=False)

    if result.errors:
        for diagnostic in result.errors:
            click.echo(diagnostic.format(), err=True)
        raise click.ClickException(f"{len(result.errors)} declaration(s) could not be generated for {target}")
