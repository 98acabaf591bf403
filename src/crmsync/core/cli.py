"""Command line interface for Salesforce to Airtable sync."""

import sys
import json
import asyncio
import logging
from typing import Optional, Tuple

import click

from .config import setup_logging, load_environment
from ..connectors import get_source_connector, get_destination_connector
from ..engine import SyncEngine, build_query
from ..exceptions import ConfigurationError, ConnectorError, CrmSyncError
from ..models.config import SyncConfig, load_sync_config
from ..models.sync import SyncExecution, SyncStatus


@click.group()
@click.option('--log-level', default='INFO', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set the logging level')
@click.option('--env-file', type=click.Path(exists=True), help='Path to .env file')
def cli(log_level: str, env_file: Optional[str]) -> None:
    """Salesforce to Airtable Sync Tool."""
    setup_logging(log_level)
    load_environment(env_file)


def _create_engine(config: SyncConfig) -> SyncEngine:
    source = get_source_connector('salesforce')()
    destination = get_destination_connector('airtable')(base_id=config.base_id)
    return SyncEngine(source, destination, config)


@cli.command()
@click.option('--config', 'config_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Path to the JSON sync configuration')
@click.option('--only', 'only', multiple=True, help='Sync only these objects (repeatable), in configured order')
@click.option('--dry-run', is_flag=True, help='Show what would change without writing to Airtable')
def sync(config_path: str, only: Tuple[str, ...], dry_run: bool) -> None:
    """Mirror the configured Salesforce objects into Airtable."""
    try:
        config = load_sync_config(config_path)
        if only:
            config = config.select(list(only))

        engine = _create_engine(config)
        execution = asyncio.run(engine.run(dry_run=dry_run))

        _display_summary(execution)
        if execution.status != SyncStatus.COMPLETED:
            click.echo(f"❌ Sync failed: {execution.error_message}", err=True)
            sys.exit(1)

    except ConfigurationError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)
    except CrmSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logging.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('objects', nargs=-1)
def describe(objects: Tuple[str, ...]) -> None:
    """List the fields of Salesforce objects.

    With no arguments, reads object names from stdin, one per line, until an
    empty line or end of input.
    """
    try:
        source = get_source_connector('salesforce')()
        user_info = asyncio.run(source.authenticate())
        click.echo(f"Successfully logged in: {user_info.get('user_name')}")

        if objects:
            for object_name in objects:
                _describe_object(source, object_name)
            return

        stdin = click.get_text_stream('stdin')
        click.echo("Input an object and get a list of all fields: ")
        for line in stdin:
            object_name = line.strip()
            if not object_name:
                break
            _describe_object(source, object_name)

    except ConfigurationError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)
    except ConnectorError as e:
        click.echo(f"Salesforce API Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logging.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


def _describe_object(source, object_name: str) -> None:
    """Print the sorted field names of one object; API errors are reported and skipped."""
    click.echo("-" * 26)
    try:
        fields = sorted(asyncio.run(source.describe(object_name)))
    except ConnectorError as e:
        click.echo(f"Could not describe {object_name}: {e}", err=True)
        return
    click.echo(f"{object_name} fields: {json.dumps(fields, indent=2)}")
    click.echo("-" * 26)


@cli.command()
@click.option('--config', 'config_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Path to the JSON sync configuration')
def show_queries(config_path: str) -> None:
    """Print the SOQL each object sends before any carried filter is applied."""
    try:
        config = load_sync_config(config_path)
        for mapping in config.objects:
            query = build_query(mapping.fields, mapping.object_name, where_clause=mapping.where_clause)
            click.echo(f"{mapping.object_name} -> {mapping.table}")
            click.echo(f"  {query}")
            if mapping.filter_field:
                click.echo(f"  (restricted by {mapping.filter_field} when the previous object returns values)")
    except ConfigurationError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)


@cli.command()
def test_connection() -> None:
    """Test the Salesforce login."""
    try:
        source = get_source_connector('salesforce')()
        user_info = asyncio.run(source.authenticate())
        click.echo("✅ Successfully connected to Salesforce!")
        click.echo(f"User: {user_info.get('user_name')} ({user_info.get('instance_url')})")
    except ConfigurationError as e:
        click.echo(f"❌ Configuration Error: {e}", err=True)
        sys.exit(1)
    except ConnectorError as e:
        click.echo(f"❌ Salesforce API Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logging.exception("Unexpected error occurred")
        click.echo(f"❌ Unexpected error: {e}", err=True)
        sys.exit(1)


def _display_summary(execution: SyncExecution) -> None:
    """Display per-object counts in a table format."""
    if not execution.stage_results:
        return

    title = "📈 Sync Summary (dry run):" if execution.dry_run else "📈 Sync Summary:"
    click.echo(title)
    click.echo(f"{'Object':<20} {'Table':<20} {'Fetched':<10} {'Created':<10} {'Updated':<10} {'Deleted':<10}")
    click.echo("-" * 80)
    for result in execution.stage_results:
        click.echo(f"{result.object_name:<20} {result.table:<20} {result.fetched:<10} {result.created:<10} "
                   f"{result.updated:<10} {result.deleted:<10}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
