"""
ASTKG CLI Commands

    astkg ingest [--config PATH]          run the ingestion pipeline to completion
    astkg schedule [--config PATH]        run ingestion periodically until interrupted
    astkg status [--config PATH]          show ingestion status and graph health
    astkg analyze QUERY [--no-prefilter]  list the classes and methods relevant to QUERY
"""

import asyncio
import json
import sys
from typing import Optional

import click
import structlog

from astkg import __version__
from astkg.config import AstkgConfig
from astkg.core import CodeKnowledgeGraph


# ============================================================================
# Helper Functions
# ============================================================================

def configure_logging(verbose: bool = False) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(10 if verbose else 20),
    )


def run_async(coro):
    """Run async coroutine and return result."""
    return asyncio.run(coro)


def load_config(config_path: Optional[str]) -> AstkgConfig:
    if config_path:
        return AstkgConfig.from_yaml(config_path)
    return AstkgConfig()


# ============================================================================
# CLI
# ============================================================================

@click.group()
@click.version_option(version=__version__, prog_name='astkg')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
def cli(verbose):
    """ASTKG - code knowledge graph ingestion and entity analysis."""
    configure_logging(verbose)


@cli.command('ingest')
@click.option('--config', 'config_path', type=click.Path(), help='YAML config file')
def ingest(config_path):
    """Run the four ingestion stages and wait for them to finish.

    Example:
        astkg ingest --config astkg.yaml
    """
    async def _run():
        kg = CodeKnowledgeGraph(load_config(config_path))
        await kg.connect()
        try:
            return await kg.run_ingestion()
        finally:
            await kg.close()

    try:
        status = run_async(_run())
    except Exception as e:
        click.echo(f"❌ Ingestion could not start: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(status, indent=2, default=str))
    if status.get("last_error"):
        click.echo(f"❌ Ingestion failed: {status['last_error']}", err=True)
        sys.exit(1)
    if status.get("last_run_time") == "Never":
        click.echo("⚠️  Nothing ingested (empty AST snapshot)")
    else:
        click.echo("✅ Ingestion completed")


@cli.command('schedule')
@click.option('--config', 'config_path', type=click.Path(), help='YAML config file')
def schedule(config_path):
    """Run ingestion every ASTKG_SCHEDULE_INTERVAL seconds until interrupted."""
    config = load_config(config_path)
    config.ingestion.schedule_enabled = True

    async def _run():
        kg = CodeKnowledgeGraph(config)
        await kg.connect()
        try:
            kg.start_scheduler()
            await kg.run_ingestion()
            while True:
                await asyncio.sleep(3600)
        finally:
            await kg.close()

    try:
        run_async(_run())
    except KeyboardInterrupt:
        click.echo("Scheduler stopped")


@cli.command('status')
@click.option('--config', 'config_path', type=click.Path(), help='YAML config file')
def status(config_path):
    """Show ingestion status and graph health as JSON."""
    async def _run():
        kg = CodeKnowledgeGraph(load_config(config_path))
        await kg.connect()
        try:
            report = kg.ingestion_status()
            report["graph_healthy"] = await kg.health_check()
            report["entities"] = await kg.refresh_registry()
            return report
        finally:
            await kg.close()

    try:
        report = run_async(_run())
    except Exception as e:
        click.echo(f"❌ Error reading status: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(report, indent=2, default=str))


@cli.command('analyze')
@click.argument('query')
@click.option('--config', 'config_path', type=click.Path(), help='YAML config file')
@click.option('--no-prefilter', is_flag=True, help='Send the whole entity population to the LLM')
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']), default='text', help='Output format')
def analyze(query, config_path, no_prefilter, output_format):
    """List the classes and methods relevant to QUERY.

    Example:
        astkg analyze "where are refunds validated?"
    """
    async def _run():
        kg = CodeKnowledgeGraph(load_config(config_path))
        await kg.connect()
        try:
            await kg.refresh_registry()
            return await kg.analyze(query, use_prefilter=False if no_prefilter else None)
        finally:
            await kg.close()

    try:
        entities = run_async(_run())
    except Exception as e:
        click.echo(f"❌ Error analyzing query: {e}", err=True)
        sys.exit(1)

    if output_format == 'json':
        click.echo(json.dumps({
            "classes": entities.classes,
            "methods": entities.methods,
            "packages": entities.packages,
            "terms": entities.terms,
        }, indent=2))
        return

    if not entities.has_entities():
        click.echo("No relevant entities found")
        return

    click.echo("Classes:")
    for name in entities.classes:
        click.echo(f"  - {name}")
    click.echo("Methods:")
    for name in entities.methods:
        click.echo(f"  - {name}")


if __name__ == '__main__':
    cli()
