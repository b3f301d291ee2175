#!/usr/bin/env python3
"""
CLI interface for article-parser - Extract structured article data from web pages.

This module provides the main command-line interface using Click framework,
supporting single article parsing, ruleset listing, and web server mode.
"""

import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import get_config
from .converters import CONTENT_TYPES
from .exceptions import ArticleParserError
from .extractors.loader import LoaderConfig
from .models import ParsedArticle
from .parser import ArticleParser

console = Console()


def setup_logging(level: str) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def print_summary(article: ParsedArticle) -> None:
    table = Table(title=article.title or "Untitled", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    rows = [
        ("URL", article.url),
        ("Domain", article.domain),
        ("Author", article.author),
        ("Published", article.date_published),
        ("Dek", article.dek),
        ("Lead image", article.lead_image_url),
        ("Word count", f"{article.word_count:,}" if article.word_count is not None else None),
        ("Reading time", f"{article.reading_time_minutes} min" if article.word_count else None),
        ("Direction", article.direction),
        ("Pages", str(article.total_pages) if article.total_pages else None),
        ("Next page", article.next_page_url),
        ("Excerpt", article.excerpt),
    ]
    for label, value in rows:
        table.add_row(label, value or "[dim]-[/dim]")
    for key, value in article.extended.items():
        table.add_row(key, str(value) if value is not None else "[dim]-[/dim]")

    console.print(table)


@click.group(help="Extract structured article data from web pages")
@click.version_option(version=__version__, prog_name="article-parser")
@click.option('--config', '-c', 'config_file',
              type=click.Path(exists=True, readable=True),
              help="Path to custom configuration file")
@click.pass_context
def main(ctx, config_file):
    """Main CLI entry point."""
    ctx.ensure_object(dict)

    config = get_config()
    if config_file:
        config.load_user_config(config_file)

    ctx.obj['config'] = config


@main.command("parse")
@click.argument("url")
@click.option("--html-file", type=click.File('r', encoding='utf-8'),
              help="Parse this HTML instead of fetching the URL")
@click.option("-f", "--format", "output_format",
              type=click.Choice(['json', 'markdown', 'summary']),
              default='json', show_default=True,
              help="Output format")
@click.option("-t", "--content-type",
              type=click.Choice(CONTENT_TYPES),
              help="Format of the extracted content")
@click.option("--single-page", is_flag=True,
              help="Do not follow next-page links")
@click.option("--no-fallback", "fallback", is_flag=True, flag_value=False, default=True,
              help="Do not use the generic extractor for fields a site ruleset misses")
@click.option("-v", "--verbose", is_flag=True,
              help="Enable verbose output")
@click.pass_context
def parse_cmd(ctx, url: str, html_file, output_format: str, content_type: Optional[str],
              single_page: bool, fallback: bool, verbose: bool):
    """Parse a single article."""

    config = ctx.obj['config']
    setup_logging("DEBUG" if verbose else config.get('logging.level', 'WARNING'))

    if content_type is None and output_format == 'markdown':
        content_type = 'markdown'

    html = html_file.read() if html_file else None

    try:
        with ArticleParser(config) as parser:
            result = parser.extract(
                url,
                html,
                fetch_all_pages=False if single_page else None,
                content_type=content_type,
                fallback=fallback,
            )
    except ArticleParserError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)

    if result.failed:
        console.print(f"[red]Extraction failed:[/red] {result.error_message}")
        sys.exit(1)

    article = result.article
    if verbose:
        console.print(f"[blue]Extractor:[/blue] {result.extractor_used} "
                      f"({result.extraction_time_seconds:.2f}s)")

    if output_format == 'json':
        click.echo(json.dumps(article.to_dict(), indent=2, ensure_ascii=False))
    elif output_format == 'markdown':
        click.echo(article.format_markdown())
    else:
        print_summary(article)


@main.command("extractors")
@click.option("-s", "--search", help="Only show domains containing this text")
@click.pass_context
def extractors_cmd(ctx, search: Optional[str]):
    """List domains with a site-specific ruleset."""

    config = ctx.obj['config']

    with ArticleParser(config) as parser:
        rulesets = parser.registry.rulesets()

    table = Table(title="Site Rulesets")
    table.add_column("Domain", style="cyan")
    table.add_column("Also matches", style="blue")
    table.add_column("Extended fields", style="dim")

    shown = 0
    for ruleset in rulesets:
        if search and not any(search.lower() in domain for domain in ruleset.domains):
            continue
        table.add_row(
            ruleset.domain,
            ", ".join(ruleset.supported_domains) or "-",
            ", ".join(ruleset.extend) or "-",
        )
        shown += 1

    if not shown:
        console.print("[yellow]No matching rulesets[/yellow]")
        return

    console.print(table)


@main.command("serve")
@click.option("-p", "--port", type=int, default=3000, show_default=True,
              help="Port to run the web server on")
@click.option("--host", default="127.0.0.1", show_default=True,
              help="Host to bind the web server to")
@click.option("-v", "--verbose", is_flag=True,
              help="Enable verbose output")
@click.pass_context
def serve_cmd(ctx, port: int, host: str, verbose: bool):
    """Start the JSON API server."""

    try:
        import uvicorn
        from .web_ui.server import create_app
    except ImportError as e:
        console.print(f"[red]Web dependencies not available:[/red] {e}")
        console.print("[yellow]Install web dependencies with:[/yellow] pip install 'article-parser[web]'")
        sys.exit(1)

    config = ctx.obj['config']
    setup_logging("DEBUG" if verbose else config.get('logging.level', 'WARNING'))

    console.print(f"[blue]Starting web server on[/blue] http://{host}:{port}")
    console.print("[blue]Press Ctrl+C to stop[/blue]")

    app = create_app(config)

    try:
        uvicorn.run(app, host=host, port=port, log_level="debug" if verbose else "info")
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped by user[/yellow]")


@main.command("info")
@click.pass_context
def info_cmd(ctx):
    """Show configuration and ruleset cache settings."""

    config = ctx.obj['config']
    parser_config = config.get_parser_config()
    fetcher_config = config.get_fetcher_config()
    loader_config = LoaderConfig.from_config(config)

    console.print(f"[blue]article-parser v{__version__}[/blue]")
    console.print("Extract structured article data from web pages\n")

    console.print("[blue]Parser:[/blue]")
    console.print(f"  Generic fallback: {parser_config.get('fallback', True)}")
    console.print(f"  Fetch all pages: {parser_config.get('fetch_all_pages', True)}")
    console.print(f"  Max pages: {parser_config.get('max_pages', 26)}")
    console.print(f"  Content type: {parser_config.get('content_type', 'html')}")

    console.print("\n[blue]Fetcher:[/blue]")
    console.print(f"  Timeout: {fetcher_config.get('timeout', 30)}s")
    console.print(f"  User agent: {fetcher_config.get('user_agent', 'article-parser/' + __version__)}")
    console.print(f"  Private networks allowed: {fetcher_config.get('allow_private_networks', False)}")

    console.print("\n[blue]Ruleset cache:[/blue]")
    console.print(f"  Capacity: {loader_config.max_cache_size}")
    console.print(f"  Expiration: {loader_config.cache_expiration:g}s")
    console.print(f"  Cleanup interval: {loader_config.cleanup_interval:g}s")
    console.print(f"  Load attempts: {loader_config.max_load_attempts}")
    console.print(f"  Preloaded domains: {', '.join(loader_config.preload_domains) or 'none'}")

    ruleset_files = config.get_ruleset_files()
    if ruleset_files:
        console.print("\n[blue]Ruleset files:[/blue]")
        for path in ruleset_files:
            marker = "[green]✅[/green]" if path.exists() else "[red]❌[/red]"
            console.print(f"  {marker} {path}")

    console.print("\n[blue]Usage examples:[/blue]")
    console.print("  article-parser parse https://example.com/article")
    console.print("  article-parser parse https://example.com/article --format markdown")
    console.print("  article-parser extractors --search medium")
    console.print("  article-parser serve --port 8080")


if __name__ == "__main__":
    main()
