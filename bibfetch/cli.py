# bibfetch/cli.py
import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated, NoReturn

import cyclopts

from bibfetch.errors import FetcherError
from bibfetch.export import get_exporter
from bibfetch.export.tree import TreeExporter
from bibfetch.http import HttpxTransport
from bibfetch.models import Page, SearchResult
from bibfetch.query import QuerySyntaxError
from bibfetch.registry import FetcherRegistry, default_registry
from bibfetch.search import OnError, iter_entries
from bibfetch.search import search as do_search

app = cyclopts.App(
    name="bibfetch",
    help="Bibliographic metadata search across online providers.",
)

DEFAULT_PROVIDERS = ["OpenAlex", "Semantic Scholar"]


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _check_providers(registry: FetcherRegistry, providers: list[str]) -> None:
    invalid = [p for p in providers if p not in registry]
    if invalid:
        print(f"Error: Unknown providers: {invalid}", file=sys.stderr)
        print(f"Available: {registry.names()}", file=sys.stderr)
        sys.exit(1)


@app.command(name="search")
def search(
    query: Annotated[str, cyclopts.Parameter(help="Query, e.g. 'title:transformer AND year:2020-2023'")],
    providers: Annotated[
        list[str],
        cyclopts.Parameter(name=["--provider", "-p"], help="Providers to search (see 'providers')"),
    ] = DEFAULT_PROVIDERS,
    page: Annotated[
        int,
        cyclopts.Parameter(name=["--page"], help="Zero-based page to fetch from every provider"),
    ] = 0,
    output: Annotated[
        Path | None,
        cyclopts.Parameter(name=["--output", "-o"], help="Output file path"),
    ] = None,
    format: Annotated[
        str,
        cyclopts.Parameter(name=["--format", "-f"], help="Output format: tree, json"),
    ] = "tree",
    timeout: Annotated[
        float | None,
        cyclopts.Parameter(name="--timeout", help="Per-provider timeout in seconds"),
    ] = None,
    on_error: Annotated[
        OnError,
        cyclopts.Parameter(name="--on-error", help="Error handling: fail, warn, ignore"),
    ] = "warn",
    no_dedupe: Annotated[
        bool,
        cyclopts.Parameter(name="--no-dedupe", help="Disable deduplication"),
    ] = False,
    verbose: Annotated[
        bool,
        cyclopts.Parameter(name=["--verbose", "-v"], help="Log requests to stderr"),
    ] = False,
) -> None:
    """Fetch one page of results from each provider."""
    _configure_logging(verbose)

    transport = HttpxTransport()
    registry = default_registry(transport)
    _check_providers(registry, providers)

    # Auto-switch to JSON when piping
    if format == "tree" and output is None and not sys.stdout.isatty():
        format = "json"

    try:
        exporter = get_exporter(format)
    except ValueError as e:
        _fail(str(e))

    async def run() -> SearchResult:
        async with transport:
            return await do_search(
                query,
                [registry.get(p) for p in providers],
                page_index=page,
                on_error=on_error,
                dedupe=not no_dedupe,
                timeout=timeout,
            )

    try:
        result = asyncio.run(run())
    except (FetcherError, QuerySyntaxError) as e:
        _fail(str(e))

    if output:
        exporter.export(result, output)
        print(f"Exported {len(result.entries)} entries to {output}")
    else:
        print(exporter.to_string(result))

    # Report errors
    for provider_name, error in result.errors.items():
        print(f"[WARN] {provider_name}: {error}", file=sys.stderr)

    # Summary
    print(f"\nTotal: {len(result.entries)} entries (page {page})", file=sys.stderr)
    for pname, count in result.total_by_provider.items():
        print(f"  {pname}: {count}", file=sys.stderr)


@app.command(name="browse")
def browse(
    query: Annotated[str, cyclopts.Parameter(help="Query string")],
    provider: Annotated[
        str,
        cyclopts.Parameter(name=["--provider", "-p"], help="Provider to page through"),
    ] = "OpenAlex",
    max_pages: Annotated[
        int,
        cyclopts.Parameter(name=["--max-pages"], help="Maximum number of pages to fetch"),
    ] = 3,
    total: Annotated[
        int | None,
        cyclopts.Parameter(name=["--total", "-t"], help="Maximum number of entries"),
    ] = None,
    timeout: Annotated[
        float | None,
        cyclopts.Parameter(name="--timeout", help="Per-page timeout in seconds"),
    ] = None,
    verbose: Annotated[
        bool,
        cyclopts.Parameter(name=["--verbose", "-v"], help="Log requests to stderr"),
    ] = False,
) -> None:
    """Stream entries from consecutive pages of one provider."""
    _configure_logging(verbose)

    transport = HttpxTransport()
    registry = default_registry(transport)
    _check_providers(registry, [provider])
    tree = TreeExporter()

    async def run() -> int:
        count = 0
        async with transport:
            async for entry in iter_entries(
                query,
                registry.get(provider),
                max_pages=max_pages,
                limit=total,
                timeout=timeout,
            ):
                if count > 0:
                    print()  # Blank line between entries
                print(tree.format_entry(entry))
                count += 1
        return count

    try:
        count = asyncio.run(run())
    except (FetcherError, QuerySyntaxError) as e:
        _fail(str(e))

    print(f"\nTotal: {count} entries", file=sys.stderr)


@app.command(name="providers")
def providers() -> None:
    """List available providers."""
    registry = default_registry(HttpxTransport())
    for fetcher in registry:
        if fetcher.help_url:
            print(f"{fetcher.name}\t{fetcher.help_url}")
        else:
            print(fetcher.name)


@app.command(name="parse")
def parse(
    path: Annotated[Path, cyclopts.Parameter(help="Saved provider response")],
    provider: Annotated[
        str,
        cyclopts.Parameter(name=["--provider", "-p"], help="Provider that produced the response"),
    ],
    format: Annotated[
        str,
        cyclopts.Parameter(name=["--format", "-f"], help="Output format: tree, json"),
    ] = "json",
) -> None:
    """Parse a saved response without searching."""
    registry = default_registry(HttpxTransport())
    _check_providers(registry, [provider])

    if not path.exists():
        _fail(f"File not found: {path}")

    try:
        exporter = get_exporter(format)
    except ValueError as e:
        _fail(str(e))

    fetcher = registry.get(provider)
    try:
        entries = fetcher.parser.parse(path.read_bytes())
    except FetcherError as e:
        _fail(str(e))

    page = Page(query="", page_index=0, entries=tuple(entries))
    print(exporter.to_string(SearchResult(pages={fetcher.name: page})))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
