"""CLI entry point for simgraph."""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from .config import load_config
from .context import SimGraphContext, create_context
from .errors import SimGraphError
from .ingest import dataset_stats, load_items

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """simgraph - Similarity graphs, search and embeddings for labeled text."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_context(ctx) -> SimGraphContext:
    if "context" not in ctx.obj:
        try:
            config = load_config(ctx.obj.get("config_path"))
        except (OSError, ValueError) as e:
            _fail(ctx, str(e))
        _setup_logging("DEBUG" if ctx.obj.get("verbose") else config.get("log_level", "INFO"))
        ctx.obj["context"] = create_context(config)
    return ctx.obj["context"]


def _fail(ctx, message: str):
    console.print(f"[red]{message}[/]")
    ctx.exit(1)


def _load(ctx, path):
    try:
        return load_items(path)
    except (OSError, ValueError) as e:
        _fail(ctx, f"Could not load {path}: {e}")


def _build_graph(ctx, sg: SimGraphContext, items, strategy=None, **overrides):
    strategy = strategy or sg.config.get("default_connection_strategy", "adaptive")
    try:
        graph = sg.graph.generate_graph(items, strategy, sg.connection_options(**overrides))
    except SimGraphError as e:
        _fail(ctx, str(e))
    if not graph.nodes:
        console.print("[yellow]No embedded items to build a graph from. Run 'simgraph embed' first.[/]")
    return graph


@cli.command()
@click.pass_context
def strategies(ctx):
    """List available connection and search strategies."""
    sg = _get_context(ctx)
    for family, entries in sg.strategies().items():
        table = Table(title=f"{family.capitalize()} strategies")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        for entry in entries:
            table.add_row(entry["name"], entry["description"])
        console.print(table)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--strategy", "-s", default=None, help="Connection strategy")
@click.pass_context
def stats(ctx, file, strategy):
    """Show dataset and graph statistics."""
    sg = _get_context(ctx)
    items = _load(ctx, file)

    ds = dataset_stats(items)
    console.print("\n[bold]Dataset[/]")
    console.print(f"  Items: {ds['total_items']}")
    console.print(f"  With embeddings: {ds['with_embeddings']}")
    console.print(f"  Embedding dimensions: {ds['embedding_dimensions']}")
    console.print(f"  Average text length: {ds['average_text_length']}")
    if ds["categories"]:
        console.print(f"  Categories: {', '.join(ds['categories'])}")

    graph = _build_graph(ctx, sg, items, strategy)
    if not graph.nodes:
        return

    gs = sg.graph.graph_stats(graph)
    console.print("\n[bold]Graph[/]")
    console.print(f"  Nodes: {gs['node_count']}")
    console.print(f"  Links: {gs['link_count']}")
    console.print(f"  Average similarity: {gs['avg_similarity']}")
    console.print(f"  Density: {gs['density']:.4f}")
    console.print(f"  Connected: {'yes' if gs['is_connected'] else 'no'} ({gs['components']} component(s))")
    dist = gs["connection_distribution"]
    console.print(f"  Degree: avg {dist['average']}, min {dist['min']}, max {dist['max']}")
    for bucket, count in dist["distribution"].items():
        console.print(f"    {bucket}: {count}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--strategy", "-s", default=None, help="Connection strategy")
@click.option("--threshold", "-t", type=float, default=None, help="Similarity threshold")
@click.option("--max-connections", type=int, default=None, help="Links per node for top-k style strategies")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write graph JSON here")
@click.pass_context
def graph(ctx, file, strategy, threshold, max_connections, output):
    """Build a similarity graph from FILE."""
    from .export import graph_to_json

    sg = _get_context(ctx)
    items = _load(ctx, file)
    data = _build_graph(ctx, sg, items, strategy, threshold=threshold, max_connections=max_connections)

    console.print(f"[green]✓ Built graph with {len(data.nodes)} node(s) and {len(data.links)} link(s)[/]")
    if output:
        Path(output).write_text(graph_to_json(data))
        console.print(f"  → {output}")
    else:
        for link in data.links[:20]:
            console.print(f"  {link.source} ↔ {link.target} (similarity: {link.similarity:.3f})")
        if len(data.links) > 20:
            console.print(f"  [dim]... and {len(data.links) - 20} more[/]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("query")
@click.option("--strategy", "-s", default=None, help="Search strategy")
@click.option("--n", "-n", "max_results", type=int, default=None, help="Number of results")
@click.option("--case-sensitive", is_flag=True, help="Match case")
@click.option("--fields", default=None, help="Comma-separated fields: text,category,metadata")
@click.pass_context
def search(ctx, file, query, strategy, max_results, case_sensitive, fields):
    """Search the items in FILE."""
    sg = _get_context(ctx)
    items = _load(ctx, file)
    strategy = strategy or sg.config.get("default_search_strategy", "text")

    try:
        options = sg.search_options(
            max_results=max_results,
            case_sensitive=case_sensitive,
            search_fields=[f.strip() for f in fields.split(",")] if fields else None,
        )
        results = sg.search.search(strategy, items, query, options)
    except (SimGraphError, ValueError) as e:
        _fail(ctx, str(e))

    if not results:
        console.print("[yellow]No results found.[/]")
        return

    table = Table(title=f"Search Results ({strategy})")
    table.add_column("#", style="dim", width=3)
    table.add_column("ID", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Match")
    table.add_column("Preview", max_width=60)

    for i, r in enumerate(results, 1):
        preview = (r.highlights[0] if r.highlights else r.item.text[:80]).replace("\n", " ")
        table.add_row(str(i), r.item.id, f"{r.score:.3f}", r.match_type.value, preview)

    console.print(table)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("from_id")
@click.argument("to_id")
@click.option("--strategy", "-s", default=None, help="Connection strategy")
@click.pass_context
def path(ctx, file, from_id, to_id, strategy):
    """Shortest path between two items in the graph."""
    from .graph import GraphAnalytics

    sg = _get_context(ctx)
    data = _build_graph(ctx, sg, _load(ctx, file), strategy)
    for node_id in (from_id, to_id):
        if data.get_node(node_id) is None:
            _fail(ctx, f"Node not found in graph: {node_id}")
    route = GraphAnalytics(data).shortest_path(from_id, to_id)

    if route is None:
        console.print(f"[yellow]No path between {from_id} and {to_id}.[/]")
        return
    console.print(f"[green]✓ Path of {len(route) - 1} hop(s)[/]")
    console.print("  " + " → ".join(node.id for node in route))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("node_id")
@click.option("--strategy", "-s", default=None, help="Connection strategy")
@click.pass_context
def neighbors(ctx, file, node_id, strategy):
    """Direct neighbors of an item in the graph."""
    from .graph import GraphAnalytics

    sg = _get_context(ctx)
    data = _build_graph(ctx, sg, _load(ctx, file), strategy)
    hood = GraphAnalytics(data).neighborhood(node_id)

    if hood is None:
        _fail(ctx, f"Node not found in graph: {node_id}")
    if not hood.neighbors:
        console.print(f"[yellow]{node_id} has no neighbors.[/]")
        return
    console.print(f"[bold]{node_id}[/] [dim]({hood.node.category or 'uncategorized'})[/]")
    for neighbor, link in hood.neighbors:
        console.print(f"  → {neighbor.id} (similarity: {link.similarity:.3f}) {neighbor.text[:60]}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("node_id")
@click.option("--n", "-n", "max_results", type=int, default=5, help="Number of results")
@click.option("--min-similarity", type=float, default=0.5, help="Lowest similarity to report")
@click.pass_context
def similar(ctx, file, node_id, max_results, min_similarity):
    """Items most similar to NODE_ID, independent of any graph."""
    sg = _get_context(ctx)
    items = _load(ctx, file)
    target = next((item for item in items if item.id == node_id), None)
    if target is None:
        _fail(ctx, f"Item not found: {node_id}")
    if not target.has_embedding:
        _fail(ctx, f"Item {node_id} has no embedding")

    found = sg.graph.find_similar_nodes(target, items, max_results, min_similarity)
    if not found:
        console.print("[yellow]No similar items found.[/]")
        return
    for item, similarity in found:
        console.print(f"  {item.id} ({similarity:.3f}) {item.text[:60]}")


def _pipeline(sg: SimGraphContext, provider=None):
    from .embeddings import EmbeddingPipeline, OpenAIEmbeddingProvider

    if provider is None:
        provider = OpenAIEmbeddingProvider(api_key=sg.config.get("openai_api_key"))
    return EmbeddingPipeline.from_config(provider, sg.config)


@cli.command()
@click.pass_context
def check(ctx):
    """Check the API key and that the embedding service answers."""
    from .embeddings import check_connection, looks_like_api_key
    from .errors import SimGraphError

    sg = _get_context(ctx)
    provider = ctx.obj.get("provider")
    if provider is None and not looks_like_api_key(sg.config.get("openai_api_key")):
        _fail(ctx, "API key missing or malformed. OpenAI keys start with 'sk-'.")

    try:
        pipeline = _pipeline(sg, provider)
        dimensions = asyncio.run(check_connection(pipeline.provider, pipeline.model))
    except (SimGraphError, ValueError) as e:
        _fail(ctx, f"Connection check failed: {e}")

    console.print(f"[green]✓ Connected: {pipeline.model} returns {dimensions}-dimensional embeddings[/]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def estimate(ctx, file):
    """Estimate the cost of embedding FILE."""
    from .embeddings import combine_text_for_embedding, embedding_stats, estimate_cost

    sg = _get_context(ctx)
    items = _load(ctx, file)
    pending = [item for item in items if not item.has_embedding]

    cfg = sg.config.get("embedding", {})
    cost = estimate_cost(
        [combine_text_for_embedding(item) for item in pending],
        unit_price=cfg.get("unit_price", 0.00002),
        batch_size=min(cfg.get("batch_size", 50), 50),
    )
    es = embedding_stats(items)
    console.print(f"  Items: {len(items)} ({es['with_embeddings']} already embedded)")
    console.print(f"  To embed: {len(pending)}")
    console.print(f"  Estimated tokens: {cost.tokens}")
    console.print(f"  Estimated cost: ${cost.cost:.5f}")
    console.print(f"  Batches: {cost.batches} (~{cost.estimated_seconds}s)")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), required=True, help="Where to write embedded items")
@click.option("--all", "embed_all", is_flag=True, help="Re-embed items that already have an embedding")
@click.option("--yes", "-y", is_flag=True, help="Skip the cost confirmation")
@click.pass_context
def embed(ctx, file, output, embed_all, yes):
    """Generate embeddings for the items in FILE."""
    from .errors import PipelineFailed
    from .export import export_items

    sg = _get_context(ctx)
    items = _load(ctx, file)
    pending = items if embed_all else [item for item in items if not item.has_embedding]
    if not pending:
        console.print("[yellow]All items already have embeddings.[/]")
        return

    try:
        pipeline = _pipeline(sg, ctx.obj.get("provider"))
    except ValueError as e:
        _fail(ctx, str(e))

    cost = pipeline.estimate(pending)
    console.print(f"[blue]Embedding {len(pending)} item(s) in {cost.batches} batch(es), estimated cost ${cost.cost:.5f}[/]")
    if not yes and not click.confirm("Continue?", default=True):
        return

    with Progress(TextColumn("{task.description}"), BarColumn(), TextColumn("{task.percentage:>3.0f}%"), console=console) as bar:
        task = bar.add_task("Embedding", total=100)

        def on_progress(event):
            bar.update(task, completed=event.progress, description=event.message)

        try:
            result = asyncio.run(pipeline.embed_items(pending, on_progress=on_progress))
        except PipelineFailed as e:
            result, error = None, e

    if result is None:
        _fail(ctx, str(error))

    fmt = "csv" if Path(output).suffix.lower() == ".csv" else "json"
    Path(output).write_text(export_items(items, fmt, embedded_only=False))
    console.print(f"[green]✓ Embedded {result.embedded} item(s) in {result.elapsed:.1f}s[/]")
    if result.missing:
        console.print(f"  [yellow]{result.missing} item(s) did not get an embedding[/]")
    console.print(f"  → {output}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "csv"]), default="json", help="Output format")
@click.option("--output", "-o", type=click.Path(dir_okay=False), required=True, help="Output file")
@click.option("--no-embeddings", is_flag=True, help="Leave embeddings out of the export")
@click.pass_context
def export(ctx, file, fmt, output, no_embeddings):
    """Convert the items in FILE to JSON or CSV."""
    from .export import export_items

    _get_context(ctx)
    items = _load(ctx, file)
    Path(output).write_text(export_items(items, fmt, include_embeddings=not no_embeddings))
    console.print(f"[green]✓ Exported to {output}[/]")


if __name__ == "__main__":
    cli()
