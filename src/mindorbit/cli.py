"""MindOrbit CLI."""

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError

from .config import Settings, get_settings
from .logging_config import setup_colored_logging


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        click.echo(f"Error loading settings: {e}", err=True)
        sys.exit(1)


def _open_knowledge_base(settings: Settings):
    from .knowledge import Indexer, JsonItemStore, KnowledgeBase

    knowledge_base = KnowledgeBase(JsonItemStore(settings.items_path))
    knowledge_base.subscribe(Indexer(settings.index_path).regenerate)
    return knowledge_base


def _format_time(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """MindOrbit - capture, connect and question your personal knowledge."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_colored_logging(verbose)


@cli.command()
def init():
    """Create the data directory and an example .env file."""
    settings = _load_settings()

    for d in (settings.data_dir, settings.inbox_path):
        d.mkdir(parents=True, exist_ok=True)
        click.echo(f"  Created: {d}/")

    env_example = Path.cwd() / ".env.example"
    if not env_example.exists():
        env_example.write_text(
            """# API key for an OpenAI-compatible endpoint (required for analysis and chat)
OPENAI_API_KEY=sk-...

# Optional
# MINDORBIT_OPENAI_MODEL=gpt-4o-mini
# MINDORBIT_OPENAI_BASE_URL=https://ark.cn-beijing.volces.com/api/v3
# MINDORBIT_KEYWORD_FILTER=false
"""
        )
        click.echo("  Created: .env.example")

    click.echo("")
    click.echo("Next steps:")
    click.echo("  1. Copy .env.example to .env and add your API key")
    click.echo("  2. Run 'orbit add \"some thought\"' or drop files into the Inbox")
    click.echo("  3. Run 'orbit serve' to browse the graph and chat")


@cli.command()
@click.argument("text", required=False)
@click.option("--url", "is_url", is_flag=True, help="Treat the content as URL content")
@click.option(
    "--file", "file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read content from a file",
)
def add(text, is_url, file_path):
    """Capture TEXT (or a file, or stdin) as a new knowledge item."""
    from .engine import Processor
    from .errors import CaptureError
    from .knowledge import ItemType

    if file_path:
        text = file_path.read_text(encoding="utf-8", errors="ignore")
    elif text is None or text == "-":
        text = click.get_text_stream("stdin").read()

    settings = _load_settings()
    processor = Processor(settings, _open_knowledge_base(settings))
    item_type = ItemType.URL if is_url else ItemType.TEXT

    try:
        result = asyncio.run(processor.capture(text, item_type))
    except CaptureError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.alert:
        click.echo(result.alert, err=True)
    if not result.created:
        sys.exit(1)

    item = result.item
    click.echo(f"Created: {item.title} [{item.category}] ({item.id})")


@cli.command("list")
@click.option("--category", "-c", default=None, help="Only show this category")
@click.option("--markdown", is_flag=True, help="Print the knowledge map as markdown")
def list_items(category, markdown):
    """List stored knowledge items."""
    from .knowledge import render_index

    settings = _load_settings()
    items = _open_knowledge_base(settings).items
    if category:
        items = tuple(i for i in items if i.category == category)

    if markdown:
        click.echo(render_index(items))
        return

    if not items:
        click.echo('No knowledge stored yet. Use "orbit add" to capture some.')
        return

    for item in items:
        tags = " ".join(f"#{t}" for t in item.tags)
        click.echo(f"{item.id}  [{item.category}] {item.title}  {tags}".rstrip())

    click.echo("")
    categories = {i.category for i in items}
    click.echo(f"Nodes: {len(items)} | Categories: {len(categories)}")


@cli.command()
@click.argument("item_id")
def show(item_id):
    """Show a single item in full."""
    settings = _load_settings()
    item = _open_knowledge_base(settings).get(item_id)
    if item is None:
        click.echo(f"Item not found: {item_id}", err=True)
        sys.exit(1)

    click.echo(item.title)
    click.echo("=" * len(item.title))
    click.echo(f"Category: {item.category}")
    click.echo(f"Type:     {item.type.value}")
    click.echo(f"Created:  {_format_time(item.created_at)}")
    click.echo(f"Tags:     {', '.join(item.tags)}")
    click.echo("")
    click.echo(item.summary)
    click.echo("")
    click.echo(item.content)


@cli.command()
@click.argument("item_id")
def delete(item_id):
    """Delete an item by id."""
    settings = _load_settings()
    if not _open_knowledge_base(settings).delete(item_id):
        click.echo(f"Item not found: {item_id}", err=True)
        sys.exit(1)
    click.echo(f"Deleted: {item_id}")


@cli.command()
@click.argument("question")
def ask(question):
    """Ask a single question about your knowledge."""
    from .chat import ChatSession
    from .llm import OpenAIClient

    settings = _load_settings()
    session = ChatSession(_open_knowledge_base(settings), OpenAIClient(settings), settings)

    try:
        reply = asyncio.run(session.ask(question))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(reply.text)


@cli.command()
def chat():
    """Chat interactively with Orbit. Type 'exit' to quit."""
    from .chat import ChatSession
    from .llm import OpenAIClient

    settings = _load_settings()
    session = ChatSession(_open_knowledge_base(settings), OpenAIClient(settings), settings)
    click.echo(f"Orbit: {session.last_message.text}")

    async def loop():
        while True:
            try:
                question = click.prompt("You", prompt_suffix="> ")
            except (EOFError, click.Abort):
                break
            if question.strip().lower() in {"exit", "quit"}:
                break
            if not question.strip():
                continue
            reply = await session.ask(question)
            click.echo(f"Orbit: {reply.text}")

    asyncio.run(loop())


@cli.command()
@click.option("--layout/--no-layout", default=True, help="Run the force layout to completion")
@click.option("--ticks", default=300, show_default=True, help="Maximum simulation ticks")
def graph(layout, ticks):
    """Print the relation graph (and node positions) as JSON."""
    from .graph import EMPTY_GRAPH_MESSAGE, ForceSimulation, build_graph

    settings = _load_settings()
    relation_graph = build_graph(_open_knowledge_base(settings).items)

    if relation_graph.is_empty:
        click.echo(EMPTY_GRAPH_MESSAGE, err=True)

    data = relation_graph.to_dict()
    if layout:
        simulation = ForceSimulation(
            relation_graph, width=settings.layout_width, height=settings.layout_height
        )
        data["ticks"] = simulation.step_until_stable(max_ticks=ticks)
        data["positions"] = {
            node_id: {"x": round(x, 2), "y": round(y, 2)}
            for node_id, (x, y) in simulation.positions().items()
        }

    click.echo(json.dumps(data, indent=2))


@cli.command()
def rediscover():
    """Resurface a random item from your knowledge base."""
    settings = _load_settings()
    item = _open_knowledge_base(settings).random_item()
    if item is None:
        click.echo("Nothing to rediscover yet.")
        return
    click.echo(f"Rediscover this: {item.title} [{item.category}]")
    click.echo(f"  {item.summary}")


@cli.command()
@click.option("--port", "-p", default=None, type=int, help="Port to run on")
def serve(port):
    """Start the dashboard API."""
    import uvicorn

    from .dashboard import create_app

    settings = _load_settings()
    app = create_app(settings)

    run_port = port or settings.port
    click.echo(f"Starting dashboard at http://{settings.host}:{run_port}")
    uvicorn.run(app, host=settings.host, port=run_port, log_level="info")


@cli.command()
def watch():
    """Capture files dropped into the inbox folder."""
    from .engine import FileWatcher, Processor

    settings = _load_settings()
    processor = Processor(settings, _open_knowledge_base(settings))
    watcher = FileWatcher(settings, processor)

    click.echo(f"Watching {settings.inbox_path} ...")
    try:
        asyncio.run(watcher.start())
    except KeyboardInterrupt:
        click.echo("\nStopping watcher...")


@cli.command()
@click.pass_context
def start(ctx):
    """Start the inbox watcher and dashboard together."""
    from .coordinator import ServiceCoordinator

    settings = _load_settings()
    coordinator = ServiceCoordinator(settings, verbose=ctx.obj.get("verbose", False))

    try:
        asyncio.run(coordinator.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
