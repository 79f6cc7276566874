import asyncio
import base64
import json
import logging
from pathlib import Path

import typer

from jobtrigger import config
from jobtrigger.catalog import Catalog
from jobtrigger.errors import InvalidCatalog, TriggerError
from jobtrigger.logger import configure_logging
from jobtrigger.subscriber import build_job
from jobtrigger.subscriber.event import EVENT_TYPE_ATTRIBUTE, EventClass, TriggerEvent
from jobtrigger.subscriber.handlers import RESOLVERS

logger = logging.getLogger("jobtrigger")

app = typer.Typer()


@app.callback()
def init():
    configure_logging(logger)


def event_class(name: str) -> EventClass:
    try:
        return EventClass[name]
    except KeyError:
        raise typer.BadParameter(
            f"unknown event type {name!r}, use one of "
            + ", ".join(c.name for c in EventClass)
        )


@app.command()
def serve(host: str = "0.0.0.0", port: int = 8080):
    from jobtrigger.web import create_app

    create_app().run(host=host, port=port, single_process=True, access_log=False)


@app.command()
def resolve(
    event_file: Path,
    type: str = typer.Option("periodic", "--type", help="periodic, presubmit or postsubmit"),
    catalog_path: Path = typer.Option(config.CATALOG_PATH, "--catalog"),
):
    """Resolve an event against the catalog without creating the job."""
    try:
        catalog = Catalog.from_path(catalog_path)
        event = TriggerEvent.from_payload(event_file.read_bytes())
        event.name = event.name.strip()
        spec, labels = asyncio.run(RESOLVERS[event_class(type)](catalog, None, event))
    except (InvalidCatalog, TriggerError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)

    job = build_job(spec, labels, event)
    typer.echo(job.model_dump_json(indent=2, exclude_none=True))


@app.command()
def message(
    event_file: Path,
    type: str = typer.Option("periodic", "--type", help="periodic, presubmit or postsubmit"),
):
    """Print the message that triggers the event in EVENT_FILE."""
    try:
        event = TriggerEvent.from_payload(event_file.read_bytes())
    except TriggerError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)

    msg = event.to_message()
    msg.attributes[EVENT_TYPE_ATTRIBUTE] = event_class(type).value
    typer.echo(
        json.dumps(
            {
                "attributes": msg.attributes,
                "data": base64.b64encode(msg.data).decode(),
            },
            indent=2,
        )
    )
