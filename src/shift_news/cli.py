"""Command-line entry points for the story pipeline."""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich import print as rprint

from .config import get_settings
from .log import configure_logging
from .models import Lang, RawEntry
from .pipeline import PipelineResult, build_stories, run_pipeline
from .schema import validate_story_payload

app = typer.Typer(
    help="Aggregate bilingual news feeds into canonical EN/AR stories."
)


def _load_entries(path: Path) -> List[RawEntry]:
    """Read a JSON list of raw entries (title, description, link, pubDate, ...)."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise typer.BadParameter("The JSON file must contain a list of entries.")

    entries: List[RawEntry] = []
    for idx, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise typer.BadParameter(f"Entry {idx} is not an object.")
        try:
            lang = Lang(str(raw.get("lang", "")).upper())
        except ValueError as exc:
            raise typer.BadParameter(f"Entry {idx} has lang {raw.get('lang')!r}; use EN or AR.") from exc
        entries.append(
            RawEntry(
                title=raw.get("title") or "",
                description=raw.get("description") or "",
                link=raw.get("link") or raw.get("url") or "",
                pub_date=raw.get("pubDate") or raw.get("publishedAt"),
                image_url=raw.get("imageUrl"),
                source_name=raw.get("sourceName") or raw.get("source") or "",
                lang=lang,
            )
        )
    return entries


def _summary_line(result: PipelineResult) -> str:
    return (
        f"data={result.data_source} items={result.item_count} "
        f"clusters={result.cluster_count} stories={result.story_count} "
        f"translation={result.translation} translated={result.translated_count}"
    )


def _write_output(out_path: Optional[Path], payload: List[dict[str, Any]]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if out_path is None:
        print(text)
        return
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8")
    rprint(f"[cyan]Wrote output to {out_path}[/cyan]")


def _emit(result: PipelineResult, out: Optional[Path]) -> None:
    payload = validate_story_payload(result.payload())
    rprint(f"[green]{_summary_line(result)}[/green]")
    _write_output(out, payload)


@app.command("fetch")
def fetch_command(
    translate: bool = typer.Option(
        False, "--translate", "-t", help="Fill missing language sides via OpenAI."
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Write the story list here instead of stdout."
    ),
):
    """Fetch every configured source and print the canonical story list."""
    settings = get_settings()
    configure_logging("cli", level=settings.log_level)
    result = asyncio.run(run_pipeline(settings, translate=translate))
    _emit(result, out)


@app.command("cluster")
def cluster_command(
    entries: Path = typer.Argument(..., help="JSON file holding a list of raw entries."),
    translate: bool = typer.Option(
        False, "--translate", "-t", help="Fill missing language sides via OpenAI."
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Write the story list here instead of stdout."
    ),
):
    """Run normalization, clustering and canonicalization over saved entries."""
    settings = get_settings()
    configure_logging("cli", level=settings.log_level)
    result = build_stories(_load_entries(entries), settings, translate=translate)
    _emit(result, out)


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("SHIFT_HOST", "0.0.0.0"), help="Bind address."),
    port: int = typer.Option(int(os.getenv("SHIFT_PORT", "8000")), help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
):
    """Serve /api/stories with uvicorn."""
    import uvicorn

    uvicorn.run("shift_news.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
