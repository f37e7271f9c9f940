"""render-scraper command line interface.

Renders each URL in turn and prints every extracted record as one JSON line
on stdout. Logs go to stderr. Exits 1 if any URL ended in a failure.
"""

import asyncio
import json
from pathlib import Path

import typer

from .logging_config import setup_logging
from .pipeline import ScrapePipeline
from .settings import load_scrape_config
from .storage import save_outcomes

app = typer.Typer(help="Render pages in a headless browser and extract their heading and spans.")


@app.command()
def scrape(
    urls: list[str] = typer.Argument(..., help="Fully-qualified URLs to render, one session each."),
    timeout_ms: int | None = typer.Option(None, "--timeout-ms", help="Navigation timeout per page (ms)."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to a scrape_config.yaml."),
    save: str | None = typer.Option(None, "--save", help="Write <name>.csv / <name>.jsonl under results_dir."),
    log_level: str | None = typer.Option(None, "--log-level", help="Override the configured log level."),
) -> None:
    cfg = load_scrape_config(config)
    setup_logging(log_level or cfg.log_level)

    if timeout_ms is not None and timeout_ms <= 0:
        raise typer.BadParameter("must be > 0", param_hint="--timeout-ms")

    pipeline = ScrapePipeline.from_env(cfg)
    outcomes = asyncio.run(pipeline.run_many(urls, timeout_ms))

    for outcome in outcomes:
        if outcome.ok:
            typer.echo(json.dumps(outcome.content.to_dict(), ensure_ascii=False))

    if save:
        save_outcomes(outcomes, save, cfg.results_dir)

    failed = [o for o in outcomes if not o.ok]
    if failed:
        for outcome in failed:
            typer.echo(f"{outcome.url}: {outcome.error.kind}: {outcome.error.message}", err=True)
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
