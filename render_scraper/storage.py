import logging
from pathlib import Path

import pandas as pd

from .models import ScrapeOutcome

logger = logging.getLogger(__name__)

RESULTS_DIR = Path("results")


def save_outcomes(outcomes: list[ScrapeOutcome], name: str, results_dir: str | Path | None = None) -> list[Path]:
    """
    Persist a run under <results_dir>/<name>.csv and <name>.jsonl.

    A relative results_dir is taken from the current working directory.

    The CSV holds one summary row per URL (successes and failures); the JSONL
    holds one extracted record per successful URL. Nothing is written for an
    empty run. Returns the paths written.
    """
    if not outcomes:
        return []

    out_dir = Path(results_dir) if results_dir is not None else RESULTS_DIR
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []

    summary = pd.DataFrame([o.to_row() for o in outcomes])
    csv_path = out_dir / f"{name}.csv"
    summary.to_csv(csv_path, index=False)
    written.append(csv_path)

    records = pd.DataFrame([o.content.to_dict() for o in outcomes if o.ok])
    if not records.empty:
        jsonl_path = out_dir / f"{name}.jsonl"
        records.to_json(jsonl_path, orient="records", lines=True, force_ascii=False)
        written.append(jsonl_path)

    for path in written:
        logger.info("saved %s", path)
    return written
