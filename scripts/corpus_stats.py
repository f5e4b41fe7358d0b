"""Print corpus statistics for the JSON chapter trees under the output dir."""

import argparse
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from harvest.knowledge.stats import CorpusStats, collect_stats
from observability.logging import configure_logging
from settings import get_settings

METRICS = ("files", "pages", "sentences", "words")


def render(stats: CorpusStats) -> Table:
    t = Table(title="Corpus stats", box=box.SIMPLE_HEAVY)
    t.add_column("Metric")
    t.add_column("Total", justify="right")
    t.add_column("Scripture (N, O)", justify="right")
    t.add_column("Scripture %", justify="right")
    for metric in METRICS:
        t.add_row(
            metric.capitalize(),
            str(getattr(stats.total, metric)),
            str(getattr(stats.scripture, metric)),
            f"{stats.share(metric):.1f}%",
        )
    t.add_row(
        "Words / sentence",
        f"{stats.total.words_per_sentence:.2f}",
        f"{stats.scripture.words_per_sentence:.2f}",
        "",
    )
    if stats.skipped:
        t.caption = f"{len(stats.skipped)} invalid tree file(s) skipped"
    return t


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--corpus-dir", type=Path, default=settings.output_dir)
    args = parser.parse_args()

    configure_logging(settings.log_level)
    Console().print(render(collect_stats(args.corpus_dir)))


if __name__ == "__main__":
    main()
