"""Chart one author's cumulative score over time.

Two targets:
  - ASCII (default): filled area chart drawn in the terminal
  - window (--nice): matplotlib figure, same two series
"""

from __future__ import annotations

import logging
import shutil
import sys
from bisect import bisect_right
from datetime import datetime, timezone
from typing import TextIO

from .models import TimeSeries

log = logging.getLogger(__name__)

SCORE_LABEL = "Score"
LOSS_LABEL = "Score Loss"
Y_LABEL = "Points"

_SCORE_CELL = "#"
_LOSS_CELL = ":"


def _date(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


# ---------------------------------------------------------------------------
# ASCII target
# ---------------------------------------------------------------------------


def _resample(series: TimeSeries, columns: int) -> list[tuple[int, int]]:
    """Step-sample (score, score_with_loss) at evenly spaced times."""
    x0, x1 = series.x[0], series.x[-1]
    span = x1 - x0
    samples: list[tuple[int, int]] = []
    for col in range(columns):
        t = x0 + span * col / max(columns - 1, 1)
        i = max(bisect_right(series.x, t) - 1, 0)
        samples.append((series.score[i], series.score_with_loss[i]))
    return samples


def render_ascii(series: TimeSeries, width: int = 80, height: int = 20) -> str:
    """Render the series as a text area chart.

    '#' fills up to the score, ':' fills the band between score and
    score + loss.
    """
    if not series.plottable:
        raise ValueError("a chart needs at least two points")

    y_max = max(max(series.score_with_loss), 1)
    label_width = max(len(str(y_max)), len(Y_LABEL))
    columns = max(width - label_width - 2, 10)
    rows = max(height - 3, 3)
    samples = _resample(series, columns)

    lines = [
        f"{Y_LABEL:>{label_width}}  {_SCORE_CELL} {SCORE_LABEL}   "
        f"{_LOSS_CELL} {LOSS_LABEL}   ({series.author})"
    ]
    for r in range(rows):
        level = y_max * (rows - r - 0.5) / rows
        cells = []
        for score_value, loss_value in samples:
            if score_value >= level:
                cells.append(_SCORE_CELL)
            elif loss_value >= level:
                cells.append(_LOSS_CELL)
            else:
                cells.append(" ")
        if r == 0:
            label = str(y_max)
        elif r == rows - 1:
            label = "0"
        else:
            label = ""
        lines.append(f"{label:>{label_width}} |" + "".join(cells))

    lines.append(" " * label_width + " +" + "-" * columns)
    first = _date(series.x[0]).strftime("%Y-%m-%d")
    last = _date(series.x[-1]).strftime("%Y-%m-%d")
    gap = max(columns - len(first) - len(last), 1)
    lines.append(" " * (label_width + 2) + first + " " * gap + last)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Window target
# ---------------------------------------------------------------------------


def plot_window(series: TimeSeries) -> None:
    """Show the series in a matplotlib window."""
    # Deferred: pulling in pyplot selects a GUI backend
    import matplotlib.dates as mdates
    import matplotlib.pyplot as plt

    dates = [_date(t) for t in series.x]
    fig, ax = plt.subplots(figsize=(11, 6))
    ax.fill_between(dates, 0, series.score_with_loss, alpha=0.35,
                    color="#f87171", label=LOSS_LABEL)
    ax.fill_between(dates, 0, series.score, alpha=0.8,
                    color="#10b981", label=SCORE_LABEL)
    ax.set_title(str(series.author))
    ax.set_xlabel("Date")
    ax.set_ylabel(Y_LABEL)
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    ax.grid(True, linestyle="--", linewidth=0.6, alpha=0.35)
    ax.legend(loc="upper left", frameon=False)
    fig.autofmt_xdate()
    fig.tight_layout()
    plt.show()


def plot(series: TimeSeries, nice: bool = False, stream: TextIO | None = None) -> None:
    """Render series to the terminal, or to a window when nice is set."""
    log.debug("Plotting %d points for %s", len(series), series.author)
    if nice:
        plot_window(series)
        return
    size = shutil.get_terminal_size()
    print(render_ascii(series, width=size.columns, height=size.lines), file=stream or sys.stdout)
