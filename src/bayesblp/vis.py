import re
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
DEFAULT_HEADERS = ("Parameter", "True", "Estimate", "Error")


def _strip_ansi(s: str) -> str:
    """Remove ANSI escape sequences to measure visible width."""
    return ANSI_RE.sub("", s)


def fmt(name: str) -> str:
    """Humanize snake_case identifiers."""
    return name.replace("_", " ").title()


def colour(text: str, fg: str = "") -> str:
    """Wrap text with ANSI colour codes when a colour is provided."""
    COLOURS = {
        "red": "\033[31m",
        "orange": "\033[38;5;208m",
        "yellow": "\033[33m",
        "green": "\033[32m",
    }
    reset = "\033[0m"
    return f"{COLOURS.get(fg, '')}{text}{reset}" if fg else text


def colour_error(err: float, scale: float = 1.0) -> str:
    """Green for small absolute errors relative to scale, orange then red beyond."""
    s = f"{err:+.3f}"
    if not np.isfinite(err):
        return colour(s, "red")
    rel = abs(err) / max(scale, 1e-12)
    if rel < 0.1:
        return colour(s, "green")
    elif rel < 0.3:
        return colour(s, "yellow")
    return colour(s, "orange")


def recovery_rows(frame: pd.DataFrame) -> list[list[str]]:
    """Display rows from ``diagnostics.recovery_frame``."""
    rows: list[list[str]] = []
    with_interval = frame["q05"].notna().any()
    for label, r in frame.iterrows():
        row = [
            str(label),
            f"{r['true']:.3f}",
            f"{r['estimate']:.3f}",
            colour_error(r["error"], max(abs(r["true"]), 1.0)),
        ]
        if with_interval:
            covered = colour("yes", "green") if r["covered"] else colour("no", "red")
            row += [f"[{r['q05']:.3f}, {r['q95']:.3f}]", covered]
        rows.append(row)
    return rows


def print_table(
    title: str,
    rows: list[list[str]],
    headers: Sequence[str] | None = None,
) -> None:
    """Render a simple aligned ASCII table."""
    if not rows:
        return

    header_values = list(headers) if headers is not None else list(DEFAULT_HEADERS)

    col_widths: list[int] = []
    for col_idx in range(len(header_values)):
        max_len = len(header_values[col_idx])
        for row in rows:
            vis_len = len(_strip_ansi(str(row[col_idx])))
            if vis_len > max_len:
                max_len = vis_len
        col_widths.append(max_len)

    def _fmt_cell(value: str, width: int) -> str:
        s = str(value)
        pad = max(0, width - len(_strip_ansi(s)))
        return s + " " * pad

    def _fmt_row(values: list[str]) -> str:
        return " | ".join(_fmt_cell(v, w) for v, w in zip(values, col_widths, strict=True))

    sep = "-+-".join("-" * w for w in col_widths)

    print(f"\n{title}")
    print(_fmt_row(header_values))
    print(sep)
    for row in rows:
        print(_fmt_row(row))


def plot_recovery(frame: pd.DataFrame, out_path: Path, title: str = "Parameter recovery") -> Path:
    """Scatter of estimates against true values, with 90% intervals when available."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    true = frame["true"].to_numpy()
    est = frame["estimate"].to_numpy()
    lo, hi = min(true.min(), est.min()), max(true.max(), est.max())
    pad = 0.05 * (hi - lo if hi > lo else 1.0)

    plt.figure(figsize=(5, 5))
    if frame["q05"].notna().all():
        yerr = np.vstack([est - frame["q05"].to_numpy(), frame["q95"].to_numpy() - est])
        plt.errorbar(true, est, yerr=yerr, fmt="o", ms=4, alpha=0.8, capsize=2)
    else:
        plt.scatter(true, est, s=16, alpha=0.8)
    plt.plot([lo - pad, hi + pad], [lo - pad, hi + pad], "k--", lw=1)
    plt.xlabel("True value")
    plt.ylabel("Estimate")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_path, dpi=200)
    plt.close()
    return out_path


def plot_shocks(true_xi: np.ndarray, est_xi: np.ndarray, out_path: Path) -> Path:
    """Recovered vs true demand shocks, one point per product-market."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    true_xi = np.ravel(true_xi)
    est_xi = np.ravel(est_xi)
    lo = min(true_xi.min(), est_xi.min())
    hi = max(true_xi.max(), est_xi.max())

    plt.figure(figsize=(5, 5))
    plt.scatter(true_xi, est_xi, s=8, alpha=0.6)
    plt.plot([lo, hi], [lo, hi], "k--", lw=1)
    plt.xlabel("True xi")
    plt.ylabel("Recovered xi")
    plt.title("Demand shock recovery")
    plt.tight_layout()
    plt.savefig(out_path, dpi=200)
    plt.close()
    return out_path
