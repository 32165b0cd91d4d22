"""Render static PNG charts of the health and screen-time data.

Usage:
    python wellness_viz.py [--health PATH] [--screen-time PATH] [--output-dir DIR]
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

from analytics import compute_top_apps, load_datasets  # noqa: E402
from models import HealthRecord, ScreenTimeRecord  # noqa: E402

logger = logging.getLogger(__name__)


def _health_frame(health: list[HealthRecord]) -> pd.DataFrame:
    df = pd.DataFrame([vars(r) for r in health])
    df["date"] = pd.to_datetime(df["date"])
    df = df.sort_values("date")
    df["steps_7_day_avg"] = df["steps"].rolling(window=7, min_periods=1).mean()
    df["steps_28_day_avg"] = df["steps"].rolling(window=28, min_periods=1).mean()
    return df


def _save(fig: plt.Figure, path: Path) -> Path:
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def render_charts(
    health: list[HealthRecord],
    screen_time: list[ScreenTimeRecord],
    output_dir: str | Path = "wellness_analytics",
) -> list[Path]:
    """Write the dashboard charts as PNG files.

    Args:
        health: Daily health records.
        screen_time: Per-app screen-time records.
        output_dir: Directory for the PNG files.  Created if missing.

    Returns:
        Paths of the files written.  Charts whose dataset is empty are
        skipped, so both inputs empty means nothing is written.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    sns.set_theme(style="whitegrid")
    written: list[Path] = []

    if health:
        df = _health_frame(health)

        fig, ax = plt.subplots(figsize=(15, 8))
        ax.bar(df["date"], df["steps"], alpha=0.5, color="skyblue", label="Daily Steps")
        ax.plot(df["date"], df["steps_7_day_avg"], color="red", linewidth=2, label="7-day Average")
        ax.plot(df["date"], df["steps_28_day_avg"], color="green", linewidth=2, label="28-day Average")
        ax.set_title("Daily Steps with Rolling Averages", fontsize=14, pad=20)
        ax.set_xlabel("Date")
        ax.set_ylabel("Steps")
        ax.legend()
        ax.tick_params(axis="x", rotation=45)
        written.append(_save(fig, out / "steps.png"))

        fig, ax = plt.subplots(figsize=(15, 8))
        ax.plot(df["date"], df["sleep_minutes"], color="purple", linewidth=2, label="Sleep (min)")
        ax2 = ax.twinx()
        ax2.bar(df["date"], df["workout_minutes"], alpha=0.4, color="orange", label="Workout (min)")
        ax2.grid(False)
        ax.set_title("Sleep vs Exercise", fontsize=14, pad=20)
        ax.set_xlabel("Date")
        ax.set_ylabel("Sleep (min)")
        ax2.set_ylabel("Workout (min)")
        ax.tick_params(axis="x", rotation=45)
        written.append(_save(fig, out / "sleep_vs_exercise.png"))

    if screen_time:
        st = pd.DataFrame([vars(r) for r in screen_time])
        daily = st.groupby("date", sort=True)["minutes"].sum().reset_index()
        daily["date"] = pd.to_datetime(daily["date"])

        fig, ax = plt.subplots(figsize=(15, 8))
        ax.bar(daily["date"], daily["minutes"], color="lightcoral", label="Daily Screen Time")
        ax.set_title("Daily Screen Time", fontsize=14, pad=20)
        ax.set_xlabel("Date")
        ax.set_ylabel("Minutes")
        ax.tick_params(axis="x", rotation=45)
        written.append(_save(fig, out / "screen_time.png"))

        top = pd.DataFrame(compute_top_apps(screen_time))
        fig, ax = plt.subplots(figsize=(12, 6))
        sns.barplot(data=top, x="minutes", y="app", ax=ax, color="steelblue")
        ax.set_title("Top Apps by Total Time", fontsize=14, pad=20)
        ax.set_xlabel("Minutes")
        ax.set_ylabel("")
        written.append(_save(fig, out / "top_apps.png"))

    logger.info("Wrote %d charts to %s", len(written), out)
    return written


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Render health and screen time charts as PNG files")
    parser.add_argument("--health", default="data/health_daily.json")
    parser.add_argument("--screen-time", default="data/screentime.json")
    parser.add_argument("--output-dir", "-o", default="wellness_analytics")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    health, screen_time = load_datasets(args.health, args.screen_time)
    written = render_charts(health, screen_time, args.output_dir)
    if not written:
        print("No data available; no charts written.")
        return
    for path in written:
        print(f"Saved {path}")


if __name__ == "__main__":
    main()
