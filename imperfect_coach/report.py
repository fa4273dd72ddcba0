"""
Write the session metrics JSON, report.html and score plots.
"""
from __future__ import annotations

import html
import json
import logging
import os
from typing import Any, Optional

import numpy as np

from .feedback import PHRASES

logger = logging.getLogger(__name__)

ISSUE_LABELS = {
    "asymmetry": "Uneven pull",
    "partial_bottom_rom": "Arms not fully extended at the bottom",
    "partial_top_rom": "Chin short of the bar",
    "low_jump": "Low jump",
    "stiff_landing": "Stiff landing",
    "asymmetric_landing": "Uneven landing",
}


def to_json_serializable(obj: Any) -> Any:
    """Convert numpy scalars/arrays and tuples nested in dicts/lists to native Python types."""
    if isinstance(obj, dict):
        return {k: to_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_serializable(v) for v in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


def save_metrics(summary: dict[str, Any], output_dir: str, name: str = "session_metrics.json") -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, name)
    with open(path, "w") as f:
        json.dump(to_json_serializable(summary), f, indent=2)
    logger.info("session metrics: %s", path)
    return path


def load_metrics(metrics_path: str) -> dict[str, Any]:
    with open(metrics_path) as f:
        return json.load(f)


def _tips(issue_counts: dict[str, int], rep_count: int) -> list[str]:
    """One tip per issue seen on at least 30% of reps, most frequent first."""
    tips = []
    for issue, n in sorted(issue_counts.items(), key=lambda kv: -kv[1]):
        if rep_count and n / rep_count >= 0.3 and issue in PHRASES:
            tips.append(PHRASES[issue][0])
    if not tips:
        tips.append(PHRASES["general"][0])
    return tips


def _overall(avg: float) -> str:
    if avg >= 85:
        return "Great form overall."
    if avg >= 60:
        return "Decent form with a few consistency issues."
    return "Form needs attention; focus on the cues below."


def build_report_html(data: dict[str, Any], source: str = "live") -> str:
    reps = data.get("reps", [])
    rep_count = data.get("rep_count", len(reps))
    exercise = str(data.get("exercise", "workout"))
    title = exercise.replace("_", " ").title()

    lines = [
        "<!DOCTYPE html>",
        f"<html><head><meta charset='utf-8'><title>{html.escape(title)} Report</title></head><body>",
        f"<h1>{html.escape(title)} Report</h1>",
        f"<p><b>Source:</b> {html.escape(source)}</p>",
        f"<p><b>Total reps:</b> {rep_count}</p>",
        f"<p><b>Duration:</b> {html.escape(str(data.get('duration', '00:00')))}</p>",
    ]

    if reps:
        avg = float(data.get("average_score", np.mean([r.get("score", 0) for r in reps])))
        issue_counts = data.get("issue_counts") or {}
        lines.append("<h2>Quick summary</h2>")
        lines.append(f"<p><b>Overall:</b> {_overall(avg)}</p>")
        lines.append(f"<p><b>Average form score:</b> {avg:.1f}</p>")
        timing_avg = data.get("timing_avg_s")
        timing_std = data.get("timing_std_s")
        if timing_avg:
            lines.append(f"<p><b>Average rep time:</b> {timing_avg:.2f}s (&plusmn;{timing_std or 0:.2f}s)</p>")
        lines.append(f"<p><b>Best good-form streak:</b> {data.get('best_streak', 0)}</p>")
        if issue_counts:
            items = "".join(
                f"<li>{html.escape(ISSUE_LABELS.get(k, k))}: {v}</li>" for k, v in sorted(issue_counts.items())
            )
            lines.append(f"<p><b>Issues:</b></p><ul>{items}</ul>")
        lines.append("<p><b>Tips:</b> " + html.escape(" ".join(_tips(issue_counts, len(reps)))) + "</p>")
    else:
        lines.append("<p><b>Note:</b> No completed reps recorded.</p>")

    achievements = data.get("achievements") or []
    if achievements:
        lines.append("<h2>Achievements</h2><ul>")
        lines.extend(f"<li>{html.escape(a)}</li>" for a in achievements)
        lines.append("</ul>")

    lines.append("<h2>Per-rep metrics</h2>")
    lines.append("<table border='1'><tr><th>Rep</th><th>Score</th><th>Issues</th><th>Details</th></tr>")
    for i, r in enumerate(reps, start=1):
        issues = ", ".join(ISSUE_LABELS.get(x, x) for x in r.get("issues", [])) or "--"
        details = ", ".join(
            f"{k}={v:.2f}" if isinstance(v, (int, float)) else f"{k}={v}"
            for k, v in (r.get("details") or {}).items()
        )
        lines.append(
            f"<tr><td>{i}</td><td>{r.get('score', '--')}</td>"
            f"<td>{html.escape(issues)}</td><td>{html.escape(details) or '--'}</td></tr>"
        )
    lines.append("</table></body></html>")
    return "\n".join(lines)


def plot_scores(reps: list[dict[str, Any]], output_dir: str) -> Optional[str]:
    """Score by rep as a PNG; None when there is nothing to plot or drawing fails."""
    scores = [r.get("score") for r in reps if r.get("score") is not None]
    if not scores:
        return None
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = os.path.join(output_dir, "score_by_rep.png")
    try:
        plt.figure(figsize=(6, 4))
        plt.plot(range(1, len(scores) + 1), scores, "o-")
        plt.ylim(0, 105)
        plt.xlabel("Rep")
        plt.ylabel("Form score")
        plt.title("Form score by rep")
        plt.savefig(path, dpi=100)
    except (OSError, ValueError, RuntimeError) as e:
        logger.warning("could not write score plot: %s", e)
        return None
    finally:
        plt.close()
    return path


def run_report(metrics_path: str, output_dir: str, source: str = "live") -> str:
    """Build report.html (and the score plot) from a saved session metrics file."""
    os.makedirs(output_dir, exist_ok=True)
    data = load_metrics(metrics_path)
    reps = data.get("reps", [])
    logger.info(
        "report input: source=%s metrics_path=%s rep_count=%s",
        source, metrics_path, data.get("rep_count", len(reps)),
    )
    for i, r in enumerate(reps, start=1):
        logger.debug("  rep[%s] score=%s issues=%s", i, r.get("score"), r.get("issues"))

    report_path = os.path.join(output_dir, "report.html")
    with open(report_path, "w") as f:
        f.write(build_report_html(data, source))
    plot_scores(reps, output_dir)
    logger.info("report: %s", report_path)
    return report_path
