from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
import tempfile
from pathlib import Path
from typing import Any

# Ensure rep, calibration and report logging is visible when running under uvicorn
logging.getLogger("imperfect_coach.report").setLevel(logging.INFO)
logging.getLogger("imperfect_coach.pullup").setLevel(logging.INFO)
logging.getLogger("imperfect_coach.jump").setLevel(logging.INFO)
logging.getLogger("imperfect_coach.readiness").setLevel(logging.INFO)

from fastapi import Body, FastAPI, HTTPException
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

from imperfect_coach.coach import CoachMode, WorkoutCoach
from imperfect_coach.keypoints import PoseFrame
from imperfect_coach.readiness import ReadinessConfig, ReadinessEvaluator
from imperfect_coach.report import run_report, save_metrics
from imperfect_coach.results import Exercise

logger = logging.getLogger("web_app")

app = FastAPI(title="Imperfect Coach")

# One worker so a connection's frames are processed strictly in order.
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_coach")


def _extract_body(html: str) -> str:
    lower = html.lower()
    if "<body" in lower and "</body>" in lower:
        start = lower.find("<body")
        start = lower.find(">", start) + 1
        end = lower.rfind("</body>")
        return html[start:end].strip()
    return html


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{title}</title>
    <style>
      body {{ font-family: -apple-system, BlinkMacSystemFont, sans-serif; background: #07090d; color: #f0f4f8; margin: 0; }}
      main {{ max-width: 760px; margin: 0 auto; padding: 32px 20px; }}
      .card {{ background: #0f1319; border: 1px solid #1e293b; border-radius: 12px; padding: 20px; margin-top: 16px; }}
      code {{ color: #22d3ee; }}
      .muted {{ color: #94a3b8; }}
    </style>
  </head>
  <body><main>{body}</main></body>
</html>"""


def _parse_exercise(value: Any) -> Exercise:
    try:
        return Exercise(value or Exercise.PULLUPS.value)
    except ValueError:
        raise ValueError(f"unknown exercise: {value!r}") from None


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    body = """
    <h1>Imperfect Coach</h1>
    <p class="muted">Rep counting and form scoring for pull-ups and jumps from pose keypoints.</p>
    <div class="card">
      <h3>Endpoints</h3>
      <ul>
        <li><code>GET /health</code></li>
        <li><code>POST /readiness</code> with <code>{"exercise": "jumps", "frame": {...}}</code></li>
        <li><code>WS /ws/live?exercise=pullups&amp;mode=training</code>: send keypoint frames,
            <code>{"type": "reset"}</code> or <code>{"type": "stop"}</code></li>
      </ul>
    </div>
    """
    return HTMLResponse(_page("Imperfect Coach", body))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/readiness")
def readiness(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """One-shot readiness check for a single frame; no calibration state is kept."""
    try:
        exercise = _parse_exercise(payload.get("exercise"))
        frame = PoseFrame.from_dict(payload.get("frame") or {})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    evaluator = ReadinessEvaluator(ReadinessConfig.for_exercise(exercise))
    return evaluator.evaluate(frame).to_dict()


def _session_report(coach: WorkoutCoach, save: bool) -> dict[str, Any]:
    summary = coach.summary()
    out: dict[str, Any] = {"type": "summary", "summary": summary, "html": None}
    if save:
        with tempfile.TemporaryDirectory() as tmpdir:
            metrics_path = save_metrics(summary, tmpdir, "live_metrics.json")
            report_path = Path(run_report(metrics_path, tmpdir, source="live-web"))
            out["html"] = _extract_body(report_path.read_text()) if report_path.exists() else ""
    return out


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    params = websocket.query_params
    try:
        exercise = _parse_exercise(params.get("exercise"))
        mode = CoachMode(params.get("mode") or CoachMode.TRAINING.value)
    except ValueError as e:
        await websocket.send_text(json.dumps({"type": "error", "detail": str(e)}))
        await websocket.close(code=1003)
        return

    coach = WorkoutCoach(exercise, mode=mode)
    loop = asyncio.get_running_loop()
    frames = 0
    logger.info("live: %s session started (mode=%s)", exercise.value, mode.value)
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"type": "error", "detail": "invalid JSON"}))
                continue
            kind = payload.get("type", "frame") if isinstance(payload, dict) else "frame"

            if kind == "reset":
                coach.reset()
                await websocket.send_text(json.dumps({"type": "reset", "rep_count": 0}))
                continue
            if kind == "stop":
                logger.info("live: stop received, rep_count=%s", coach.rep_count)
                report = await loop.run_in_executor(
                    _LIVE_EXECUTOR, _session_report, coach, bool(payload.get("save", True))
                )
                await websocket.send_text(json.dumps(report))
                await websocket.close()
                return

            try:
                raw = payload.get("frame", payload) if isinstance(payload, dict) else payload
                frame = PoseFrame.from_dict(raw)
            except ValueError as e:
                await websocket.send_text(json.dumps({"type": "error", "detail": str(e)}))
                continue

            update = await loop.run_in_executor(_LIVE_EXECUTOR, coach.process, frame)
            frames += 1
            if frames % 60 == 0:
                logger.info("live: frame %s (rep_count=%s)", frames, coach.rep_count)
            out = update.to_dict()
            out["type"] = "update"
            await websocket.send_text(json.dumps(out))
    except WebSocketDisconnect:
        logger.info("live: client disconnected (frames=%s, rep_count=%s)", frames, coach.rep_count)
        return


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
