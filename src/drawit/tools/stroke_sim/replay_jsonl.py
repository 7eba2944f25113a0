from __future__ import annotations

import argparse
import json
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path

REPLAYABLE = ("draw", "clear")


def load_events(jsonl_path: Path) -> list[tuple[int | None, str, dict]]:
    """
    Read recorded strokes.

    Expected JSONL format:
      - record_jsonl.py output: {"ts": <ms>, "event": "draw", "data": {...}}
      - or raw stroke payloads per line: {"from": {...}, "to": {...}}
    """
    events: list[tuple[int | None, str, dict]] = []
    for line in jsonl_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        obj = json.loads(line)
        if not isinstance(obj, dict):
            continue
        if "event" in obj:
            if obj["event"] not in REPLAYABLE:
                continue
            ts = obj.get("ts")
            data = obj.get("data") if isinstance(obj.get("data"), dict) else {}
            events.append((int(ts) if isinstance(ts, (int, float)) else None, obj["event"], data))
        elif "from" in obj and "to" in obj:
            events.append((None, "draw", obj))
    return events


def post_action(base_url: str, player_id: str, kind: str, payload: dict) -> dict:
    req = urllib.request.Request(
        base_url.rstrip("/") + "/api/action",
        data=json.dumps({"playerId": player_id, "type": kind, "payload": payload}).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        # 4xx answers still carry {"ok": false, "message": ...}
        try:
            body = json.loads(e.read().decode("utf-8"))
        except ValueError:
            body = None
        if isinstance(body, dict) and "ok" in body:
            return body
        return {"ok": False, "message": f"HTTP {e.code}"}


def replay(
    events: list[tuple[int | None, str, dict]],
    send: Callable[[str, dict], dict],
    *,
    speed: float = 1.0,
    default_dt_ms: int = 0,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Send events in order, keeping recorded gaps (scaled by `speed`). Returns accepted count."""
    accepted = 0
    prev_ts: int | None = None
    for ts, kind, payload in events:
        if ts is not None and prev_ts is not None:
            dt_ms = max(0, ts - prev_ts)
        else:
            dt_ms = default_dt_ms
        prev_ts = ts if ts is not None else prev_ts
        if dt_ms:
            sleep((dt_ms / 1000.0) / max(0.01, speed))

        resp = send(kind, payload)
        if resp.get("ok"):
            accepted += 1
        else:
            print(f"[replay] {kind} rejected: {resp.get('message')}")
    return accepted


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay recorded strokes as the current drawer.")
    ap.add_argument("--base", default="http://127.0.0.1:3000", help="Server base URL")
    ap.add_argument("--player", required=True, help="Player id of the drawer")
    ap.add_argument("--in", dest="inp", required=True, help="Input JSONL path")
    ap.add_argument("--speed", type=float, default=1.0, help="Speed multiplier (2.0 = 2x faster)")
    ap.add_argument("--default-dt-ms", type=int, default=0, help="Delay between events if no timestamps")
    args = ap.parse_args()

    events = load_events(Path(args.inp))
    n = replay(
        events,
        lambda kind, payload: post_action(args.base, args.player, kind, payload),
        speed=args.speed,
        default_dt_ms=args.default_dt_ms,
    )
    print(f"[replay] {n}/{len(events)} events accepted")


if __name__ == "__main__":
    main()
