from __future__ import annotations

import argparse
import json
import time
import urllib.parse
import urllib.request
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO


def _now_ms() -> int:
    return int(time.time() * 1000)


def iter_sse(lines: Iterator[str]) -> Iterator[tuple[str, dict]]:
    """Yield (event, data) pairs from raw Server-Sent Events lines."""
    event = "message"
    data: list[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if data:
                yield event, json.loads("\n".join(data))
            event, data = "message", []
        elif line.startswith(":"):
            continue
        elif line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:") :].strip())


def record_stream(lines: Iterator[str], out: TextIO, *, echo: bool = False, skip_ping: bool = True) -> int:
    n = 0
    for event, data in iter_sse(lines):
        if skip_ping and event == "ping":
            continue
        if echo:
            print(f"[record] event={event} data={data}")
        out.write(json.dumps({"ts": _now_ms(), "event": event, "data": data}, ensure_ascii=False) + "\n")
        out.flush()
        n += 1
    return n


def record(base_url: str, player_id: str, out_path: Path, *, echo: bool) -> None:
    url = base_url.rstrip("/") + "/api/stream?" + urllib.parse.urlencode({"playerId": player_id})
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("a", encoding="utf-8") as f:
        with urllib.request.urlopen(url) as resp:
            lines = (raw.decode("utf-8", errors="replace") for raw in resp)
            record_stream(lines, f, echo=echo)


def main() -> None:
    ap = argparse.ArgumentParser(description="Record one player's event stream to a JSONL file.")
    ap.add_argument("--base", default="http://127.0.0.1:3000", help="Server base URL")
    ap.add_argument("--player", required=True, help="Player id returned by /api/join")
    ap.add_argument("--out", required=True, help="Output JSONL path")
    ap.add_argument("--print", action="store_true", help="Print received events to stdout")
    args = ap.parse_args()

    try:
        record(args.base, args.player, Path(args.out), echo=args.print)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
