"""
write_load.py — async load generator for POST /api/links

Creates affiliate links at a fixed concurrency, records every created code
(with its affiliate) as JSON lines for read_load.py, and reports latency
percentiles plus a per-status breakdown of failures.

Usage:
  python write_load.py --base http://127.0.0.1:8000 --count 2000 --concurrency 100 \
      --affiliates 20 --out links_created.jsonl [--seed 7]
"""
import argparse
import asyncio
import json
import random
import sys
import time
from collections import Counter
from datetime import datetime, timezone

import httpx

HOSTS = ("shop.example", "store.example", "deals.example", "market.example")


def build_payload(rng: random.Random, idx: int, affiliates: int) -> dict:
    """Target URL for request ``idx``; affiliates are assigned round-robin (0 = none)."""
    sku = rng.randrange(10_000, 99_999)
    target = f"https://{rng.choice(HOSTS)}/item/{sku}?ref={idx}"
    return {"target_url": target, "affiliate_id": f"aff{idx % affiliates}" if affiliates > 0 else None}


def percentile(samples, pct: float) -> float:
    """Nearest-rank percentile of ``samples`` (0.0 when empty)."""
    if not samples:
        return 0.0
    ordered = sorted(samples)
    rank = max(1, int(round(pct / 100.0 * len(ordered))))
    return ordered[min(rank, len(ordered)) - 1]


class WriteStats:
    """Running tally of a write run."""

    def __init__(self):
        self.latencies = []
        self.outcomes = Counter()

    def record(self, outcome: str, elapsed: float):
        self.outcomes[outcome] += 1
        self.latencies.append(elapsed)

    @property
    def created(self) -> int:
        return self.outcomes["201"]

    def summary_lines(self, wall: float):
        total = sum(self.outcomes.values())
        lines = [
            f"requests={total} created={self.created} failed={total - self.created} wall={wall:.3f}s",
            "latency ms: p50={:.1f} p95={:.1f} p99={:.1f}".format(
                *(percentile(self.latencies, p) * 1000 for p in (50, 95, 99))
            ),
        ]
        if wall > 0:
            lines.append(f"throughput: {self.created / wall:.1f} links/s")
        failures = {k: v for k, v in self.outcomes.items() if k != "201"}
        if failures:
            lines.append("failures: " + ", ".join(f"{k}={v}" for k, v in sorted(failures.items())))
        return lines


async def create_link(client: httpx.AsyncClient, payload: dict, stats: WriteStats, sink):
    started = time.perf_counter()
    try:
        resp = await client.post("/api/links", json=payload)
    except httpx.HTTPError as e:
        stats.record(type(e).__name__, time.perf_counter() - started)
        return
    stats.record(str(resp.status_code), time.perf_counter() - started)
    if resp.status_code != 201:
        return
    link = resp.json().get("link") or {}
    if link.get("unique_code"):
        sink.write(json.dumps({"code": link["unique_code"], "affiliate_id": link.get("affiliate_id")}) + "\n")


async def run(args) -> WriteStats:
    rng = random.Random(args.seed)
    stats = WriteStats()
    queue = asyncio.Queue()
    for i in range(args.count):
        queue.put_nowait(build_payload(rng, i, args.affiliates))

    limits = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    with open(args.out, "w", encoding="utf-8") as sink:
        async with httpx.AsyncClient(base_url=args.base, limits=limits, timeout=args.timeout) as client:

            async def worker():
                while not queue.empty():
                    await create_link(client, queue.get_nowait(), stats, sink)

            await asyncio.gather(*(worker() for _ in range(min(args.concurrency, args.count) or 1)))
    return stats


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create affiliate links under load.")
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--affiliates", type=int, default=20, help="spread links over N affiliate ids (0 = none)")
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument("--seed", type=int, default=None, help="seed for reproducible target URLs")
    parser.add_argument("--out", default="links_created.jsonl")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    print(f"started {datetime.now(timezone.utc).isoformat()}")
    t0 = time.perf_counter()
    stats = asyncio.run(run(args))
    for line in stats.summary_lines(time.perf_counter() - t0):
        print(line)
    return 0 if stats.created == args.count else 1


if __name__ == "__main__":
    sys.exit(main())
