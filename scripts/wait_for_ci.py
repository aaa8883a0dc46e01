#!/usr/bin/env python3
"""Wait for the latest GitHub Actions run to finish and report its outcome as JSON."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Any, Callable

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.poll import PollTimeoutError, poll


def ci_result(run: dict[str, Any]) -> tuple[dict, bool]:
    jobs = [{"name": j.get("name"), "status": j.get("conclusion") or j.get("status")} for j in run.get("jobs") or []]
    passed = run.get("conclusion") == "success"
    return {
        "success": passed,
        "message": "CI passed" if passed else f"CI failed: {run.get('conclusion')}",
        "data": {
            "status": run.get("conclusion"),
            "workflow": run.get("name"),
            "runId": run.get("databaseId"),
            "jobs": jobs,
        },
    }, passed


def wait_for_ci(
    gh: GhClient,
    out: OutputContext,
    *,
    timeout_s: float,
    interval_s: float,
    max_interval_s: float,
    backoff: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[dict, bool]:
    latest = gh.latest_run()
    if not latest.ok:
        return {"success": False, "message": f"CI check failed: {latest.message}"}, False
    run = latest.value
    if not run:
        return {"success": False, "message": "No workflow runs found"}, False
    if run.get("status") == "completed":
        return ci_result(run)

    def check() -> dict:
        details = gh.run_details(run.get("databaseId")).unwrap()
        return {**run, **details}

    def report(current: dict, elapsed_ms: float, polls: int) -> None:
        if current.get("status") != "completed":
            print(f"CI still running... ({round(elapsed_ms / 1000)}s elapsed)", file=out.err)

    try:
        finished = poll(
            check,
            lambda current: current.get("status") == "completed",
            interval_ms=interval_s * 1000,
            timeout_ms=timeout_s * 1000,
            backoff=backoff,
            max_interval_ms=max_interval_s * 1000,
            on_poll=report,
            clock=clock,
            sleep=sleep,
        )
    except PollTimeoutError:
        return {
            "success": False,
            "message": f"CI timed out after {round(timeout_s)}s",
            "data": {"status": "timeout", "workflow": run.get("name"), "runId": run.get("databaseId")},
        }, False
    except RuntimeError as exc:
        return {"success": False, "message": f"CI check failed: {exc}"}, False
    return ci_result(finished.result)


def main(
    argv: list[str],
    *,
    gh: GhClient | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    ap = argparse.ArgumentParser(description="Poll GitHub Actions workflow status with a timeout.")
    ap.add_argument("--timeout", type=float, default=300, help="Give up after this many seconds (default: 300).")
    ap.add_argument("--interval", type=float, default=15, help="Initial seconds between polls (default: 15).")
    ap.add_argument("--max-interval", type=float, default=60, help="Upper bound for the poll interval (default: 60).")
    ap.add_argument("--backoff", type=float, default=1.5, help="Interval growth factor per poll (default: 1.5).")
    ap.add_argument("--timing", action="store_true", help="Report elapsed time on stderr.")
    args = ap.parse_args(argv)

    out = OutputContext(timing=args.timing)
    out.start_timer("wait-for-ci")
    payload, ok = wait_for_ci(
        gh or GhClient(),
        out,
        timeout_s=args.timeout,
        interval_s=args.interval,
        max_interval_s=args.max_interval,
        backoff=args.backoff,
        clock=clock,
        sleep=sleep,
    )
    out.end_timer("wait-for-ci")
    out.json_compact(payload)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
