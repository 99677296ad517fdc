"""
casecurves Command Line Interface (CLI)
=======================================

This file provides the interactive terminal program you run like:

    python -m casecurves.cli --select "?Italy&Hubei%2C+China"

It:
- Loads the confirmed / deaths / recovered CSVs (paths or URLs) once
- Merges them (plus the optional lockdown table) into the base dataset
- Starts a REPL where each command changes the view and recomputes it

The CLI never edits the source files. Charts, reports and exports are written
from the current in-memory view.
"""

from __future__ import annotations
import argparse, logging, shlex
from typing import List, Optional

from .engine import Session
from .loader import CONFIRMED_URL, DEATHS_URL, RECOVERED_URL, load_lockdown, load_rows
from .merge import merge_series
from .models import DEFAULT_THRESHOLD, METRICS, SCALES

HELP = """
casecurves commands
-------------------

1) View / Inspect
   help
   stats
   values [prefix]                  (example: values Ch)
   show [n]                         (latest values of visible regions)
   skipped                          (regions dropped while merging)
   url                              (selection as a query string)

2) Selection
   select "<Region>"                (example: select "Hubei, China")
   deselect "<Region>"
   toggle "<Region>"
   only "<Region>" ["<Region>" ...]
   all | none

3) View settings
   days <n|all>                     (example: days 30)
   metric <cases|deaths|recovered|current_cases>
   scale <log|linear>
   threshold <n>                    (example: threshold 100)

4) Output (current view)
   chart "<out.png>"
   report "<out.docx>"
   export csv "<out.csv>"  |  export json "<out.json>"

5) History
   undo | redo | reset

6) Exit
   quit
"""

_LOGGED = ("select", "deselect", "toggle", "only", "all", "none", "days", "metric",
           "scale", "threshold", "undo", "redo", "reset")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="casecurves", description="Days-since-threshold case curves.")
    ap.add_argument("--confirmed", default=CONFIRMED_URL, help="Confirmed cases CSV (path or URL)")
    ap.add_argument("--deaths", default=DEATHS_URL, help="Deaths CSV (path or URL)")
    ap.add_argument("--recovered", default=RECOVERED_URL, help="Recovered CSV (path or URL)")
    ap.add_argument("--lockdown", default=None, help="Optional lockdown events CSV")
    ap.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD,
                    help="Day 0 is the first day with more than this many cases")
    ap.add_argument("--select", default="", help="Initial selection as a query string, e.g. '?Italy&Spain'")
    ap.add_argument("--cache-dir", default=None, help="Cache downloaded CSVs here")
    ap.add_argument("--refresh", action="store_true", help="Download again even if the cache is fresh")
    ap.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    return ap


def load_session(args: argparse.Namespace) -> Session:
    """Load all sources and build a seeded session."""
    confirmed = load_rows(args.confirmed, cache_dir=args.cache_dir, force=args.refresh)
    deaths = load_rows(args.deaths, cache_dir=args.cache_dir, force=args.refresh)
    recovered = load_rows(args.recovered, cache_dir=args.cache_dir, force=args.refresh)
    lockdown = load_lockdown(args.lockdown, cache_dir=args.cache_dir, force=args.refresh) if args.lockdown else None

    outcomes = merge_series(confirmed, deaths, recovered, lockdown)
    sources = {"Confirmed": args.confirmed, "Deaths": args.deaths, "Recovered": args.recovered}
    if args.lockdown:
        sources["Lockdown"] = args.lockdown
    session = Session.from_outcomes(outcomes, sources=sources)
    session.seed_from_query(args.select, threshold=args.threshold)
    return session


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the casecurves CLI.

    1) Load and merge the datasets
    2) Seed the selection
    3) Start an interactive REPL
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    print("Loading datasets...")
    session = load_session(args)
    print(f"Loaded {len(session.base)} regions ({len(session.skipped)} skipped). Type 'help' for commands.")

    while True:
        try:
            line = input("casecurves> ")
        except EOFError:
            break
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("quit", "exit"):
            break
        try:
            handle(session, stripped)
        except Exception as e:
            print(f"Error: {e}")


def handle(session: Session, line: str) -> None:
    """Handle one CLI command line.

    This parses the command and calls the appropriate session method.
    """
    parts = shlex.split(line)
    if not parts:
        return
    cmd = parts[0].lower()
    if cmd in _LOGGED:
        # Keep a lightweight log of commands for the report (reproducibility).
        session.command_log.append(line)

    if cmd == "help":
        print(HELP)
        return

    if cmd == "stats":
        view = session.visible()
        print(f"Regions: {len(session.base)} | Countries: {len(session.idx.by_country)} | Skipped: {len(session.skipped)}")
        print(f"Selected: {len(session.selected_names())} | Visible: {len(view.series)} | Days: {view.max_days}")
        state = view.view
        days = "all" if state.max_days is None else state.max_days
        print(f"metric={state.metric} scale={state.scale} threshold={state.threshold:g} days={days} extent={view.extent}")
        dupes = session.idx.duplicate_names()
        if dupes:
            print(f"Shared display names: {', '.join(dupes)}")
        return

    if cmd == "values":
        prefix = parts[1].lower() if len(parts) >= 2 else ""
        selected = session.is_selected()
        vals = [v for v in session.idx.names_sorted if v.lower().startswith(prefix)]
        for v in vals[:50]:
            print(f"[{'x' if selected.get(v) else ' '}] {v}")
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd in ("select", "deselect", "toggle"):
        if len(parts) < 2:
            raise ValueError(f'Usage: {cmd} "<Region>"')
        for name in parts[1:]:
            if cmd == "toggle":
                name, on = session.toggle(name)
            else:
                name, on = session.set_selected(name, cmd == "select")
            print(f"{name}: {'selected' if on else 'not selected'}")
        return

    if cmd == "only":
        session.select_only(parts[1:]); print(f"Selected {len(session.selected_names())} region(s)."); return
    if cmd == "all":
        session.select_all(); print(f"Selected {len(session.selected_names())} region(s)."); return
    if cmd == "none":
        session.clear_selection(); print("Selection cleared."); return

    if cmd == "days":
        if len(parts) < 2:
            raise ValueError("Usage: days <n|all>")
        n = None if parts[1].lower() == "all" else int(parts[1])
        session.set_max_days(n)
        print(f"Showing {'all' if n is None else n} days. Longest visible series: {session.visible().max_days}")
        return

    if cmd == "metric":
        if len(parts) < 2:
            raise ValueError(f"Usage: metric <{'|'.join(METRICS)}>")
        session.set_metric(parts[1].lower()); print(f"Metric: {session.view.metric}"); return

    if cmd == "scale":
        if len(parts) < 2:
            raise ValueError(f"Usage: scale <{'|'.join(SCALES)}>")
        session.set_scale(parts[1].lower()); print(f"Scale: {session.view.scale}"); return

    if cmd == "threshold":
        if len(parts) < 2:
            raise ValueError("Usage: threshold <n>")
        session.set_threshold(float(parts[1]))
        print(f"Threshold: {session.view.threshold:g}. Visible regions: {len(session.visible().series)}")
        return

    if cmd == "undo":
        print("Undone." if session.undo() else "Nothing to undo.")
        return
    if cmd == "redo":
        print("Redone." if session.redo() else "Nothing to redo.")
        return
    if cmd == "reset":
        session.reset()
        print("View reset.")
        return

    if cmd == "url":
        qs = session.query_string()
        print(f"?{qs}" if qs else "(nothing selected)")
        return

    if cmd == "skipped":
        if not session.skipped:
            print("No regions were skipped.")
        for o in session.skipped:
            print(f"{o.display_name}: {o.reason}")
        return

    if cmd == "show":
        n = int(parts[1]) if len(parts) >= 2 else 10
        view = session.visible()
        if not view.series:
            print("Nothing visible: select some regions.")
            return
        _print_rows(view.series[:n], view.view.metric)
        return

    if cmd == "chart":
        if len(parts) < 2:
            raise ValueError('Usage: chart "out.png"')
        from .report import render_chart
        render_chart(session.visible(), parts[1])
        print(f"Chart written to {parts[1]}")
        return

    if cmd == "report":
        if len(parts) < 2:
            raise ValueError('Usage: report "out.docx"')
        from .report import ReportConfig, generate_docx_report
        cfg = ReportConfig(sources=dict(session.sources), command_log=list(session.command_log))
        generate_docx_report(session.visible(), parts[1], config=cfg)
        print(f"Report written to {parts[1]}")
        return

    if cmd == "export":
        # export <csv|json> "<path>"
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt, out_path = parts[1].lower(), parts[2]
        if not session.visible().series:
            print("Nothing to export: current view is empty.")
            return
        if fmt == "csv":
            n = session.export_csv(out_path)
        elif fmt == "json":
            n = session.export_json(out_path)
        else:
            print("Unknown export format. Use: csv or json")
            return
        print(f"Exported {n} rows to {out_path}")
        return

    print("Unknown command. Type 'help'.")


def _print_rows(regions, metric: str) -> None:
    for r in regions:
        if not r.series:
            print(f"{r.display_name} | no days in range")
            continue
        last = r.series[-1]
        event = f" | {last.event}" if last.event else ""
        print(f"{r.display_name} | days={len(r.series)} | {last.date.isoformat()} | {metric}={last.value(metric)}{event}")


if __name__ == "__main__":
    main()
