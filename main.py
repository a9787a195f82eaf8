# main.py
from __future__ import annotations

import argparse
import json
import sys
import traceback
from pathlib import Path


def _write_startup_log(msg: str) -> None:
    try:
        from mfg_dashboard.config import STARTUP_LOG_FILE

        path = Path(STARTUP_LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(msg, encoding="utf-8")
    except OSError:
        pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manufacturing OEE / quality / maintenance dashboard")
    parser.add_argument("--start", help="First production day (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last production day (YYYY-MM-DD), defaults to --start")
    parser.add_argument("--area", default="all", help="Area name or 'all'")
    parser.add_argument("--shift", default="all", help="A, B, C or 'all'")
    parser.add_argument("--status", default="all", help="active, inactive or 'all'")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the data generator")
    parser.add_argument("--today", default=None, help="Reference date for PM due calculations")
    parser.add_argument("--export", default=None, help="Write the dashboard to this .xlsx file")
    parser.add_argument("--no-audit-file", action="store_true", help="Do not write logs/audit.log")
    return parser


def summarize_for_console(data: dict) -> dict:
    return {
        "summary": {k: v for k, v in data["summary"].items() if not isinstance(v, list)},
        "seven_day_trend": data["performance"]["seven_day_trend"],
        "defect_pareto": data["quality"]["defect_pareto"],
        "downtime_pareto": data["downtime"]["downtime_pareto"],
        "maintenance_kpis": data["maintenance"]["kpis"],
        "machine_status": data["machine_status"],
    }


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        # 1) Initialize environment + store FIRST
        from mfg_dashboard import initialize_app, get_dashboard_data
        from mfg_dashboard.config import AUDIT_LOG_FILE, DEFAULT_QUERY_DATE

        start = args.start or DEFAULT_QUERY_DATE
        end = args.end or start
        log_file = None if args.no_audit_file else AUDIT_LOG_FILE
        store = initialize_app(start, end, seed=args.seed, log_file=log_file)

        # 2) Query
        data = get_dashboard_data(store, start, end, args.area, args.shift, args.status, today=args.today)

        # 3) Output
        if args.export:
            from mfg_dashboard.export import export_dashboard
            export_dashboard(data, args.export)

        print(json.dumps(summarize_for_console(data), indent=2))
        return 0

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    except Exception:
        tb = traceback.format_exc()
        msg = f"Startup failure:\n\n{tb}"
        _write_startup_log(msg)
        print(msg, file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
