"""
Cygwin diagnostics for this host.

Prints whether executable paths can be translated through cygpath, and the
registry/tool details behind that answer.

    python scripts/cygpath_doctor.py
    python scripts/cygpath_doctor.py --output report.json
"""
import sys; sys.path.insert(0, str(__import__('pathlib').Path(__file__).resolve().parent.parent / "cygpath-launcher" / "lib"))
import bootstrap  # noqa: F401

import argparse
import json
from pathlib import Path

from env_check import full_check, save_env_report


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check cygpath availability on this host")
    parser.add_argument("--output", type=Path, help="write the report to this JSON file")
    args = parser.parse_args(argv)

    report = full_check()
    if args.output:
        print(save_env_report(args.output, report=report))
    else:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0 if report["capabilities"]["translation"] else 1


if __name__ == "__main__":
    sys.exit(main())
