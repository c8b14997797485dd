#!/usr/bin/env python3
"""
Analyze one or more scan files from the command line.
Run: medscan-analyze chest_xray_01.png --seed 7 --output results.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from medscan.config import load_analyzer_config
from medscan.inference.errors import DecodeError
from medscan.inference.pipeline import ScanAnalyzer


def _print_result(result, verbose: bool) -> None:
    print(f"\n{result.file.name}")
    print(f"  Valid medical scan: {result.is_valid_medical_scan}")
    if result.is_valid_medical_scan:
        print(f"  Scan type: {result.scan_type.value}")
        print(f"  Body part: {result.body_part.value}")
        print(f"  Confidence: {result.confidence}%")
    print(f"  Severity: {result.severity.value}")
    print("  Findings:")
    for f in result.findings:
        print(f"    - {f}")
    print("  Recommendations:")
    for r in result.recommendations:
        print(f"    - {r}")
    if verbose:
        print("  Characteristics:")
        for k, v in result.characteristics.to_dict(full=True).items():
            print(f"    {k}: {v:.3f}" if isinstance(v, float) else f"    {k}: {v}")
        if result.classification.failed_checks:
            print(f"  Failed checks: {', '.join(result.classification.failed_checks)}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Heuristic medical scan analysis (demo, not diagnostic)")
    parser.add_argument("files", nargs="+", help="Image files to analyze (DICOM, JPG, PNG)")
    parser.add_argument("--seed", type=int, help="Seed for reproducible body part and finding draws")
    parser.add_argument("--timeout", type=float, default=10.0, help="Decode timeout in seconds")
    parser.add_argument("--config", type=str, help="JSON file with threshold overrides (optional)")
    parser.add_argument("--output", type=str, help="Output JSON file path (optional)")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = load_analyzer_config(args.config)
    except (OSError, ValueError) as e:
        parser.error(f"could not load config {args.config}: {e}")

    analyzer = ScanAnalyzer(config=config, seed=args.seed, decode_timeout_s=args.timeout)
    results = []
    failed = False
    for path in args.files:
        try:
            result = analyzer.analyze_path(path)
        except (DecodeError, OSError) as e:
            print(f"Error: {path}: {e}", file=sys.stderr)
            failed = True
            continue
        _print_result(result, args.verbose)
        results.append(result.to_dict())

    if args.output:
        Path(args.output).write_text(json.dumps(results, indent=2), encoding="utf-8")
        print(f"\nResults saved to: {args.output}")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
