from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydicom.errors import InvalidDicomError

from .ecg import DicomEcg
from .exceptions import ECGError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="dicomecg",
        description="Render a DICOM ECG waveform as SVG on standard ECG grid paper.",
    )

    p.add_argument("input", help="DICOM waveform file (.dcm)")
    p.add_argument("output", help="SVG file to write. Must not exist.")
    p.add_argument("--speed", type=float, default=None, help="Paper speed in mm/s (default 25).")
    p.add_argument(
        "--amplitude", type=float, default=None, help="Amplitude in mm/mV (default 5)."
    )
    p.add_argument(
        "--filter",
        action="store_true",
        help="Apply the 40 Hz single pole low-pass filter.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="More output (debug).")

    return p.parse_args(argv)


def _format_value(value) -> str:
    if isinstance(value, list):
        return "; ".join(str(v) for v in value)
    return str(value)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    output = Path(args.output)
    if output.exists():
        print(f"ERROR: output file already exists: {output}", file=sys.stderr)
        sys.exit(2)

    try:
        ecg = DicomEcg(args.input)
        result = ecg.render(
            speed=args.speed, amplitude=args.amplitude, apply_low_pass_filter=args.filter
        )
    except (ECGError, InvalidDicomError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.svg, encoding="utf-8")

    for entry in result.info:
        unit = f" {entry.unit}" if entry.unit else ""
        print(f"{entry.key}: {_format_value(entry.value)}{unit}")
    print(f"Wrote SVG: {output}")


if __name__ == "__main__":
    main()
