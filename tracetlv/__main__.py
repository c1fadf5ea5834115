"""CLI entry point: python -m tracetlv <command>"""

import argparse
import sys


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="tracetlv",
        description="Write side-channel traces to the .trs trace set format",
    )
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- encode ---
    encode_parser = subparsers.add_parser("encode", help="Encode traces to .trs")
    encode_parser.add_argument("input", type=str,
                               help="Input traces: .npy (one row per trace) or .csv")
    encode_parser.add_argument("-o", "--output", type=str, required=True, help="Output .trs file")
    encode_parser.add_argument("--config", type=str, default=None,
                               help="JSON file with SerialiserConfig fields")
    encode_parser.add_argument("--dtype", type=str, default=None,
                               help="Sample type, e.g. uint8, int16, float32 (default: input dtype)")
    encode_parser.add_argument("--sample-width", type=int, default=None, choices=[1, 2, 4],
                               help="Bytes per sample (default: size of the sample type)")
    encode_parser.add_argument("--ragged", action="store_true",
                               help="Zero-pad traces shorter than the longest one")
    encode_parser.add_argument("--title", type=str, default=None)
    encode_parser.add_argument("--description", type=str, default=None)
    encode_parser.add_argument("--label-x", type=str, default=None)
    encode_parser.add_argument("--label-y", type=str, default=None)
    encode_parser.add_argument("--scale-x", type=float, default=None)
    encode_parser.add_argument("--scale-y", type=float, default=None)
    encode_parser.add_argument("--dump", action="store_true",
                               help="Print the header records and a trace block preview")

    args = parser.parse_args(argv)

    from .cli_formatting import setup_logging
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "encode":
        return _cmd_encode(args)
    return 0


def _load_traces(input_path, ragged=False):
    """Load traces from a .npy array or a headerless CSV (one trace per row)."""
    import numpy as np
    from pathlib import Path

    path = Path(input_path)
    if path.suffix == ".npy":
        return np.load(str(path))
    elif path.suffix in (".csv", ".txt"):
        import pandas as pd
        df = pd.read_csv(str(path), header=None)
        if ragged:
            return [row.dropna().to_numpy() for _, row in df.iterrows()]
        if df.isna().any().any():
            raise ValueError(f"{path} has rows of different lengths; use --ragged")
        return df.to_numpy()
    else:
        raise ValueError(f"Unsupported input format: {path.suffix}. Use .npy or .csv")


def _build_config(args):
    """Config from --config and the header flags, plus whether it names a sample type."""
    import json

    from .config import SerialiserConfig

    data = {}
    if args.config:
        with open(args.config) as f:
            data = json.load(f)
    config = SerialiserConfig.from_dict(data)
    overrides = {
        "sample_width": args.sample_width,
        "title": args.title,
        "description": args.description,
        "axis_label_x": args.label_x,
        "axis_label_y": args.label_y,
        "axis_scale_x": args.scale_x,
        "axis_scale_y": args.scale_y,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    if args.ragged:
        config.ragged = True
    return config, "sample_dtype" in data


def _cmd_encode(args):
    from .cli_formatting import console, print_encode_results, print_header_dump
    from .errors import TraceSerialiserError
    from .serialiser import Serialiser

    try:
        config, dtype_configured = _build_config(args)
        traces = _load_traces(args.input, ragged=config.ragged)
        if args.dtype is not None:
            config.sample_dtype = args.dtype
        elif not dtype_configured and args.input.endswith(".npy"):
            # .npy keeps its sample type; CSV values fall back to the config default
            config.sample_dtype = str(traces.dtype)

        console.print(f"[bold]Encoding[/bold] {args.input} ({config.sample_dtype})...")
        serialiser = Serialiser.from_config(traces, config)
        n_bytes = serialiser.save(args.output)
    except (TraceSerialiserError, ValueError, OSError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return 1

    print_encode_results(serialiser, n_bytes, args.output)
    if args.dump:
        print_header_dump(serialiser)
    return 0


if __name__ == "__main__":
    sys.exit(main())
