"""Utility script to inspect/plot histogram tables written by `kstar-mix`."""

from __future__ import annotations

import argparse
from pathlib import Path


def _require_pandas():
    """Import pandas with an actionable error if not installed."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required. Install with: pip install pandas pyarrow"
        ) from exc
    return pd


def load_table(path: str):
    """Load a histogram table from parquet/csv/pickle into a pandas DataFrame."""
    pd = _require_pandas()
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(p)
    if suffix == ".csv":
        return pd.read_csv(p)
    if suffix in (".pkl", ".pickle"):
        return pd.read_pickle(p)
    raise ValueError("Supported input formats: .parquet, .csv, .pkl")


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for printing cells and an optional projected plot."""
    parser = argparse.ArgumentParser(description="Inspect a histogram table.")
    parser.add_argument("--input", required=True, help="Path to .parquet/.csv/.pkl output.")
    parser.add_argument("--head", type=int, default=10, help="Rows to print.")
    parser.add_argument("--axis", default="mass", help="Axis column to project onto.")
    parser.add_argument("--plot", action="store_true", help="Save the projection as png.")
    args = parser.parse_args(argv)

    df = load_table(args.input)
    print(df.head(args.head).to_string(index=False))
    print(f"\nCells={len(df)}  Entries={df['count'].sum():.0f}")
    if args.axis not in df.columns:
        print(f"No '{args.axis}' column; available: {', '.join(c for c in df.columns if c != 'count')}")
        return 1
    projection = df.groupby(args.axis)["count"].sum()

    if args.plot:
        try:
            import matplotlib.pyplot as plt  # type: ignore
        except ModuleNotFoundError:
            print("matplotlib not installed; skipping plot.")
            return 0
        out = Path(args.input).with_suffix(".png")
        ax = projection.plot(drawstyle="steps-mid")
        ax.set_xlabel(args.axis)
        ax.set_ylabel("entries")
        ax.set_title(Path(args.input).stem)
        plt.tight_layout()
        plt.savefig(out, dpi=120)
        print(f"Saved plot: {out}")
    else:
        print(projection.to_string())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
