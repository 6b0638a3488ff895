from __future__ import annotations

import typer
from typing import Optional

from t0reco.vis.hdf import save_t0_histogram_png

app = typer.Typer(help="T0 reconstruction visualization tools")

@app.command("h5-to-png")
def h5_to_png(
    h5_path: str = typer.Argument(..., help="Path to HDF5 file written by t0reco"),
    dataset: str = typer.Option("/t0/time_us", "--dataset", "-d", help="Dataset path"),
    bins: int = typer.Option(100, "--bins", "-b", help="Number of histogram bins"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output PNG path (defaults to file.png)"),
):
    """Histogram a 1D dataset from HDF5 (default /t0/time_us) into a PNG."""
    out_png = save_t0_histogram_png(h5_path, out_png=out, dataset=dataset, bins=bins)
    typer.echo(f"Wrote {out_png}")

if __name__ == "__main__":
    app()
