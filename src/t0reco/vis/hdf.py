import h5py
import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path

def save_t0_histogram_png(h5_path: str, out_png: str | None = None, dataset: str = "/t0/time_us", bins: int = 100):
    h5_path = str(h5_path)
    with h5py.File(h5_path, "r") as f:
        if dataset not in f:
            raise KeyError(f"{dataset} not found in {h5_path}")
        t0 = np.array(f[dataset], dtype=np.float64)

    if out_png is None:
        out_png = str(Path(h5_path).with_suffix(".png"))

    plt.figure()
    plt.hist(t0, bins=bins, histtype="step")
    plt.xlabel("T0 [us]")
    plt.ylabel("tracks")
    plt.title(f"{Path(h5_path).name} : {dataset} (N={t0.size})")
    plt.tight_layout()
    plt.savefig(out_png, dpi=150)
    plt.close()
    return out_png
