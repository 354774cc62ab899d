"""Sweep the number of simulated individuals and report share Monte Carlo noise.

Each combination in GRID builds a dataset, then measures how much the
predicted shares move across fresh draw sets for every NS in N_DRAWS.
"""

from __future__ import annotations

import itertools
import json
from copy import deepcopy
from dataclasses import replace

from tqdm import tqdm

from bayesblp.config import Config
from bayesblp.diagnostics import share_draw_variance
from bayesblp.simulation import simulate_dataset

GRID = {
    "sim.n_products": [5, 10],
    "sim.n_covariates": [1, 3],
}
N_DRAWS = [25, 50, 100, 200, 400, 800]
N_REPEATS = 20


def apply_config_value(cfg: Config, key: str, value) -> Config:
    """Apply a dot-delimited key to a Config copy and return it."""
    target, field = key.split(".")
    section = replace(getattr(cfg, target), **{field: value})
    setattr(cfg, target, section)
    return cfg


def main():
    base = Config()
    keys, values = zip(*GRID.items(), strict=True)

    combos = list(itertools.product(*values))
    for combo in tqdm(combos, desc="Sweep", unit="design"):
        cfg = deepcopy(base)
        for k, v in zip(keys, combo, strict=True):
            cfg = apply_config_value(cfg, k, v)

        dataset = simulate_dataset(cfg.sim)
        frame = share_draw_variance(dataset.data, dataset.truth, N_DRAWS, n_repeats=N_REPEATS, seed=cfg.sim.seed)

        result = {
            "config": dict(zip(keys, combo, strict=True)),
            "variance": dict(zip(frame["n_draws"].tolist(), frame["variance"].tolist(), strict=True)),
        }
        tqdm.write(json.dumps(result))


if __name__ == "__main__":
    main()
