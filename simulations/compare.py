# simulations/compare.py

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from .common import (
    DEFAULT_METHODS,
    DEFAULT_SCENARIOS,
    DEFAULT_SIZES,
    DEFAULT_TRIALS,
    ILLUSTRATION_SEED,
    ILLUSTRATION_SIZE,
    StudyResult,
    StudySpec,
    format_cell_line,
    format_table,
)
from .run import run_illustration, run_study


LOG = logging.getLogger(__name__)


def _finish(fig, output: Optional[str]) -> None:
    if output:
        fig.savefig(output)
        plt.close(fig)
        LOG.info("wrote %s", output)
    else:
        plt.show()


def plot_illustration(n: int, seed: int, scenarios=DEFAULT_SCENARIOS):
    """
    One panel per scenario: density histogram of a single seeded draw with
    the KDE, local-likelihood fit and true density overlaid.
    """
    fig, axes = plt.subplots(1, len(scenarios), figsize=(5 * len(scenarios), 4))
    axes = np.atleast_1d(axes)

    for ax, name in zip(axes, scenarios):
        sc, sample, fits, ise = run_illustration(name, n, seed)
        print(f"{sc.name} (n={n}, seed={seed}): " + ", ".join(f"{m}={v:.5f}" for m, v in ise.items()))

        hist = fits["histogram"]
        ax.stairs(hist.density, hist.edges, fill=True, alpha=0.3, label="histogram")

        x = np.linspace(sample.min(), sample.max(), 400)
        ax.plot(x, sc.pdf(x), color="black", label="true")
        ax.plot(*fits["kde"].points(), label="kde")
        ax.plot(*fits["locfit"].points(), label="locfit")

        ax.set_title(sc.label)
        ax.set_xlim(sample.min(), sample.max())
        ax.set_xlabel("x")
    axes[0].set_ylabel("density")
    axes[0].legend()

    fig.suptitle(f"Single draw per scenario (n={n}, seed={seed})")
    fig.tight_layout(rect=[0, 0.02, 1, 0.92])
    return fig


def plot_study(result: StudyResult):
    """
    Grouped bars of mean ISE: one panel per scenario, one group per size.
    """
    spec = result.spec
    fig, axes = plt.subplots(1, len(spec.scenarios), figsize=(5 * len(spec.scenarios), 4))
    axes = np.atleast_1d(axes)

    pos = np.arange(len(spec.sizes))
    width = 0.8 / len(spec.methods)
    for ax, s in zip(axes, spec.scenarios):
        for i, m in enumerate(spec.methods):
            heights = [result.mean_ise(s, m, n) for n in spec.sizes]
            ax.bar(pos + i * width, heights, width, label=m)
        ax.set_xticks(pos + width * (len(spec.methods) - 1) / 2)
        ax.set_xticklabels([str(n) for n in spec.sizes])
        ax.set_title(s)
        ax.set_xlabel("sample size")
    axes[0].set_ylabel("mean ISE")
    axes[0].legend()

    fig.suptitle(f"Mean ISE over {spec.trials} trials")
    fig.tight_layout(rect=[0, 0.02, 1, 0.92])
    return fig


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        description="Compare histogram, KDE and local-likelihood density estimates by ISE."
    )
    parser.add_argument("--log-level", default="INFO", help="e.g. DEBUG | INFO | WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    ill = sub.add_parser("illustrate", help="plot fits for one seeded draw per scenario")
    ill.add_argument("--n", type=int, default=ILLUSTRATION_SIZE, help="sample size")
    ill.add_argument("--seed", type=int, default=ILLUSTRATION_SEED, help="RNG seed")
    ill.add_argument("--output", default=None, help="save the figure here instead of showing it")

    st = sub.add_parser("study", help="Monte Carlo mean ISE table")
    st.add_argument("--trials", type=int, default=DEFAULT_TRIALS, help="trials per (scenario, size)")
    st.add_argument("--sizes", type=int, nargs="+", default=list(DEFAULT_SIZES), help="sample sizes")
    st.add_argument("--scenarios", nargs="+", default=list(DEFAULT_SCENARIOS), help="uniform | mixture | lognormal")
    st.add_argument("--methods", nargs="+", default=list(DEFAULT_METHODS), help="histogram | kde | locfit")
    st.add_argument("--seed", type=int, default=None, help="RNG seed (default: unseeded)")
    st.add_argument("--output", default=None, help="save a bar chart here")
    st.add_argument("--plot", action="store_true", help="show a bar chart when --output is not given")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "illustrate":
        fig = plot_illustration(args.n, args.seed)
        _finish(fig, args.output)
        return 0

    spec = StudySpec(
        scenarios=tuple(args.scenarios),
        sizes=tuple(args.sizes),
        methods=tuple(args.methods),
        trials=args.trials,
        seed=args.seed,
    )
    result = run_study(spec)

    for cell in result.cells.values():
        print(format_cell_line(cell))
    print()
    for line in format_table(result):
        print(line)

    if args.output or args.plot:
        _finish(plot_study(result), args.output)

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
