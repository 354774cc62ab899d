import argparse
from pathlib import Path


def _print_category_help(category: str):
    """Print help for a specific config category."""
    help_text = {
        "sim": """
SimConfig Arguments (Fake Data Design):
  --n_draws NS                  Simulated individuals per market (default: 500)
  --n_products J                Products per market (default: 10)
  --n_markets T                 Number of markets (default: 20)
  --n_covariates P              Product characteristics (default: 3)
  --lkj_concentration NU        LKJ concentration for the correlation matrix (default: 4.0)
  --seed SEED                   Seed for the data generating process (default: 123)
  --market_size_low N           Smallest market size (default: 1000)
  --market_size_high N          Largest market size (default: 5000)
  --price_scale SCALE           Scale of the truncated-normal price equation (default: 0.5)
""",
        "map": """
MAPConfig Arguments (Posterior Mode via L-BFGS):
  --max_iterations N            Maximum L-BFGS iterations (default: 1000)
  --tolerance TOL               Gradient / objective tolerance (default: 1e-8)
  --num_correction_pairs N      L-BFGS memory (default: 10)
""",
        "nuts": """
SamplerConfig Arguments (No-U-Turn Sampler):
  --num_results N               Posterior draws kept per chain (default: 500)
  --num_burnin_steps N          Adaptation / warmup steps per chain (default: 500)
  --num_chains N                Independent chains, run one after another (default: 4)
  --step_size EPS               Initial leapfrog step size (default: 0.01)
  --target_accept_prob P        Dual averaging acceptance target (default: 0.8)
  --max_tree_depth N            Maximum NUTS tree depth (default: 8)
  --init_from_map / --no-init_from_map
                                Start chains at the posterior mode (default: on)
  --chain_seed SEED             Seed for chain randomness (default: 42)
""",
    }
    print(help_text[category])
    print("\nFor full help: python <script> --help")
    print("For other categories: --help {sim,map,nuts}")


def get_args(argv=None):
    """Build CLI args for the recovery entrypoints with all config options.

    Special help commands:
        --help sim   : Show only SimConfig arguments
        --help map   : Show only MAPConfig arguments
        --help nuts  : Show only SamplerConfig arguments
    """
    import sys

    argv = sys.argv[1:] if argv is None else list(argv)
    if len(argv) == 2 and argv[0] == "--help":
        category = argv[1].lower()
        if category in ["sim", "map", "nuts"]:
            _print_category_help(category)
            sys.exit(0)

    p = argparse.ArgumentParser(
        description="Simulate BLP data with endogenous prices and recover the parameters. "
        "Use '--help sim', '--help map', or '--help nuts' for category-specific help."
    )

    p.add_argument(
        "--method",
        type=str,
        default="map",
        choices=["map", "nuts"],
        help="Estimator: posterior mode or full posterior sampling (default: map)",
    )
    p.add_argument(
        "--save_dir",
        type=Path,
        default=None,
        help="Directory for recovery plots and the summary CSV (default: none)",
    )

    # SimConfig fields
    p.add_argument("--n_draws", type=int, default=None, help="Simulated individuals per market (default: 500)")
    p.add_argument("--n_products", type=int, default=None, help="Products per market (default: 10)")
    p.add_argument("--n_markets", type=int, default=None, help="Number of markets (default: 20)")
    p.add_argument("--n_covariates", type=int, default=None, help="Product characteristics (default: 3)")
    p.add_argument(
        "--lkj_concentration",
        type=float,
        default=None,
        help="LKJ concentration for the correlation matrix and its prior (default: 4.0)",
    )
    p.add_argument("--seed", type=int, default=None, help="Seed for the data generating process (default: 123)")
    p.add_argument("--market_size_low", type=int, default=None, help="Smallest market size (default: 1000)")
    p.add_argument("--market_size_high", type=int, default=None, help="Largest market size (default: 5000)")
    p.add_argument(
        "--price_scale",
        type=float,
        default=None,
        help="Scale of the truncated-normal price equation (default: 0.5)",
    )

    # MAPConfig fields
    p.add_argument("--max_iterations", type=int, default=None, help="Maximum L-BFGS iterations (default: 1000)")
    p.add_argument("--tolerance", type=float, default=None, help="L-BFGS tolerance (default: 1e-8)")
    p.add_argument("--num_correction_pairs", type=int, default=None, help="L-BFGS memory (default: 10)")

    # SamplerConfig fields
    p.add_argument("--num_results", type=int, default=None, help="Posterior draws per chain (default: 500)")
    p.add_argument("--num_burnin_steps", type=int, default=None, help="Warmup steps per chain (default: 500)")
    p.add_argument("--num_chains", type=int, default=None, help="Number of chains (default: 4)")
    p.add_argument("--step_size", type=float, default=None, help="Initial step size (default: 0.01)")
    p.add_argument(
        "--target_accept_prob",
        type=float,
        default=None,
        help="Dual averaging acceptance target (default: 0.8)",
    )
    p.add_argument("--max_tree_depth", type=int, default=None, help="Maximum NUTS tree depth (default: 8)")
    p.add_argument(
        "--init_from_map",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Start chains at the posterior mode (default: on)",
    )
    p.add_argument("--chain_seed", type=int, default=None, help="Seed for chain randomness (default: 42)")

    return p.parse_args(argv)
