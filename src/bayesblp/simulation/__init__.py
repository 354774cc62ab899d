from bayesblp.simulation.dgp import draw_characteristics, draw_true_parameters
from bayesblp.simulation.market import simulate_market, simulate_prices, simulate_sales
from bayesblp.simulation.simulate import simulate_dataset

__all__ = [
    "draw_characteristics",
    "draw_true_parameters",
    "simulate_dataset",
    "simulate_market",
    "simulate_prices",
    "simulate_sales",
]
