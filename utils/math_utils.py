import numpy as np


def normalize_cosine_distance(n: float, steepness: float = 10, midpoint: float = 0.86) -> float:
    """
    Map a cosine distance onto a [0, 1] similarity score with a sigmoid.

    Args:
        n: float [0,2] (0 = perfectly similar, 1 = orthogonal, 2 = perfectly dissimilar)
        steepness: Controls how sharply the score drops around the midpoint
        midpoint: Distance that maps to a score of 0.5

    Returns:
        float: 1.0 for identical vectors, ~0.2 for orthogonal ones, ~0.0 for opposite ones
    """
    if not 0 <= n <= 2:
        raise ValueError(f"cosine distance must be within [0, 2], got {n}")

    return float(1 / (1 + np.exp(steepness * (n - midpoint))))
