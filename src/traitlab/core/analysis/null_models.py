"""
Randomisation algorithms for community matrices.

Every null model has the signature::

    model(abundance, traits, rng, **params) -> (abundance, traits)

where ``abundance`` is a plots x species array and ``traits`` a species x
traits array. Inputs are never modified in place.
"""

from typing import Callable, Dict, Tuple

import numpy as np

Randomized = Tuple[np.ndarray, np.ndarray]
NullModel = Callable[..., Randomized]


def _is_binary(matrix: np.ndarray) -> bool:
    return bool(np.isin(matrix, (0.0, 1.0)).all())


def independent_swap(
    abundance: np.ndarray,
    traits: np.ndarray,
    rng: np.random.Generator,
    n_swaps: int = 1000,
) -> Randomized:
    """
    Checkerboard swaps keeping every plot total and every species total.

    Each attempt draws two plots i, k and two species j, l. When L[i, j] and
    L[k, l] are both positive, d = min(L[i, j], L[k, l]) is moved from that
    diagonal to the opposite one (L[i, l], L[k, j]). On a presence/absence
    matrix only true checkerboards (opposite cells empty) are swapped so
    the matrix stays binary.
    """
    matrix = np.array(abundance, dtype=float, copy=True)
    n_plots, n_species = matrix.shape
    if n_plots < 2 or n_species < 2 or n_swaps <= 0:
        return matrix, traits

    binary = _is_binary(matrix)
    plots = rng.integers(0, n_plots, size=(n_swaps, 2))
    species = rng.integers(0, n_species, size=(n_swaps, 2))

    for (i, k), (j, l) in zip(plots, species):
        if i == k or j == l:
            continue
        a = matrix[i, j]
        d = matrix[k, l]
        if a <= 0 or d <= 0:
            continue
        if binary and (matrix[i, l] > 0 or matrix[k, j] > 0):
            continue
        delta = min(a, d)
        matrix[i, j] -= delta
        matrix[k, l] -= delta
        matrix[i, l] += delta
        matrix[k, j] += delta

    return matrix, traits


def richness(
    abundance: np.ndarray, traits: np.ndarray, rng: np.random.Generator
) -> Randomized:
    """Shuffle abundances among species within each plot (plot totals and richness kept)."""
    return rng.permuted(np.asarray(abundance, dtype=float), axis=1), traits


def frequency(
    abundance: np.ndarray, traits: np.ndarray, rng: np.random.Generator
) -> Randomized:
    """Shuffle abundances among plots within each species (species totals and frequency kept)."""
    return rng.permuted(np.asarray(abundance, dtype=float), axis=0), traits


def taxa_labels(
    abundance: np.ndarray, traits: np.ndarray, rng: np.random.Generator
) -> Randomized:
    """Shuffle trait rows among species; the abundance matrix is untouched."""
    order = rng.permutation(np.asarray(traits).shape[0])
    return np.asarray(abundance, dtype=float), np.asarray(traits)[order]


NULL_MODELS: Dict[str, NullModel] = {
    "independent_swap": independent_swap,
    "richness": richness,
    "frequency": frequency,
    "taxa_labels": taxa_labels,
}
