from __future__ import annotations

"""
Palette extraction: weighted k-means over the visible colours of the grid.

Steps:
  1. Count exact RGB occurrences among visible pixels.
  2. Few enough distinct colours -> return them by frequency.
  3. Seed: most frequent colour first, then frequency-weighted k-means++
     draws (probability ~ count * d^2 to the nearest chosen seed).
  4. Lloyd iterations in Lab; centroids are count-weighted RGB means.
  5. Round, merge identical centroids, reassign and keep the k most populous.

Distances are Euclidean in CIE Lab (see colour_convert). The seed argument
makes runs reproducible; with seed=None two runs may differ in order and,
rarely, in membership.
"""

from typing import List, Optional

import numpy as np

from .colour_convert import lab_distance_sq, nearest_palette_indices, rgb_to_lab
from .constants import KMEANS_CONVERGENCE, KMEANS_MAX_ITER
from .core_types import Bitmap, Palette, U8Image, assert_u8_rgba
from .utils import debug_log, key_value_pairs_to_string, unique_visible_rgb


def _rows_to_palette(rows: U8Image) -> Palette:
    return [(int(r[0]), int(r[1]), int(r[2])) for r in rows]


def _seed_centroids(
    uniques: U8Image,
    src_lab: np.ndarray,
    weights: np.ndarray,
    k: int,
    first: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Frequency-weighted k-means++ seeding. Returns float64 [k',3] RGB, k' <= k."""
    chosen: List[int] = [int(first)]
    d2 = lab_distance_sq(src_lab, src_lab[first]).ravel()
    for _ in range(1, k):
        score = weights * d2
        total = float(score.sum())
        if total <= 0.0:
            break
        idx = int(rng.choice(score.size, p=score / total))
        chosen.append(idx)
        d2 = np.minimum(d2, lab_distance_sq(src_lab, src_lab[idx]).ravel())
    return uniques[chosen].astype(np.float64)


def _lloyd(
    uniques: U8Image,
    src_lab: np.ndarray,
    weights: np.ndarray,
    centroids: np.ndarray,
    max_iter: int,
) -> tuple[np.ndarray, int]:
    """Run weighted Lloyd iterations. Returns (centroids, iterations used)."""
    k = centroids.shape[0]
    src_rgb = uniques.astype(np.float64)
    iterations = 0
    for iterations in range(1, max(1, int(max_iter)) + 1):
        labels = nearest_palette_indices(src_lab, rgb_to_lab(centroids))
        totals = np.bincount(labels, weights=weights, minlength=k)
        sums = np.zeros((k, 3), dtype=np.float64)
        np.add.at(sums, labels, src_rgb * weights[:, None])

        updated = centroids.copy()
        filled = totals > 0
        updated[filled] = sums[filled] / totals[filled, None]

        shift = float(np.max(np.abs(updated - centroids))) if k else 0.0
        centroids = updated
        if shift <= KMEANS_CONVERGENCE:
            break
    return centroids, iterations


def _finalise(
    uniques: U8Image,
    src_lab: np.ndarray,
    weights: np.ndarray,
    centroids: np.ndarray,
    freq_order: np.ndarray,
    k: int,
) -> Palette:
    """Round, merge duplicates, keep the k most populous, then top up if short."""
    rounded = np.clip(np.rint(centroids), 0, 255).astype(np.uint8)
    distinct = np.unique(rounded, axis=0)
    labels = nearest_palette_indices(src_lab, rgb_to_lab(distinct))
    population = np.bincount(labels, weights=weights, minlength=distinct.shape[0])

    order = np.argsort(-population, kind="stable")
    palette = _rows_to_palette(distinct[order[population[order] > 0]])[:k]

    target = min(k, int(uniques.shape[0]))
    if len(palette) < target:
        present = set(palette)
        for i in freq_order:
            rgb = (int(uniques[i, 0]), int(uniques[i, 1]), int(uniques[i, 2]))
            if rgb not in present:
                palette.append(rgb)
                present.add(rgb)
                if len(palette) >= target:
                    break
    return palette


def extract_palette(
    bitmap: Bitmap,
    k: int,
    *,
    seed: Optional[int] = None,
    max_iter: int = KMEANS_MAX_ITER,
    debug: bool = False,
) -> Palette:
    """
    Pick up to k representative colours from the visible pixels of a bitmap.

    Args:
      bitmap  : uint8 [H,W,4]
      k       : palette size (>= 1)
      seed    : seed for the k-means++ draws; None for fresh entropy
      max_iter: Lloyd iteration cap
      debug   : log clustering stats

    Returns:
      list of (r, g, b), most populous first. Exactly min(k, distinct) entries;
      empty when nothing is visible.
    """
    bm = assert_u8_rgba(bitmap)
    k = int(k)
    if k < 1:
        raise ValueError(f"palette size must be >= 1, got {k}")

    uniques, counts = unique_visible_rgb(bm)
    n_uniques = int(uniques.shape[0])
    if n_uniques == 0:
        if debug:
            debug_log("palette: (no visible pixels)")
        return []

    freq_order = np.argsort(-counts, kind="stable")
    if n_uniques <= k:
        if debug:
            debug_log(
                key_value_pairs_to_string(
                    [("Distinct colours", n_uniques), ("Clustering", False)]
                )
            )
        return _rows_to_palette(uniques[freq_order])

    weights = counts.astype(np.float64)
    src_lab = rgb_to_lab(uniques).astype(np.float64)
    rng = np.random.default_rng(seed)

    centroids = _seed_centroids(uniques, src_lab, weights, k, int(freq_order[0]), rng)
    centroids, iterations = _lloyd(uniques, src_lab, weights, centroids, max_iter)
    palette = _finalise(uniques, src_lab, weights, centroids, freq_order, k)

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Distinct colours", n_uniques),
                    ("K", k),
                    ("Iterations", iterations),
                    ("Palette", len(palette)),
                ]
            )
        )
    return palette


__all__ = ["extract_palette"]
