# ==============================================================================
# Файл: rmg_engine/world/kmeans.py
# Назначение: K-means по позициям тайлов. Используется для нарезки больших
#             зон на сегменты примерно одинаковой площади.
# ==============================================================================
from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..core import constants as const
from ..core.types import Pos, RandomSource
from .tile_region import TileRegion, pos_distance

logger = logging.getLogger(__name__)


class KMeansSegmentation:
    """
    Классический k-means над тайлами.

    Центроид кластера всегда "прилипает" к ближайшему реальному тайлу
    кластера, поэтому он никогда не оказывается в дыре или за пределами
    региона.
    """

    def __init__(self, tiles: Iterable, iters: int = const.KMEANS_DEFAULT_ITERS):
        self.points = list(tiles)
        self.iters = iters
        self.done = False
        self.iterations_run = 0
        self._coords = self._make_coords()
        self.centroids = np.zeros((0, 2), dtype=np.int64)
        self.labels = np.full(len(self.points), -1, dtype=np.int64)

    def _make_coords(self) -> np.ndarray:
        if not self.points:
            return np.zeros((0, 2), dtype=np.int64)
        return np.array([(t.pos.x, t.pos.y) for t in self.points], dtype=np.int64)

    @property
    def k(self) -> int:
        return int(self.centroids.shape[0])

    # --- инициализация ---

    def init_clusters_by_centroids(self, indices: Sequence[int]) -> None:
        if not indices:
            raise ValueError("At least one centroid is required")
        if len(indices) > len(self.points):
            raise ValueError(f"Too many centroids: {len(indices)} for {len(self.points)} points")
        if len(set(indices)) != len(indices):
            raise ValueError("Centroid indices must be unique")

        idx = np.asarray(indices, dtype=np.int64)
        self.centroids = self._coords[idx].copy()
        self.labels = np.full(len(self.points), -1, dtype=np.int64)
        self.labels[idx] = np.arange(len(indices))
        self.done = False

    def _sort_points(self) -> None:
        self.points.sort(key=lambda t: t.index)
        self._coords = self._make_coords()

    def init_equal_centroids(self, k: int) -> None:
        """k равномерно разнесённых точек по отсортированному списку."""
        self._sort_points()
        n = len(self.points)
        self.init_clusters_by_centroids([(2 * i + 1) * n // (2 * k) for i in range(k)])

    def init_random_cluster_centroids(self, k: int, rng: RandomSource) -> None:
        self._sort_points()
        n = len(self.points)
        used = set()
        for _ in range(k):
            while True:
                index = rng.next_int(n - 1)
                if index not in used:
                    used.add(index)
                    break
        self.init_clusters_by_centroids(sorted(used))

    # --- итерации ---

    def _distances(self) -> np.ndarray:
        """Матрица (n, k) целочисленных расстояний точка -> центроид."""
        diff = self._coords[:, None, :] - self.centroids[None, :, :]
        sq = (diff * diff).sum(axis=2).astype(np.float64)
        return np.floor(np.sqrt(sq)).astype(np.int64)

    def _snap_centroid(self, members: np.ndarray) -> np.ndarray:
        mean = members.sum(axis=0) // len(members)
        d = members - mean
        dist = np.floor(np.sqrt((d * d).sum(axis=1).astype(np.float64)) * const.CENTROID_DISTANCE_MULT)
        return members[int(np.argmin(dist))]

    def run_iter(self) -> bool:
        """Один шаг: переназначение точек + пересчёт центроидов. True, если что-то изменилось."""
        new_labels = np.argmin(self._distances(), axis=1)  # при равенстве - меньший индекс
        changed = not np.array_equal(new_labels, self.labels)
        self.labels = new_labels

        for c in range(self.k):
            members = self._coords[self.labels == c]
            if len(members):
                self.centroids[c] = self._snap_centroid(members)
        return changed

    def run(self) -> None:
        if self.k == 0:
            raise ValueError("Clusters are not initialised")
        for i in range(self.iters):
            self.iterations_run = i + 1
            if not self.run_iter():
                self.done = True
                break
        logger.debug("k-means: k=%d points=%d iterations=%d converged=%s",
                     self.k, len(self.points), self.iterations_run, self.done)

    def clusters(self) -> List[Tuple[Pos, TileRegion]]:
        """Непустые кластеры в порядке индексов: (центроид, регион)."""
        result = []
        z = self.points[0].pos.z if self.points else 0
        for c in range(self.k):
            member_idx = np.nonzero(self.labels == c)[0]
            if not len(member_idx):
                continue
            region = TileRegion(self.points[i] for i in member_idx)
            cx, cy = (int(v) for v in self.centroids[c])
            result.append((Pos(cx, cy, z), region))
        return result


def _repulse_order(clusters: List[Tuple[Pos, TileRegion]]) -> List[Tuple[Pos, TileRegion]]:
    """Начинаем с последнего кластера, дальше каждый раз берём самый дальний от текущего."""
    remaining = list(clusters)
    current = remaining.pop()
    ordered = [current]
    while remaining:
        current = max(remaining, key=lambda c: pos_distance(ordered[-1][0], c[0]))
        remaining.remove(current)
        ordered.append(current)
    return ordered


def segment_zone(region: TileRegion, target_max_area: Optional[int] = None,
                 target_k: Optional[int] = None, repulse: bool = False,
                 rng: Optional[RandomSource] = None,
                 iters: int = const.KMEANS_ZONE_SPLIT_ITERS) -> List[TileRegion]:
    """
    Делит регион на сегменты.

    Задаётся либо максимальная площадь сегмента, либо точное число k.
    С rng центроиды рассеваются случайно, без него - равномерно.
    """
    if not region:
        return []
    if target_max_area is None and target_k is None:
        raise ValueError("Either target_max_area or target_k must be given")

    area = len(region)
    if target_max_area is not None:
        if target_max_area <= 0:
            raise ValueError(f"target_max_area must be positive, got {target_max_area}")
        k = (area + target_max_area + 1) // target_max_area
    else:
        if target_k <= 0:
            raise ValueError(f"target_k must be positive, got {target_k}")
        k = target_k
    k = min(k, area)

    if k == 1:
        return [region.copy()]

    seg = KMeansSegmentation(region, iters=iters)
    if rng is not None:
        seg.init_random_cluster_centroids(k, rng)
    else:
        seg.init_equal_centroids(k)
    seg.run()

    clusters = seg.clusters()
    if repulse and clusters:
        clusters = _repulse_order(clusters)
    return [r for _, r in clusters]
