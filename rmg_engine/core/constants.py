# ==============================================================================
# Файл: rmg_engine/core/constants.py
# Назначение: Глобальные константы генератора (пороги, лимиты итераций,
#             символы битовых шаблонов). Всё, что может понадобиться
#             подкрутить, живёт здесь, а не в коде алгоритмов.
# ==============================================================================
from __future__ import annotations
from typing import Tuple

# =======================================================================
# РАЗБИЕНИЕ НА ЗОНЫ
# =======================================================================

# Если разница "расстояний в радиусах" между двумя ближайшими зонами меньше
# этого порога, клетка остаётся ничьей (буферная полоса на границе).
# Единицы: те же, что у distance_by_radius после пересчёта в тайлы.
ZONE_BORDER_TIE_THRESHOLD = 2

# Множитель нормировки расстояния на радиус зоны (промилле).
DISTANCE_BY_RADIUS_SCALE = 1000

# Проходы добора площади: (порог дефицита в %, можно ли съедать соседей)
DEFICIT_PASSES: Tuple[Tuple[int, bool], ...] = (
    (20, False),
    (10, True),
    (0, True),
)

UNASSIGNED_ZONE = -1

# =======================================================================
# ПОЧИНКА ТОПОЛОГИИ
# =======================================================================

REPAIR_MAX_ITERATIONS = 10

# =======================================================================
# K-MEANS
# =======================================================================

KMEANS_DEFAULT_ITERS = 10
KMEANS_ZONE_SPLIT_ITERS = 30

# Множитель точности для pos_distance при поиске центроида
CENTROID_DISTANCE_MULT = 100

# =======================================================================
# БИТОВЫЕ ШАБЛОНЫ (объект / препятствие)
# =======================================================================

CHAR_BOTH = "X"
CHAR_OBJECT = "O"
CHAR_OBSTACLE = "-"
CHAR_EMPTY = "."

# =======================================================================
# РАССТАНОВКА ОБЪЕКТОВ
# =======================================================================

# Сколько уровней "тепла" максимум учитываем при поиске места
MAX_HEAT_LEVEL = 64

# Диапазон случайного тай-брейка для сегментов
SEGMENT_TIE_BREAK_RANGE = 1000

# Множитель охраны по умолчанию (в процентах)
DEFAULT_GUARD_MULTIPLY_PERCENT = 100
