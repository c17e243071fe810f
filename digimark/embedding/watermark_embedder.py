"""
水印嵌入模块

加性嵌入规则: C[loc] += strength * w，不做截断。
WatermarkEmbedder 逐块处理；BatchWatermarkEmbedder 对整个块堆叠做一次向量化扰动，
作为独立的对比输出。
"""

import math
from typing import Optional, Tuple

import numpy as np

from ..exceptions import ShapeError


def _check_strength(strength: float) -> float:
    if not math.isfinite(strength):
        raise ValueError(f"嵌入强度必须是有限数值: {strength}")
    return float(strength)


class WatermarkEmbedder:
    """逐块加性嵌入器"""

    def __init__(self, strength: float = 0.5):
        self.strength = _check_strength(strength)

    def embed(self, coeffs: np.ndarray, location: Tuple[int, int], value: float,
              strength: Optional[float] = None) -> np.ndarray:
        """
        在指定系数上叠加水印值

        Args:
            coeffs: DCT系数块
            location: 嵌入位置 (行, 列)
            value: 该块对应的水印值
            strength: 嵌入强度，None表示使用实例默认值

        Returns:
            新的系数块，输入不被修改
        """
        alpha = self.strength if strength is None else _check_strength(strength)

        row, col = location
        if not (0 <= row < coeffs.shape[0] and 0 <= col < coeffs.shape[1]):
            raise ShapeError(f"嵌入位置越界: {location}, 块尺寸: {coeffs.shape}")

        marked = coeffs.copy()
        marked[row, col] = marked[row, col] + alpha * value
        return marked


class BatchWatermarkEmbedder:
    """向量化批量嵌入器"""

    def __init__(self, strength: float = 1.2):
        self.strength = _check_strength(strength)

    def embed_batch(self, stack: np.ndarray, locations: np.ndarray,
                    values: np.ndarray) -> np.ndarray:
        """
        对块堆叠一次性嵌入水印

        Args:
            stack: DCT系数块堆叠 (B, n, n)
            locations: 每块嵌入位置 (B, 2)
            values: 每块水印值 (B,)

        Returns:
            新的系数块堆叠
        """
        count = stack.shape[0]
        locations = np.asarray(locations)
        values = np.asarray(values, dtype=stack.dtype).reshape(-1)

        if locations.shape != (count, 2):
            raise ShapeError(f"位置数组形状应为 ({count}, 2): {locations.shape}")
        if values.shape[0] != count:
            raise ShapeError(f"水印值数量 {values.shape[0]} 与块数量 {count} 不匹配")

        marked = stack.copy()
        index = np.arange(count)
        marked[index, locations[:, 0], locations[:, 1]] += self.strength * values
        return marked
