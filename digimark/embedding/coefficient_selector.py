"""
嵌入系数选择模块

在每个DCT块中选出幅值最大的非直流系数作为嵌入位置。
"""

import logging
from typing import Tuple

import numpy as np

from ..exceptions import DegenerateBlockError, ShapeError

logger = logging.getLogger(__name__)


class CoefficientSelector:
    """
    系数选择器

    规则:
    - (0, 0) 是直流分量(DC)，视为0不参与选择
    - 在其余系数中取幅值最大者，并列时取行优先扫描的第一个
    - 其余系数全为0的退化块返回 FALLBACK_LOCATION，严格模式下抛出 DegenerateBlockError

    select 与 select_many 共用同一个向量化实现，保证两条嵌入路径选择一致。
    """

    FALLBACK_LOCATION = (0, 1)

    def __init__(self, strict: bool = False):
        self.strict = strict

    def select(self, coeffs: np.ndarray, index: int = 0) -> Tuple[int, int]:
        """
        选择单个块的嵌入位置

        Args:
            coeffs: DCT系数块 (n, n)
            index: 块在网格中的序号，用于错误信息

        Returns:
            (行, 列)
        """
        if coeffs.ndim != 2:
            raise ShapeError(f"系数块必须是二维数组: {coeffs.shape}")

        row, col = self.select_many(coeffs[np.newaxis], base_index=index)[0]
        return int(row), int(col)

    def select_many(self, stack: np.ndarray, base_index: int = 0) -> np.ndarray:
        """
        批量选择嵌入位置

        Args:
            stack: DCT系数块堆叠 (B, n, n)
            base_index: stack[0] 在网格中的序号

        Returns:
            (B, 2) 整数数组，每行为 (行, 列)
        """
        if stack.ndim != 3 or stack.shape[1] != stack.shape[2]:
            raise ShapeError(f"系数块堆叠形状必须为 (B, n, n): {stack.shape}")

        count, n = stack.shape[0], stack.shape[1]
        if n < 2:
            raise ShapeError(f"块大小必须至少为2才有非直流系数: {n}")

        magnitudes = np.abs(stack).reshape(count, n * n)
        magnitudes[:, 0] = 0

        # argmax 返回首次出现的位置，即行优先扫描顺序
        flat = np.argmax(magnitudes, axis=1)
        peaks = magnitudes[np.arange(count), flat]

        degenerate = peaks == 0
        if np.any(degenerate):
            first = base_index + int(np.flatnonzero(degenerate)[0])
            if self.strict:
                raise DegenerateBlockError(
                    f"块 {first} 的非直流系数全为0，无法选择嵌入位置", block_index=first)
            logger.debug(f"{int(degenerate.sum())} degenerate blocks, using fallback location")
            fallback_row, fallback_col = self.FALLBACK_LOCATION
            flat[degenerate] = fallback_row * n + fallback_col

        locations = np.empty((count, 2), dtype=np.intp)
        locations[:, 0] = flat // n
        locations[:, 1] = flat % n
        return locations
