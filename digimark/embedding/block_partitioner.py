"""
分块模块

该模块负责把方形图像切分为等大小的方块，并按相同的索引映射重新拼接。
分块、嵌入和拼接三个阶段共用 grid_index_to_position 计算块位置。
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import ShapeError

logger = logging.getLogger(__name__)


def grid_index_to_position(index: int, grid_width: int) -> Tuple[int, int]:
    """
    将扁平块索引映射为网格位置

    Args:
        index: 块在分块序列中的索引
        grid_width: 网格宽度（每行块数）

    Returns:
        (行号, 列号)
    """
    if grid_width <= 0:
        raise ValueError(f"网格宽度必须为正数: {grid_width}")
    if index < 0:
        raise ValueError(f"块索引不能为负数: {index}")

    return index // grid_width, index % grid_width


def grid_width(image_size: int, block_size: int) -> int:
    """计算每行块数"""
    if block_size <= 0:
        raise ValueError(f"块大小必须为正数: {block_size}")
    return image_size // block_size


class BlockPartitioner:
    """
    方块分割器

    按行优先顺序（外层遍历行，内层遍历列）以 block_size 为步长取块，
    拼接时对第 i 个块使用 grid_index_to_position(i, G) 的逆映射。

    块大小在构造时确定，partition(image) 即对该块大小切分；
    需要不同块大小时另建一个分割器。
    """

    def __init__(self, block_size: int = 8):
        if block_size < 2:
            raise ShapeError(f"块大小必须至少为2: {block_size}")
        self.block_size = block_size

    def partition(self, image: np.ndarray) -> List[np.ndarray]:
        """
        将图像切分为方块序列

        Args:
            image: 方形二维图像 (S, S)

        Returns:
            块列表，每个块都是独立副本

        Raises:
            ShapeError: 图像不是方形二维数组，或边长不能被块大小整除
        """
        if image is None or image.size == 0:
            raise ShapeError("输入图像为空")

        if image.ndim != 2:
            raise ShapeError(f"只支持单通道图像, 实际维度: {image.shape}")

        rows, cols = image.shape
        if rows != cols:
            raise ShapeError(f"图像宽高不一致: {rows}x{cols}")

        n = self.block_size
        if rows < n or rows % n != 0:
            raise ShapeError(f"图像边长 {rows} 不能被块大小 {n} 整除")

        blocks = []
        for y in range(0, rows - n + 1, n):
            for x in range(0, cols - n + 1, n):
                blocks.append(image[y:y + n, x:x + n].copy())

        logger.debug(f"Partitioned {rows}x{cols} image into {len(blocks)} blocks of {n}x{n}")
        return blocks

    def reassemble(self, blocks: Sequence[np.ndarray], grid_size: int,
                   image_size: Optional[int] = None) -> np.ndarray:
        """
        将块序列拼接回完整图像

        Args:
            blocks: 块序列，长度必须为 grid_size ** 2
            grid_size: 网格宽度 G
            image_size: 输出图像边长，None表示 G * block_size

        Returns:
            拼接后的图像，未覆盖区域为0
        """
        if grid_size <= 0:
            raise ShapeError(f"网格宽度必须为正数: {grid_size}")

        if len(blocks) != grid_size * grid_size:
            raise ShapeError(f"块数量 {len(blocks)} 与网格 {grid_size}x{grid_size} 不匹配")

        n = self.block_size
        covered = grid_size * n
        if image_size is None:
            image_size = covered
        if image_size < covered:
            raise ShapeError(f"输出尺寸 {image_size} 小于网格覆盖范围 {covered}")

        dtype = blocks[0].dtype
        output = np.zeros((image_size, image_size), dtype=dtype)

        for i, block in enumerate(blocks):
            if block.shape != (n, n):
                raise ShapeError(f"第 {i} 个块尺寸错误: {block.shape}")

            row, col = grid_index_to_position(i, grid_size)
            output[row * n:(row + 1) * n, col * n:(col + 1) * n] = block

        return output
