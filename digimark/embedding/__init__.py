"""
水印嵌入模块

该模块提供分块、DCT变换、系数选择和加性嵌入功能。
"""

from .block_partitioner import BlockPartitioner, grid_index_to_position, grid_width
from .dct_transform import DCTTransform
from .coefficient_selector import CoefficientSelector
from .watermark_embedder import WatermarkEmbedder, BatchWatermarkEmbedder

__all__ = [
    'BlockPartitioner',
    'grid_index_to_position',
    'grid_width',
    'DCTTransform',
    'CoefficientSelector',
    'WatermarkEmbedder',
    'BatchWatermarkEmbedder'
]
