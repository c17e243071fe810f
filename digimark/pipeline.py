"""
DCT分块水印流水线

状态顺序: LOADED -> NORMALIZED -> PARTITIONED -> TRANSFORMED -> EMBEDDED
          -> INVERTED -> REASSEMBLED -> WRITTEN

每个块的变换、选择、嵌入和逆变换互不依赖，可以放进线程池并行，
拼接前等待全部块完成。流水线对象只持有配置和协作对象，不在调用之间保留状态。
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, List, Optional, Sequence

import cv2
import numpy as np

from .config import WatermarkConfig, EmbedResult
from .exceptions import PipelineCancelledError, ShapeError, WatermarkError
from .embedding.block_partitioner import BlockPartitioner, grid_index_to_position, grid_width
from .embedding.coefficient_selector import CoefficientSelector
from .embedding.dct_transform import DCTTransform
from .embedding.watermark_embedder import WatermarkEmbedder, BatchWatermarkEmbedder
from .utils.image_utils import (
    load_grayscale,
    preprocess_image,
    normalize_image,
    to_uint8,
    write_images,
    calculate_psnr,
    calculate_ssim,
    SSIM_WINDOW
)
from .utils.metrics import PerformanceTimer
from .utils.random_matrix import WatermarkMatrixGenerator
from .utils.visualizer import visualize_comparison

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """流水线状态枚举"""
    LOADED = "loaded"
    NORMALIZED = "normalized"
    PARTITIONED = "partitioned"
    TRANSFORMED = "transformed"
    EMBEDDED = "embedded"
    INVERTED = "inverted"
    REASSEMBLED = "reassembled"
    WRITTEN = "written"


class CancellationToken:
    """按块粒度检查的取消令牌"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise PipelineCancelledError("Pipeline cancelled")


class WatermarkPipeline:
    """DCT分块水印流水线"""

    def __init__(self, config: WatermarkConfig = None, transform: DCTTransform = None,
                 selector: CoefficientSelector = None,
                 generator: WatermarkMatrixGenerator = None,
                 timer: Optional[PerformanceTimer] = None):
        self.config = config if config else WatermarkConfig()
        self.config.validate()

        self.partitioner = BlockPartitioner(block_size=self.config.block_size)
        self.transform = transform if transform else DCTTransform()
        self.selector = selector if selector else CoefficientSelector(
            strict=self.config.strict_selection)
        self.embedder = WatermarkEmbedder(strength=self.config.strength)
        self.batch_embedder = BatchWatermarkEmbedder(strength=self.config.batch_strength)
        self.generator = generator if generator else WatermarkMatrixGenerator(
            backend=self.config.generator, seed=self.config.seed)
        self.timer = timer

    def run(self, image_path: str, output_dir: Optional[str] = None,
            watermark: Optional[np.ndarray] = None,
            cancel_token: Optional[CancellationToken] = None) -> EmbedResult:
        """
        对一个图像文件执行完整流水线

        Args:
            image_path: 输入图像路径
            output_dir: 输出目录，None表示不写出文件
            watermark: G x G 水印矩阵，None表示由生成器生成
            cancel_token: 取消令牌

        Returns:
            嵌入结果

        Raises:
            WatermarkError: 任何前置条件不满足时中止，不产生输出文件
        """
        start_time = time.time()
        try:
            image = self._stage('load', load_grayscale, image_path)
            logger.info(f"Loaded {image_path}: {image.shape[0]}x{image.shape[1]}")

            result = self._process(image, watermark, cancel_token, [PipelineState.LOADED])

            if output_dir is not None:
                stem = os.path.splitext(os.path.basename(image_path))[0]
                result.output_paths = self._stage('write', self._write, result, stem, output_dir)
                result.states.append(PipelineState.WRITTEN.value)
                logger.info(f"Wrote {len(result.output_paths)} artifacts to {output_dir}")

            result.processing_time = time.time() - start_time
            return result

        except WatermarkError as e:
            logger.error(f"Watermark pipeline failed for {image_path}: {e}")
            raise

    def process(self, image: np.ndarray, watermark: Optional[np.ndarray] = None,
                cancel_token: Optional[CancellationToken] = None) -> EmbedResult:
        """
        对已解码的uint8灰度图像执行流水线，不写出文件

        Args:
            image: 灰度图像
            watermark: G x G 水印矩阵，None表示由生成器生成
            cancel_token: 取消令牌

        Returns:
            嵌入结果，状态止于 REASSEMBLED
        """
        start_time = time.time()
        try:
            result = self._process(image, watermark, cancel_token, [PipelineState.LOADED])
        except WatermarkError as e:
            logger.error(f"Watermark pipeline failed: {e}")
            raise

        result.processing_time = time.time() - start_time
        return result

    def _process(self, image: np.ndarray, watermark: Optional[np.ndarray],
                 cancel_token: Optional[CancellationToken],
                 states: List[PipelineState]) -> EmbedResult:
        cfg = self.config

        # 预处理: 填充、方形检查、余量策略、归一化
        prepared = self._stage('normalize', preprocess_image, image, cfg.block_size,
                               cfg.image_size, cfg.remainder_policy, cfg.optimal_dft_padding)
        normalized = normalize_image(prepared)
        states.append(PipelineState.NORMALIZED)

        blocks = self._stage('partition', self.partitioner.partition, normalized)
        side = normalized.shape[0]
        grid = grid_width(side, cfg.block_size)
        states.append(PipelineState.PARTITIONED)
        logger.info(f"Partitioned into {grid}x{grid} blocks of {cfg.block_size}x{cfg.block_size}")

        coeffs = self._stage('transform', self._map_blocks,
                             lambda i, block: self.transform.forward(block),
                             blocks, cancel_token)
        states.append(PipelineState.TRANSFORMED)

        if watermark is None:
            watermark = self._stage('generate', self.generator.generate, grid)
        watermark = self._check_watermark(watermark, grid)
        values = np.array([watermark[grid_index_to_position(i, grid)]
                           for i in range(len(coeffs))], dtype=np.float32)

        def embed_block(i, block_coeffs):
            location = self.selector.select(block_coeffs, index=i)
            return self.embedder.embed(block_coeffs, location, values[i])

        marked = self._stage('embed', self._map_blocks, embed_block, coeffs, cancel_token)
        batch_marked = self._stage('embed_batch', self._embed_batch, coeffs, values, cancel_token)
        states.append(PipelineState.EMBEDDED)

        spatial = self._stage('inverse', self._map_blocks,
                              lambda i, block: self.transform.inverse(block),
                              marked, cancel_token)
        batch_spatial = self._stage('inverse_batch', self._map_blocks,
                                    lambda i, block: self.transform.inverse(block),
                                    batch_marked, cancel_token)
        states.append(PipelineState.INVERTED)

        reassembled = self.partitioner.reassemble(spatial, grid, side)
        batch_reassembled = self.partitioner.reassemble(batch_spatial, grid, side)
        dct_assembled = self.partitioner.reassemble(coeffs, grid, side)
        states.append(PipelineState.REASSEMBLED)

        watermarked_image = to_uint8(reassembled)
        comparison_image = to_uint8(batch_reassembled)

        return EmbedResult(
            watermarked_image=watermarked_image,
            comparison_image=comparison_image,
            dct_image=to_uint8(dct_assembled),
            watermark=watermark,
            block_count=(grid, grid),
            image_size=(side, side),
            states=[state.value for state in states],
            quality_metrics=self._quality_metrics(prepared, watermarked_image, comparison_image)
        )

    def _embed_batch(self, coeffs: Sequence[np.ndarray], values: np.ndarray,
                     cancel_token: Optional[CancellationToken]) -> List[np.ndarray]:
        """对比路径: 一次性选择并嵌入全部块"""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        stack = np.stack(coeffs)
        locations = self.selector.select_many(stack)
        return list(self.batch_embedder.embed_batch(stack, locations, values))

    def _map_blocks(self, func: Callable[[int, np.ndarray], np.ndarray],
                    blocks: Sequence[np.ndarray],
                    cancel_token: Optional[CancellationToken]) -> List[np.ndarray]:
        """按块调用 func(i, block)，结果保持块顺序"""

        def task(index):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            return func(index, blocks[index])

        if self.config.num_threads <= 1 or len(blocks) < 2:
            return [task(i) for i in range(len(blocks))]

        executor = ThreadPoolExecutor(max_workers=self.config.num_threads)
        try:
            results = list(executor.map(task, range(len(blocks))))
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return results

    def _check_watermark(self, watermark: np.ndarray, grid: int) -> np.ndarray:
        watermark = np.asarray(watermark, dtype=np.float32)

        if watermark.shape != (grid, grid):
            raise ShapeError(f"水印矩阵形状 {watermark.shape} 与网格 {grid}x{grid} 不匹配")

        if not np.all(np.isfinite(watermark)):
            raise ValueError("水印矩阵包含非有限数值")

        return watermark

    def _quality_metrics(self, original: np.ndarray, watermarked: np.ndarray,
                         comparison: np.ndarray) -> dict:
        metrics = {
            'psnr': calculate_psnr(original, watermarked),
            'batch_psnr': calculate_psnr(original, comparison)
        }
        if min(original.shape) >= SSIM_WINDOW:
            metrics['ssim'] = calculate_ssim(original, watermarked)
            metrics['batch_ssim'] = calculate_ssim(original, comparison)
        return metrics

    def _write(self, result: EmbedResult, stem: str, output_dir: str) -> dict:
        images = {
            'watermark.png': to_uint8(result.watermark),
            'dcts.png': result.dct_image,
            f'{stem}_watermarked.png': result.watermarked_image,
            f'{stem}_comparison.png': result.comparison_image
        }

        if self.config.visualization_enabled:
            report = visualize_comparison({
                'Watermark': result.watermark,
                'Block DCT': result.dct_image,
                f'Strength {self.config.strength}': result.watermarked_image,
                f'Strength {self.config.batch_strength}': result.comparison_image
            }, metrics={
                k.upper(): v for k, v in result.quality_metrics.items() if np.isfinite(v)
            })
            images[f'{stem}_report.png'] = cv2.cvtColor(report, cv2.COLOR_RGB2BGR)

        return write_images(images, output_dir)

    def _stage(self, name: str, func: Callable, *args):
        """仅在提供计时器时为阶段计时"""
        if self.timer is None:
            return func(*args)
        with self.timer.stage(name):
            return func(*args)
