"""
水印嵌入器单元测试
"""

import pytest
import numpy as np

from digimark.embedding.coefficient_selector import CoefficientSelector
from digimark.embedding.watermark_embedder import WatermarkEmbedder, BatchWatermarkEmbedder
from digimark.exceptions import ShapeError


class TestWatermarkEmbedder:
    """测试逐块嵌入器"""

    def setup_method(self):
        """测试前准备"""
        self.embedder = WatermarkEmbedder()
        self.coeffs = np.zeros((8, 8), dtype=np.float32)
        self.coeffs[0, 0] = 4.0
        self.coeffs[2, 3] = 1.5

    def test_default_strength(self):
        assert self.embedder.strength == 0.5

    def test_additive_rule(self):
        """测试 C[loc] += strength * w，其余系数不变"""
        marked = self.embedder.embed(self.coeffs, (2, 3), 0.75)

        assert marked[2, 3] == pytest.approx(1.5 + 0.5 * 0.75)
        mask = np.ones((8, 8), dtype=bool)
        mask[2, 3] = False
        np.testing.assert_array_equal(marked[mask], self.coeffs[mask])

    def test_strength_linearity(self):
        """测试强度加倍时改变量加倍"""
        k = 0.25
        base = self.coeffs[2, 3]

        delta_k = self.embedder.embed(self.coeffs, (2, 3), 0.5, strength=k)[2, 3] - base
        delta_2k = self.embedder.embed(self.coeffs, (2, 3), 0.5, strength=2 * k)[2, 3] - base

        assert delta_2k == 2 * delta_k

    def test_additive_composition(self):
        """测试两次嵌入等于一次嵌入两倍水印值"""
        once = self.embedder.embed(self.coeffs, (1, 1), 0.5)
        twice = self.embedder.embed(once, (1, 1), 0.5)
        double = self.embedder.embed(self.coeffs, (1, 1), 1.0)

        assert twice[1, 1] == double[1, 1]

    def test_no_clamping(self):
        """测试不截断超出范围的值"""
        marked = self.embedder.embed(self.coeffs, (0, 1), 1000.0)
        assert marked[0, 1] == pytest.approx(500.0)

    def test_input_not_modified(self):
        """测试返回新块，不修改输入"""
        original = self.coeffs.copy()
        self.embedder.embed(self.coeffs, (2, 3), 0.9)

        np.testing.assert_array_equal(self.coeffs, original)

    def test_location_out_of_bounds(self):
        with pytest.raises(ShapeError):
            self.embedder.embed(self.coeffs, (8, 0), 0.5)

    def test_invalid_strength(self):
        with pytest.raises(ValueError):
            WatermarkEmbedder(strength=float('nan'))
        with pytest.raises(ValueError):
            self.embedder.embed(self.coeffs, (0, 1), 0.5, strength=float('inf'))


class TestBatchWatermarkEmbedder:
    """测试批量嵌入器"""

    def setup_method(self):
        """测试前准备"""
        rng = np.random.default_rng(11)
        self.stack = rng.normal(size=(16, 8, 8)).astype(np.float32)
        self.values = rng.random(16).astype(np.float32)
        self.locations = CoefficientSelector().select_many(self.stack)

    def test_default_strength(self):
        assert BatchWatermarkEmbedder().strength == 1.2

    def test_matches_per_block_embedding(self):
        """测试与相同强度的逐块嵌入结果一致"""
        batch = BatchWatermarkEmbedder(strength=1.2)
        single = WatermarkEmbedder(strength=1.2)

        marked = batch.embed_batch(self.stack, self.locations, self.values)

        for i in range(16):
            expected = single.embed(self.stack[i], tuple(self.locations[i]), self.values[i])
            np.testing.assert_allclose(marked[i], expected, rtol=0, atol=1e-6)

    def test_only_selected_coefficients_change(self):
        """测试每块只改变选中的系数"""
        marked = BatchWatermarkEmbedder().embed_batch(self.stack, self.locations, self.values)
        changed = marked != self.stack

        assert changed.reshape(16, -1).sum(axis=1).max() <= 1
        assert not np.shares_memory(marked, self.stack)

    def test_mismatched_inputs(self):
        """测试位置或水印值数量与块数不匹配"""
        batch = BatchWatermarkEmbedder()
        with pytest.raises(ShapeError):
            batch.embed_batch(self.stack, self.locations[:3], self.values)
        with pytest.raises(ShapeError):
            batch.embed_batch(self.stack, self.locations, self.values[:3])
