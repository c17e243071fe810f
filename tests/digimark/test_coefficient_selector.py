"""
系数选择器单元测试
"""

import pytest
import numpy as np

from digimark.embedding.coefficient_selector import CoefficientSelector
from digimark.embedding.dct_transform import DCTTransform
from digimark.exceptions import DegenerateBlockError, ShapeError


class TestCoefficientSelector:
    """测试系数选择器"""

    def setup_method(self):
        """每个测试方法前的设置"""
        self.selector = CoefficientSelector()
        self.transform = DCTTransform()
        self.rng = np.random.default_rng(3)

    def test_never_selects_dc(self):
        """测试选择结果永远不是直流分量"""
        for n in (2, 4, 8, 16):
            for _ in range(50):
                block = self.rng.random((n, n)).astype(np.float32)
                assert self.selector.select(self.transform.forward(block)) != (0, 0)

    def test_dc_excluded_even_when_not_largest(self):
        """测试直流分量不是最大值时也被排除"""
        coeffs = np.zeros((8, 8), dtype=np.float32)
        coeffs[0, 0] = 1.0
        coeffs[3, 4] = 5.0
        coeffs[1, 1] = 2.0

        assert self.selector.select(coeffs) == (3, 4)

    def test_largest_magnitude_wins(self):
        """测试按幅值而不是带符号数值比较"""
        coeffs = np.zeros((8, 8), dtype=np.float32)
        coeffs[0, 0] = 10.0
        coeffs[2, 2] = 3.0
        coeffs[5, 1] = -4.0

        assert self.selector.select(coeffs) == (5, 1)

    def test_tie_breaks_row_major(self):
        """测试并列最大时取行优先扫描的第一个"""
        coeffs = np.zeros((8, 8), dtype=np.float32)
        coeffs[0, 0] = 9.0
        coeffs[1, 0] = -2.0
        coeffs[0, 3] = 2.0
        coeffs[4, 4] = 2.0

        assert self.selector.select(coeffs) == (0, 3)

    def test_degenerate_block_fallback(self):
        """测试退化块返回 (0, 1)"""
        assert self.selector.select(np.zeros((8, 8), dtype=np.float32)) == (0, 1)

        dc_only = np.zeros((8, 8), dtype=np.float32)
        dc_only[0, 0] = 3.0
        assert self.selector.select(dc_only) == (0, 1)

    def test_degenerate_block_strict(self):
        """测试严格模式下退化块抛出异常"""
        selector = CoefficientSelector(strict=True)
        stack = np.zeros((3, 8, 8), dtype=np.float32)
        stack[0, 2, 2] = 1.0

        with pytest.raises(DegenerateBlockError) as exc_info:
            selector.select_many(stack)

        assert exc_info.value.block_index == 1

    def test_degenerate_block_index_offset(self):
        """测试单块选择时按传入序号报告退化块"""
        selector = CoefficientSelector(strict=True)

        with pytest.raises(DegenerateBlockError) as exc_info:
            selector.select(np.zeros((8, 8), dtype=np.float32), index=3)

        assert exc_info.value.block_index == 3
        assert "3" in str(exc_info.value)

    def test_select_many_matches_select(self):
        """测试批量选择与逐块选择一致"""
        blocks = self.rng.random((32, 8, 8)).astype(np.float32)
        stack = self.transform.forward_many(blocks)
        stack[5] = 0  # 退化块

        locations = self.selector.select_many(stack)

        assert locations.shape == (32, 2)
        for i in range(32):
            assert tuple(locations[i]) == self.selector.select(stack[i])

    def test_input_not_modified(self):
        """测试不修改输入"""
        coeffs = self.rng.random((8, 8)).astype(np.float32)
        original = coeffs.copy()

        self.selector.select(coeffs)

        np.testing.assert_array_equal(coeffs, original)

    def test_invalid_shapes(self):
        """测试非法形状"""
        with pytest.raises(ShapeError):
            self.selector.select(np.zeros((1, 1)))
        with pytest.raises(ShapeError):
            self.selector.select(np.zeros(8))
        with pytest.raises(ShapeError):
            self.selector.select_many(np.zeros((2, 8, 4)))
