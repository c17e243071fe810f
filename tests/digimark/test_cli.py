"""
命令行与可视化测试
"""

import os

import pytest
import numpy as np
import cv2

from digimark.cli import main
from digimark.utils.visualizer import visualize_comparison


class TestCli:
    """测试命令行入口"""

    def setup_method(self):
        self.image = np.random.default_rng(1).integers(0, 256, (64, 64), dtype=np.uint8)

    def test_success(self, tmp_path, capsys):
        """测试成功运行并写出产物"""
        image_path = str(tmp_path / "input.png")
        cv2.imwrite(image_path, self.image)
        output_dir = str(tmp_path / "out")

        code = main([image_path, "-o", output_dir, "--image-size", "64",
                     "--seed", "4", "--threads", "1", "--benchmark"])

        assert code == 0
        assert os.path.exists(os.path.join(output_dir, "input_watermarked.png"))
        assert os.path.exists(os.path.join(output_dir, "dcts.png"))
        out = capsys.readouterr().out
        assert "pipeline" in out
        assert "numpy" in out

    def test_missing_input(self, tmp_path, capsys):
        code = main([str(tmp_path / "missing.png"), "-o", str(tmp_path)])

        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_size_mismatch(self, tmp_path):
        """测试默认目标尺寸512与输入不一致"""
        image_path = str(tmp_path / "input.png")
        cv2.imwrite(image_path, self.image)

        assert main([image_path, "-o", str(tmp_path / "out")]) == 1
        assert not os.path.exists(str(tmp_path / "out"))

    def test_config_file(self, tmp_path):
        """测试读取YAML配置"""
        image_path = str(tmp_path / "input.png")
        cv2.imwrite(image_path, self.image)
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "digimark:\n  block:\n    size: 16\n    image_size: 64\n"
            "  performance:\n    num_threads: 1\n",
            encoding='utf-8')

        code = main([image_path, "-c", str(config_path), "-o", str(tmp_path / "out")])

        assert code == 0
        watermark = cv2.imread(str(tmp_path / "out" / "watermark.png"), cv2.IMREAD_GRAYSCALE)
        assert watermark.shape == (4, 4)

    def test_invalid_config(self, tmp_path):
        assert main([str(tmp_path / "x.png"), "--block-size", "1"]) == 2
        assert main([str(tmp_path / "x.png"), "-c", str(tmp_path / "missing.yaml")]) == 2

    @pytest.mark.parametrize("content", [
        "block:\n  size: '8'\n",
        "block:\n  size: 8\n  image_size: 64\nperformance: 4\n",
        "embedding:\n  strength: strong\n",
        "digimark:\n  - block\n",
    ])
    def test_malformed_config_file(self, tmp_path, content):
        """测试格式正确但内容无效的配置文件返回2"""
        image_path = str(tmp_path / "input.png")
        cv2.imwrite(image_path, self.image)
        config_path = tmp_path / "config.yaml"
        config_path.write_text(content, encoding='utf-8')

        assert main([image_path, "-c", str(config_path), "-o", str(tmp_path / "out")]) == 2
        assert not (tmp_path / "out").exists()

    def test_empty_section_in_config_file(self, tmp_path):
        """测试空小节使用默认值"""
        image_path = str(tmp_path / "input.png")
        cv2.imwrite(image_path, self.image)
        config_path = tmp_path / "config.yaml"
        config_path.write_text("block:\nembedding:\n", encoding='utf-8')

        code = main([image_path, "-c", str(config_path), "--image-size", "64",
                     "--threads", "1", "-o", str(tmp_path / "out")])

        assert code == 0


class TestVisualizer:
    """测试对比图"""

    def test_visualize_comparison(self, tmp_path):
        images = {
            'A': np.zeros((16, 16), dtype=np.uint8),
            'B': np.full((16, 16), 255, dtype=np.uint8),
            'C': np.random.rand(4, 4).astype(np.float32),
            'D': np.zeros((16, 16), dtype=np.uint8)
        }
        output_path = str(tmp_path / "report.png")

        result = visualize_comparison(images, output_path=output_path, metrics={'PSNR': 40.0})

        assert result.ndim == 3
        assert result.shape[2] == 3
        assert os.path.exists(output_path)
