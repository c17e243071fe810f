"""
命令行入口

digimark IMAGE [-o DIR] [-c CONFIG] [--block-size N] [--strength X] ...
"""

import argparse
import logging
import sys

from .config import WatermarkConfig
from .exceptions import WatermarkError
from .pipeline import WatermarkPipeline
from .utils.metrics import PerformanceTimer, benchmark_generators

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="digimark", description="Block-DCT watermark embedding")
    p.add_argument("image", help="Input image (decoded as grayscale)")
    p.add_argument("-o", "--output-dir", default=".", help="Directory for output images")
    p.add_argument("-c", "--config", help="YAML configuration file")
    p.add_argument("--block-size", type=int, help="Block side length")
    p.add_argument("--strength", type=float, help="Embedding strength of the primary path")
    p.add_argument("--batch-strength", type=float, help="Embedding strength of the comparison path")
    p.add_argument("--image-size", type=int,
                   help="Expected padded image side, 0 to accept any size")
    p.add_argument("--remainder", choices=["reject", "pad", "crop"],
                   help="Policy when the side is not a multiple of the block size")
    p.add_argument("--seed", type=int, help="Watermark RNG seed")
    p.add_argument("--generator", choices=["numpy", "opencv"], help="Watermark RNG back-end")
    p.add_argument("--threads", type=int, help="Worker threads for per-block work")
    p.add_argument("--report", action="store_true", help="Also save a comparison figure")
    p.add_argument("--benchmark", action="store_true", help="Time pipeline stages and RNG back-ends")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


def load_config(args: argparse.Namespace) -> WatermarkConfig:
    """读取配置文件并用命令行参数覆盖"""
    config = WatermarkConfig.from_yaml(args.config) if args.config else WatermarkConfig()

    overrides = {
        'block_size': args.block_size,
        'strength': args.strength,
        'batch_strength': args.batch_strength,
        'remainder_policy': args.remainder,
        'seed': args.seed,
        'generator': args.generator,
        'num_threads': args.threads
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    if args.image_size is not None:
        config.image_size = args.image_size or None
    if args.report:
        config.visualization_enabled = True

    config.validate()
    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        config = load_config(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    timer = PerformanceTimer("pipeline") if args.benchmark else None
    pipeline = WatermarkPipeline(config, timer=timer)

    try:
        if timer is not None:
            with timer:
                result = pipeline.run(args.image, output_dir=args.output_dir)
        else:
            result = pipeline.run(args.image, output_dir=args.output_dir)
    except (WatermarkError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for name, path in result.output_paths.items():
        print(f"Saved {name} → {path}")
    for name, value in result.quality_metrics.items():
        print(f"{name}: {value:.2f}")

    if timer is not None:
        print(timer.get_report(), end="")
        print(benchmark_generators(result.block_count[0], seed=config.seed).get_report(), end="")

    return 0


if __name__ == "__main__":
    sys.exit(main())
