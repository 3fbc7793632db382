"""
Command-line monitor
Runs the detection loop against a camera or video file and logs alerts
"""

import argparse
import logging
import sys
from typing import List, Optional

from .. import load_config, load_config_file
from ..detection.types import DetectionEvent
from .detection_loop import DetectorConfig, FireDetectionSystem
from .frame_source import VideoCaptureSource, parse_source

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="firewatch-monitor",
        description="Watch a video stream for fire and smoke",
    )
    parser.add_argument("--source", default="0", help="Camera index, video file or stream URL")
    parser.add_argument("--sensitivity", type=int, choices=(1, 2, 3), default=None,
                        help="1=Low, 2=Medium, 3=High (default from config)")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--no-sound", action="store_true", help="Disable the alarm beeps")
    parser.add_argument("--no-flash", action="store_true", help="Disable the visual flash")
    parser.add_argument("--max-cycles", type=int, default=None, help="Stop after N cycles")
    parser.add_argument("--log-level", default="INFO",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    raw_config = load_config_file(args.config) if args.config else load_config()
    config = DetectorConfig.from_dict(raw_config)
    if args.sensitivity is not None:
        config.sensitivity = args.sensitivity
    if args.no_sound:
        config.sound_enabled = False
    if args.no_flash:
        config.flash_enabled = False

    try:
        source = VideoCaptureSource(parse_source(args.source))
    except RuntimeError as exc:
        logger.error(str(exc))
        return 1

    system = FireDetectionSystem(source, config=config)

    def log_detection(event: DetectionEvent) -> None:
        logger.warning(f"{event.category.value.upper()} DETECTED ({event.confidence_percent}%)")

    system.on_detection.subscribe(log_detection)
    system.alerts.on_phase_change.subscribe(
        lambda old, new: logger.info(f"Alert phase: {old.value} -> {new.value}")
    )
    system.alerts.on_auto_stop.subscribe(
        lambda: logger.info("Alarm auto-stopped; back to monitoring")
    )

    try:
        system.run(max_cycles=args.max_cycles)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        system.stop()
        source.release()

    logger.info(f"Session summary: {system.get_summary()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
