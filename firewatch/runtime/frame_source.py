"""
Frame Sources
Providers of RGBA frames for the detection loop
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Protocol, Union

import cv2
import numpy as np

from ..detection.types import Frame

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """
    Returns the latest frame, or None when nothing is available yet.

    Finite sources also expose `exhausted`, which turns True once no
    further frames will ever arrive.
    """

    def get_frame(self) -> Optional[Frame]: ...


class StaticFrameSource:
    """Replays prepared frames (or RGB images) one per call, then None"""

    def __init__(self, frames: Iterable[Union[Frame, np.ndarray, None]], loop: bool = False):
        self._frames = list(frames)
        self._loop = loop
        self._iterator: Iterator = iter(self._frames)
        self.exhausted = False

    def get_frame(self) -> Optional[Frame]:
        if self.exhausted:
            return None

        try:
            item = next(self._iterator)
        except StopIteration:
            if not self._loop or not self._frames:
                self.exhausted = True
                return None
            self._iterator = iter(self._frames)
            item = next(self._iterator)

        if item is None or isinstance(item, Frame):
            return item
        return Frame.from_rgb(item)


class VideoCaptureSource:
    """
    OpenCV capture (camera index, file path or stream URL).

    Frames are converted from OpenCV's BGR to RGBA. A failed read from a
    camera index is a dropped frame; from a file or URL it marks the end of
    the stream.
    """

    def __init__(self, source: Union[int, str] = 0, width: Optional[int] = None, height: Optional[int] = None):
        self.source = source
        self.exhausted = False
        self._capture = cv2.VideoCapture(source)

        if not self._capture.isOpened():
            self._capture.release()
            raise RuntimeError(f"Unable to open video source: {source}")

        if width:
            self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        if height:
            self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        logger.info(f"Video source opened: {source}")

    def get_frame(self) -> Optional[Frame]:
        if self._capture is None:
            return None

        ok, image = self._capture.read()
        if not ok or image is None:
            if not isinstance(self.source, int) and not self.exhausted:
                self.exhausted = True
                logger.info(f"End of video source: {self.source}")
            return None

        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        height, width = rgba.shape[:2]
        return Frame(width=width, height=height, pixels=rgba)

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Video source released: {self.source}")

    def __enter__(self) -> "VideoCaptureSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


def parse_source(value: str) -> Union[int, str]:
    """Camera indices arrive as strings on the command line"""
    return int(value) if value.isdigit() else value
