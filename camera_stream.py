"""
Threaded Camera Capture
Keeps the most recent camera frame available without blocking the control loop.
"""

import logging
import threading
from typing import Optional, Union

import cv2
import numpy as np

from rig_config import Config

logger = logging.getLogger(__name__)


class CameraStream:
    """
    Background capture of the latest frame from a cv2.VideoCapture source.

    A daemon thread reads frames continuously and keeps only the newest one,
    so latest_frame() never waits on the camera. Older frames are dropped.
    """

    def __init__(self, source: Union[int, str, None] = None,
                 width: int = Config.FRAME_WIDTH, height: int = Config.FRAME_HEIGHT):
        self.source = Config.CAMERA_INDEX if source is None else source
        self.width = width
        self.height = height

        self._frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "CameraStream":
        """Open the device and start the capture thread"""
        if self.is_running:
            return self

        cap = cv2.VideoCapture(self.source)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Could not open video source {self.source!r}")

        # Camera properties only apply to devices, not video files
        if isinstance(self.source, int):
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._capture_loop, args=(cap,), daemon=True)
        self._thread.start()
        logger.info("Camera capture started on source %r", self.source)
        return self

    def _capture_loop(self, cap):
        try:
            while not self._stop_event.is_set():
                ret, frame = cap.read()
                if not ret:
                    logger.warning("Failed to read frame from source %r, stopping capture", self.source)
                    # A finished source has no latest frame
                    with self._lock:
                        self._frame = None
                    break
                with self._lock:
                    self._frame = frame
        finally:
            cap.release()
            logger.info("Camera capture stopped on source %r", self.source)

    def latest_frame(self) -> Optional[np.ndarray]:
        """Most recent frame, or None before the first frame and after the source ends"""
        with self._lock:
            return self._frame

    def stop(self, timeout: float = 1.0):
        """
        Stop the capture thread and drop the last frame.

        The capture thread releases the device once its current read returns.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Capture thread on source %r still blocked in read after %.1fs",
                               self.source, timeout)
            else:
                self._thread = None
        with self._lock:
            self._frame = None

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
