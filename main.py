#!/usr/bin/env python3
"""
Frame Enhancer - Live Webcam Preview

Captures webcam frames, enhances them on a relay thread and shows the most
recent enhanced frame next to the raw feed.

Keys:
    1-6  switch profile (standard, superresolution, nightvision,
         portrait, hybrid, ultradetail)
    0    auto profile
    q    quit
"""

import time

import cv2

from config import EnhancerConfig
from enhancement_profile import AUTO, EnhancementProfile, FilterParams
from frame_enhancer import FilterPipeline
from frame_relay import FrameRelay
from logger import configure, log_session_start
from pixel_buffer import PixelBuffer

WIDTH, HEIGHT = 640, 480

PROFILE_KEYS = {ord(str(i + 1)): profile for i, profile in enumerate(EnhancementProfile)}
PROFILE_KEYS[ord('0')] = AUTO


class LatestResult:
    """Holds the newest successful relay result for the display loop."""

    def __init__(self):
        self.result = None

    def __call__(self, result):
        if result.ok:
            self.result = result


def main():
    config = EnhancerConfig.from_env()
    configure(log_file=config.log_file)
    log_session_start("camera", camera=config.camera_id, profile=config.default_profile)

    cap = cv2.VideoCapture(config.camera_id)
    cap.set(3, WIDTH)
    cap.set(4, HEIGHT)

    if not cap.isOpened():
        print("Error: Could not open webcam.")
        return

    relay = FrameRelay(FilterPipeline(finishing_gamma=config.finishing_gamma))
    latest = LatestResult()
    relay.subscribe(latest)
    relay.start()

    profile = config.default_profile
    params = FilterParams(sharpness=130, noise_reduction=30)

    print("Starting Frame Enhancer... Press 'q' to quit, 0-6 to switch profile.")

    prev_time = 0

    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                print("Failed to grab frame.")
                break

            # Calculate FPS
            curr_time = time.time()
            fps = 1 / (curr_time - prev_time) if prev_time != 0 else 0
            prev_time = curr_time

            # Never blocks: a frame still waiting is simply replaced
            relay.submit(PixelBuffer.from_bgr(frame), params, profile)

            cv2.putText(frame, f"FPS: {int(fps)}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 0), 2)
            cv2.imshow('Original Feed', frame)

            result = latest.result
            if result is not None:
                enhanced = result.buffer.to_bgr()
                report = result.report
                label = f"{report.model_name} {report.processing_time_ms}ms {report.resolution_increase:+d}%"
                cv2.putText(enhanced, label, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 255, 0), 2)
                cv2.imshow('Enhanced Feed', enhanced)

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            if key in PROFILE_KEYS:
                profile = PROFILE_KEYS[key]
                print(f"Profile: {getattr(profile, 'value', profile)}")
    finally:
        relay.stop()
        cap.release()
        cv2.destroyAllWindows()
        print(f"Frames enhanced: {relay.processed}, dropped: {relay.dropped}")


if __name__ == "__main__":
    main()
