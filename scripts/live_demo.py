"""Run the live webcam demo.

Usage:
    uvicorn api.main:app --reload            # (separate, for API)
    python scripts/live_demo.py --backend gpu

Results are logged every POLL_INTERVAL seconds. Ctrl+C to quit.
"""
import argparse
import logging

from facehand.config import Settings
from facehand.live import LiveDemo, describe_snapshot

logger = logging.getLogger("live_demo")

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--backend", default=None, help="Compute backend: cpu or gpu")
    p.add_argument("--camera", type=int, default=None, help="OpenCV camera index")
    p.add_argument("--interval", type=float, default=None, help="Seconds between ticks")
    p.add_argument("--ticks", type=int, default=None, help="Stop after N ticks")
    args = p.parse_args()

    s = Settings()
    if args.camera is not None:
        s.CAMERA_INDEX = args.camera
    if args.interval is not None:
        s.POLL_INTERVAL = args.interval
    logging.basicConfig(level=getattr(logging, s.LOG_LEVEL, logging.INFO))

    logger.info("Face & Gesture Demo")
    demo = LiveDemo(s)
    try:
        last = demo.run(args.backend, max_ticks=args.ticks)
    except KeyboardInterrupt:
        last = demo.status().last_snapshot
    logger.info(f"Last tick: {describe_snapshot(last)}")

if __name__ == '__main__':
    main()
